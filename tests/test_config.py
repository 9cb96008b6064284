from __future__ import annotations

import pytest

from promiventerator.config import PromiventeratorConfig


def test_config_defaults_without_file(tmp_path):
    config = PromiventeratorConfig.load(tmp_path)

    assert config.emitter.history_warn_threshold == 10_000
    assert config.demo.steps == 2
    assert config.demo.step_delay == 0.5
    assert config.demo.result == "done"
    assert config.demo.consumers == 1
    assert config.logging.level == "INFO"
    assert config.log_file is None


def test_config_load_sections(tmp_path):
    config_path = tmp_path / "promiventerator.yml"
    config_path.write_text(
        """
emitter:
  history_warn_threshold: 0
demo:
  steps: 4
  step_delay: 0
  result: finished
  consumers: 3
logging:
  level: debug
  file: logs/demo.log
        """.strip()
    )

    config = PromiventeratorConfig.load(tmp_path)

    assert config.emitter.history_warn_threshold == 0
    assert config.demo.steps == 4
    assert config.demo.step_delay == 0.0
    assert config.demo.result == "finished"
    assert config.demo.consumers == 3
    assert config.logging.level == "DEBUG"
    assert config.log_file == tmp_path.resolve() / "logs" / "demo.log"


def test_config_partial_sections_fall_back_to_defaults(tmp_path):
    config_path = tmp_path / "promiventerator.yml"
    config_path.write_text("demo:\n  steps: 1\n")

    config = PromiventeratorConfig.load(tmp_path)

    assert config.demo.steps == 1
    assert config.demo.step_delay == 0.5
    assert config.emitter.history_warn_threshold == 10_000


def test_config_rejects_unknown_log_level(tmp_path):
    config_path = tmp_path / "promiventerator.yml"
    config_path.write_text("logging:\n  level: chatty\n")

    with pytest.raises(ValueError, match="Unknown log level"):
        PromiventeratorConfig.load(tmp_path)


def test_config_rejects_negative_threshold(tmp_path):
    config_path = tmp_path / "promiventerator.yml"
    config_path.write_text("emitter:\n  history_warn_threshold: -1\n")

    with pytest.raises(ValueError, match="history_warn_threshold"):
        PromiventeratorConfig.load(tmp_path)


def test_config_rejects_non_mapping(tmp_path):
    config_path = tmp_path / "promiventerator.yml"
    config_path.write_text("- just\n- a list\n")

    with pytest.raises(ValueError, match="mapping"):
        PromiventeratorConfig.load(tmp_path)
