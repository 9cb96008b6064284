"""
Configuration management for Promiventerator.

Loads and validates promiventerator.yml from the project root:
- emitter: history retention warning
- demo: settings for the ``promiventerator demo`` walkthrough
- logging: level and optional log file for the CLI
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "promiventerator.yml"
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass
class EmitterConfig:
    """Runtime settings for Promiventerator instances."""

    history_warn_threshold: int = 10_000  # 0 disables the warning


@dataclass
class DemoConfig:
    """Settings for the demo walkthrough."""

    steps: int = 2
    step_delay: float = 0.5  # seconds between progress events
    result: str = "done"
    consumers: int = 1


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: str | None = None


@dataclass
class PromiventeratorConfig:
    """Complete Promiventerator configuration."""

    emitter: EmitterConfig = field(default_factory=EmitterConfig)
    demo: DemoConfig = field(default_factory=DemoConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    root: Path | None = None

    @property
    def log_file(self) -> Path | None:
        if not self.logging.file:
            return None
        path = Path(self.logging.file).expanduser()
        if not path.is_absolute() and self.root is not None:
            path = self.root / path
        return path

    @classmethod
    def load(cls, root: Path) -> "PromiventeratorConfig":
        """Load configuration from the project root directory."""
        config_path = root / CONFIG_FILENAME
        if not config_path.exists():
            return cls(root=root.resolve())
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{config_path} must contain a mapping at the top level")
        return cls._parse_main_config(data, root=root.resolve())

    @classmethod
    def _parse_main_config(cls, data: dict[str, Any], root: Path) -> "PromiventeratorConfig":
        config = cls(root=root)

        emitter_data = data.get("emitter", {}) or {}
        config.emitter = EmitterConfig(
            history_warn_threshold=int(emitter_data.get("history_warn_threshold", 10_000)),
        )
        if config.emitter.history_warn_threshold < 0:
            raise ValueError("emitter.history_warn_threshold must be >= 0")

        demo_data = data.get("demo", {}) or {}
        config.demo = DemoConfig(
            steps=int(demo_data.get("steps", 2)),
            step_delay=float(demo_data.get("step_delay", 0.5)),
            result=str(demo_data.get("result", "done")),
            consumers=int(demo_data.get("consumers", 1)),
        )
        if config.demo.steps < 0 or config.demo.consumers < 0:
            raise ValueError("demo.steps and demo.consumers must be >= 0")

        logging_data = data.get("logging", {}) or {}
        level = str(logging_data.get("level", "INFO")).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level '{level}'. Expected one of: {', '.join(LOG_LEVELS)}")
        config.logging = LoggingConfig(level=level, file=logging_data.get("file"))

        return config


def get_project_root() -> Path:
    """Find the project root (nearest directory with promiventerator.yml or .git)."""

    current = Path.cwd()
    while current != current.parent:
        if (current / CONFIG_FILENAME).exists() or (current / ".git").exists():
            return current
        current = current.parent
    return Path.cwd()
