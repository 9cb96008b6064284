"""
Promiventerator CLI.

Commands:
    init  - Write a sample promiventerator.yml in the project root
    demo  - Run the progress/complete walkthrough and print what each party saw
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import click
from dotenv import load_dotenv

from . import __version__
from .config import CONFIG_FILENAME, LOG_LEVELS, DemoConfig, EmitterConfig, PromiventeratorConfig, get_project_root
from .core import Promiventerator
from .logs import setup_logging

load_dotenv()
load_dotenv(Path.cwd() / ".env")


SAMPLE_CONFIG = """\
# Promiventerator Configuration

emitter:
  # Log a warning once the event history reaches this many records.
  # History is kept for replay and is never pruned. 0 disables the warning.
  history_warn_threshold: 10000

demo:
  steps: 2          # progress events before "complete"
  step_delay: 0.5   # seconds between events
  result: done      # value the demo future settles with
  consumers: 1      # concurrent async-for traversals

logging:
  level: INFO
  # file: .promiventerator/demo.log
"""


async def run_demo(demo: DemoConfig, emitter: EmitterConfig | None = None) -> dict[str, Any]:
    """Run the walkthrough and return what listeners, traversals and awaiters observed."""
    listener_calls: list[list[Any]] = []

    async def producer(settle, fail):
        for step in range(1, demo.steps + 1):
            await asyncio.sleep(demo.step_delay)
            await pv.emit("progress", step * 100 // demo.steps)
        await asyncio.sleep(demo.step_delay)
        await pv.emit("complete")
        settle(demo.result)

    pv: Promiventerator[str] = Promiventerator(producer, config=emitter)
    pv.on("progress", lambda value: listener_calls.append(["progress", value]))
    pv.once("complete", lambda: listener_calls.append(["complete"]))

    async def consume() -> list[list[Any]]:
        seen: list[list[Any]] = []
        async for record in pv:
            seen.append(list(record))
        return seen

    traversals = await asyncio.gather(*(consume() for _ in range(demo.consumers)))
    result = await pv
    return {
        "listener_calls": listener_calls,
        "traversals": list(traversals),
        "history": [list(record) for record in pv.history],
        "result": result,
    }


@click.group()
@click.version_option(version=__version__)
def main():
    """Promiventerator - futures that emit replayable events."""
    pass


@main.command()
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool):
    """Write a sample promiventerator.yml in the project root."""
    root = get_project_root()
    config_path = root / CONFIG_FILENAME
    if config_path.exists() and not force:
        click.echo(f"  Skipped: {config_path} (already exists)")
        return
    config_path.write_text(SAMPLE_CONFIG)
    click.echo(f"  Created: {config_path}")


@main.command()
@click.option("--steps", type=int, default=None, help="Number of progress events")
@click.option("--delay", type=float, default=None, help="Seconds between events")
@click.option("--consumers", type=int, default=None, help="Concurrent traversals")
@click.option("--result", default=None, help="Value the future settles with")
@click.option("--log-level", envvar="PROMIVENTERATOR_LOG_LEVEL", default=None, help="Log level (e.g. DEBUG)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def demo(
    steps: int | None,
    delay: float | None,
    consumers: int | None,
    result: str | None,
    log_level: str | None,
    as_json: bool,
):
    """Run the progress/complete walkthrough."""
    try:
        config = PromiventeratorConfig.load(get_project_root())
    except ValueError as e:
        raise click.ClickException(str(e))

    level = (log_level or config.logging.level).upper()
    if level not in LOG_LEVELS:
        raise click.BadParameter(
            f"Unknown log level '{level}'. Expected one of: {', '.join(LOG_LEVELS)}",
            param_hint="--log-level",
        )
    setup_logging(level=level, log_file=config.log_file)

    demo_config = config.demo
    if steps is not None:
        demo_config.steps = steps
    if delay is not None:
        demo_config.step_delay = delay
    if consumers is not None:
        demo_config.consumers = consumers
    if result is not None:
        demo_config.result = result
    if demo_config.steps < 0 or demo_config.consumers < 0:
        raise click.BadParameter("--steps and --consumers must be >= 0")

    outcome = asyncio.run(run_demo(demo_config, config.emitter))

    if as_json:
        click.echo(json.dumps(outcome, indent=2))
        return

    for call in outcome["listener_calls"]:
        click.echo(f"listener: {' '.join(str(part) for part in call)}")
    for index, seen in enumerate(outcome["traversals"], start=1):
        for record in seen:
            click.echo(f"traversal {index}: {' '.join(str(part) for part in record)}")
    click.echo(f"result: {outcome['result']}")


if __name__ == "__main__":
    main()
