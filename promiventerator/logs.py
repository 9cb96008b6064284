"""
Logging bootstrap for the promiventerator CLI.

Library modules log through the standard ``logging`` module; the CLI routes
those records into loguru sinks.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


class InterceptHandler(logging.Handler):
    """Intercept standard logging messages toward Loguru sinks."""
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> None:
    """Configure loguru sinks and intercept the library's stdlib loggers."""
    logger.remove()
    logger.add(sys.stderr, level=level, colorize=True, format=CONSOLE_FORMAT)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(str(log_file), level="DEBUG", rotation="10 MB", retention="1 week", format=FILE_FORMAT)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    package_logger = logging.getLogger("promiventerator")
    package_logger.handlers = [InterceptHandler()]
    package_logger.propagate = False
