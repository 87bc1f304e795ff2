"""Logging configuration using Loguru."""

import sys
from pathlib import Path
from typing import TextIO

from loguru import logger

from chronicle.utils.exceptions import ConfigurationError

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logging(
    level: str = "INFO",
    log_to_file: bool = False,
    log_dir: str = "logs",
    file_rotation: str = "10 MB",
    file_retention: str = "7 days",
    compression: str = "zip",
    serialize: bool = True,
    console: TextIO | None = None,
) -> None:
    """
    Replace all Loguru sinks with Chronicle's.

    Args:
        level: Minimum level for every sink
        log_to_file: Add a rotating file sink under `log_dir`
        serialize: Write file records as JSON lines
        console: Stream for the console sink (defaults to stderr)

    Raises:
        ConfigurationError: If the level name is unknown
    """
    try:
        logger.level(level.upper())
    except ValueError as e:
        raise ConfigurationError(f"Unknown log level: {level}", {"level": level}) from e

    logger.remove()

    stream = console or sys.stderr
    logger.add(
        stream,
        level=level.upper(),
        format=CONSOLE_FORMAT,
        colorize=stream is sys.stderr,
        serialize=False,
    )

    if log_to_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path / "chronicle_{time:YYYY-MM-DD}.log",
            level=level.upper(),
            format=FILE_FORMAT,
            rotation=file_rotation,
            retention=file_retention,
            compression=compression,
            serialize=serialize,
            enqueue=True,
        )


def get_logger(name: str):
    """Get a logger bound to a module name."""
    return logger.bind(module=name)
