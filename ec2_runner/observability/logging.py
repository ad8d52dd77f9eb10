"""Logging configuration for ec2-runner.

Logging is silent until :func:`setup_logging` attaches sinks. The CLI turns
on console output at the level requested by the workflow; a rotating file
sink is optional.

Example:
    from ec2_runner.observability.logging import LogConfig, setup_logging

    handler_ids = setup_logging(LogConfig(level="DEBUG"))
    ...
    teardown_logging(handler_ids)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .logger import logger

type LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]

LOG_LEVELS: tuple[LogLevel, ...] = ("TRACE", "DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Logging configuration.

    Attributes:
        level: Minimum level for the console sink.
        file: Optional path to a log file. The file sink always logs DEBUG.
        console: Whether to log to stderr.
        max_bytes: Size at which the log file is rotated.
        backups: Number of rotated files to keep.
    """

    level: LogLevel = "INFO"
    file: str | None = None
    console: bool = True
    max_bytes: int = 10 * 1024 * 1024
    backups: int = 5


def setup_logging(config: LogConfig) -> list[int]:
    """Attach the configured sinks and return their handler ids."""
    logger.remove()
    logger.enable()
    handler_ids: list[int] = []

    if config.console:
        handler_ids.append(logger.add(sys.stderr, level=config.level))

    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        handler_ids.append(
            logger.add(
                config.file,
                level="DEBUG",
                max_bytes=config.max_bytes,
                backups=config.backups,
            )
        )

    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    for hid in handler_ids:
        logger.remove(hid)
