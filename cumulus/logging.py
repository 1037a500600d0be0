"""Logging configuration for cumulus.

This module provides structured logging via loguru. Logging is disabled by
default (library behaviour) and enabled when a session is opened with
logging=True or a LogConfig instance.

Example:
    from cumulus import LogConfig, create_cluster

    # Simple: enable with defaults
    controller = await create_cluster(request, tenant, logging=True)

    # Custom: configure level and file output
    controller = await create_cluster(
        request,
        tenant,
        logging=LogConfig(level="DEBUG", file="cumulus.log"),
    )
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Literal

from loguru import logger

# Disable by default (library behavior)
logger.disable("cumulus")

type LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} - {message}"
)


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Logging configuration.

    Attributes:
        level: Minimum log level for the console.
        file: Path to log file. If provided, logs are written to this file.
        console: Whether to log to stderr. Defaults to True.
        rotation: File rotation policy (e.g., "50 MB", "1 day"). Defaults to "50 MB".
        retention: Number of old log files to keep. Defaults to 10.
    """

    level: LogLevel = "INFO"
    file: str | None = None
    console: bool = True
    rotation: str = "50 MB"
    retention: int = 10


def _setup_logging(config: LogConfig) -> list[int]:
    """Configure logging and return handler IDs for cleanup."""
    logger.enable("cumulus")
    handler_ids: list[int] = []

    if config.console:
        hid = logger.add(
            sys.stderr,
            level=config.level,
            format=CONSOLE_FORMAT,
            colorize=True,
            filter="cumulus",
        )
        handler_ids.append(hid)

    if config.file:
        hid = logger.add(
            config.file,
            level="DEBUG",  # File always captures everything
            format=FILE_FORMAT,
            rotation=config.rotation,
            retention=config.retention,
            compression="zip",
            diagnose=False,  # Admin passwords travel through feature variables
            enqueue=True,
            filter="cumulus",
        )
        handler_ids.append(hid)

    return handler_ids


def _teardown_logging(handler_ids: list[int]) -> None:
    """Remove handlers and disable logging."""
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable("cumulus")
