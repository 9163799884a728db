"""Structured Logging Configuration.

This module configures structlog for the whole process. JSON output is the
default for production log aggregation; console output is available for local
development via LOG_FORMAT=console.

Configuration:
- JSON or console rendering (LOG_FORMAT)
- Context binding support (correlation IDs, task IDs, etc.)
- Log levels: DEBUG, INFO, WARNING, ERROR, CRITICAL (LOG_LEVEL)
"""

import logging
import sys
from typing import Any

import structlog

from tracker.config import get_log_format, get_log_level


def configure_logging() -> None:
    """Configure structlog processors and the stdlib root handler.

    Safe to call more than once; the last call wins.
    """
    level = get_log_level()
    renderer = (
        structlog.processors.JSONRenderer()
        if get_log_format() == "json"
        else structlog.dev.ConsoleRenderer()
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> Any:
    """Get a structured logger for the given module.

    The logger is a lazy proxy: it is assembled from the structlog
    configuration in effect at the first log call, so module-level loggers
    created before configure_logging() still honour it.

    Args:
        name: Module name (typically __name__)

    Returns:
        structlog logger; ``name`` is passed to the logger factory
    """
    return structlog.get_logger(name)
