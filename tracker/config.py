"""Configuration management for the task tracker.

This module provides centralized configuration loading from environment variables.
Values that are expensive to validate are cached with lru_cache; tests clear the
cache via ``get_x.cache_clear()`` after monkeypatching the environment.

Environment Variables:
    DATABASE_URL: PostgreSQL connection URL (required for production)
    DATABASE_ECHO: "true" to echo SQL statements (optional)
    LOG_LEVEL: Minimum log level (default: INFO)
    LOG_FORMAT: "json" or "console" (default: json)
    TRANSITION_MAX_ATTEMPTS: Attempts per lifecycle transition on version conflict (default: 3)

Usage:
    from tracker.config import get_database_url, get_transition_max_attempts

    db_url = get_database_url()  # Raises if DATABASE_URL not set
    attempts = get_transition_max_attempts()
"""

import logging
import os
from functools import lru_cache

from tracker.exceptions import ConfigurationError

DEFAULT_TRANSITION_MAX_ATTEMPTS = 3
LOG_FORMATS = ("json", "console")


@lru_cache
def get_database_url() -> str:
    """Get database URL from environment.

    Converts postgresql:// to postgresql+asyncpg:// for async SQLAlchemy.

    Raises:
        ValueError: If DATABASE_URL not set.
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        raise ValueError("DATABASE_URL environment variable is required")

    # Hosted Postgres providers hand out postgresql:// URLs
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

    return url


def get_database_echo() -> bool:
    """Whether SQLAlchemy should echo SQL (DATABASE_ECHO=true)."""
    return os.getenv("DATABASE_ECHO", "").lower() == "true"


def get_log_level() -> int:
    """Get the minimum log level from LOG_LEVEL.

    Returns:
        A ``logging`` level number (default: logging.INFO).

    Raises:
        ConfigurationError: If LOG_LEVEL is not a known level name.
    """
    name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown LOG_LEVEL: {name}")
    return level


def get_log_format() -> str:
    """Get the log renderer name from LOG_FORMAT ("json" or "console")."""
    fmt = os.getenv("LOG_FORMAT", "json").lower()
    if fmt not in LOG_FORMATS:
        raise ConfigurationError(f"LOG_FORMAT must be one of {LOG_FORMATS}, got {fmt!r}")
    return fmt


@lru_cache
def get_transition_max_attempts() -> int:
    """Get the attempt budget for a lifecycle transition.

    A transition that loses an optimistic version check is retried until
    this many attempts have been made, then ConcurrencyConflictError is raised.

    Environment Variable:
        TRANSITION_MAX_ATTEMPTS: Positive integer (default: 3)

    Raises:
        ConfigurationError: If the value is not a positive integer.
    """
    raw = os.getenv("TRANSITION_MAX_ATTEMPTS", str(DEFAULT_TRANSITION_MAX_ATTEMPTS))
    try:
        attempts = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"TRANSITION_MAX_ATTEMPTS must be an integer, got {raw!r}") from e
    if attempts < 1:
        raise ConfigurationError("TRANSITION_MAX_ATTEMPTS must be >= 1")
    return attempts
