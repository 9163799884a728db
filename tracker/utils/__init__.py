"""Cross-cutting utilities for the task tracker.

Modules:
    durations: Integer-second elapsed time and duration formatting.
    logging: structlog configuration and logger factory.
"""

from tracker.utils.durations import elapsed_seconds, format_clock, format_duration

__all__ = [
    "elapsed_seconds",
    "format_clock",
    "format_duration",
]
