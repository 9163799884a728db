"""Duration arithmetic and formatting helpers.

All durations in the tracker are integer seconds. Elapsed time is truncated
toward zero and never negative, so a clock that steps backwards cannot reduce
a task's accumulated working time.
"""

from datetime import datetime


def elapsed_seconds(start: datetime | None, end: datetime | None) -> int:
    """Whole seconds between two instants, clamped at zero.

    Returns 0 when either bound is missing.

    Example:
        >>> elapsed_seconds(datetime(2026, 1, 1, 12, 0, 0), datetime(2026, 1, 1, 12, 1, 40, 900000))
        100
    """
    if start is None or end is None:
        return 0
    return max(0, int((end - start).total_seconds()))


def format_duration(seconds: int) -> str:
    """Render seconds as "1h 2m 3s", omitting zero parts.

    Example:
        >>> format_duration(0)
        '0s'
        >>> format_duration(3600)
        '1h'
        >>> format_duration(3725)
        '1h 2m 5s'
    """
    if seconds <= 0:
        return "0s"

    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def format_clock(seconds: int) -> str:
    """Render seconds as zero-padded "HHh MMm" (seconds dropped).

    Example:
        >>> format_clock(3725)
        '01h 02m'
    """
    seconds = max(0, seconds)
    hours, remainder = divmod(seconds, 3600)
    return f"{hours:02d}h {remainder // 60:02d}m"
