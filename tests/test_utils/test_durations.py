"""
Unit tests for tracker/utils/durations.py.

Tests verify:
- Whole-second truncation and clamping of elapsed time
- Human-readable duration rendering ("1h 2m 5s")
- Clock-style rendering ("01h 02m")
"""

from datetime import datetime, timedelta, timezone

import pytest

from tracker.utils.durations import elapsed_seconds, format_clock, format_duration

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestElapsedSeconds:
    def test_truncates_fractional_seconds(self):
        assert elapsed_seconds(START, START + timedelta(seconds=100, milliseconds=900)) == 100

    def test_backwards_clock_clamps_to_zero(self):
        assert elapsed_seconds(START, START - timedelta(seconds=30)) == 0

    @pytest.mark.parametrize("start,end", [(None, START), (START, None), (None, None)])
    def test_missing_bound_is_zero(self, start, end):
        assert elapsed_seconds(start, end) == 0


class TestFormatDuration:
    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0, "0s"),
            (-5, "0s"),
            (45, "45s"),
            (60, "1m"),
            (3600, "1h"),
            (3725, "1h 2m 5s"),
            (3605, "1h 5s"),
            (90061, "25h 1m 1s"),
        ],
    )
    def test_renders_non_zero_parts(self, seconds, expected):
        assert format_duration(seconds) == expected


class TestFormatClock:
    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0, "00h 00m"),
            (59, "00h 00m"),
            (3725, "01h 02m"),
            (36000, "10h 00m"),
            (-10, "00h 00m"),
        ],
    )
    def test_zero_padded_hours_and_minutes(self, seconds, expected):
        assert format_clock(seconds) == expected
