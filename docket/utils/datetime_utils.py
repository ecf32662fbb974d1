"""
Date and time-of-day utilities.

Calendar arithmetic inside the scheduler runs on integer minutes-of-day so
that interval comparisons are exact; hours only appear at the model edges.
"""

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator

# UTC timezone constant
UTC = timezone.utc

MINUTES_PER_DAY = 24 * 60


def now_utc() -> datetime:
    """
    Get current UTC datetime (timezone-aware).

    Replaces datetime.utcnow() which is deprecated in Python 3.12+.

    Returns:
        datetime: Current UTC time with tzinfo set to UTC
    """
    return datetime.now(UTC)


def hours_to_minutes(hours: float) -> int:
    """
    Convert decimal hours to whole minutes, rounding partial minutes up.

    Any positive duration occupies at least one minute. Float noise is
    rounded away first so 0.1h stays 6 minutes.
    """
    return math.ceil(round(hours * 60, 6))


def minutes_to_hours(minutes: int) -> float:
    return round(minutes / 60, 4)


def time_to_minutes(value: time) -> int:
    """
    Convert a time-of-day to minutes after midnight.

    Seconds are truncated.
    """
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    """
    Convert minutes after midnight to a time-of-day.

    Values at or past midnight are clamped to 23:59 because `time` cannot
    express 24:00.

    Example:
        >>> minutes_to_time(750)
        datetime.time(12, 30)
    """
    if minutes < 0:
        raise ValueError(f"minutes must be non-negative, got {minutes}")
    minutes = min(minutes, MINUTES_PER_DAY - 1)
    return time(hour=minutes // 60, minute=minutes % 60)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Iterate dates from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
