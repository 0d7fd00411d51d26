"""
Helpers for "HH:MM" wall-clock times used by schedules and appointments.

Times are compared as minutes since midnight. Intervals are half-open,
``[start, end)``, so back-to-back bookings do not overlap.
"""
import re
from datetime import date
from typing import Optional

MINUTES_PER_DAY = 24 * 60
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def is_valid_time(value: Optional[str]) -> bool:
    return bool(value) and bool(_TIME_RE.match(value))


def to_minutes(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight; raises ValueError on bad input."""
    match = _TIME_RE.match(value or "")
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return int(match.group(1)) * 60 + int(match.group(2))


def from_minutes(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def add_minutes(value: str, minutes: int) -> str:
    """End time for a booking; wraps past midnight."""
    return from_minutes(to_minutes(value) + minutes)


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    return start_a < end_b and start_b < end_a


def day_of_week(value: date) -> int:
    """Day index with Sunday as 0, matching WorkSchedule.day_of_week."""
    return (value.weekday() + 1) % 7
