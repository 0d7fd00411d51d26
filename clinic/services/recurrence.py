"""
Date generation for recurring appointment patterns.

Walks day by day from ``start_date`` and keeps the days the pattern selects.
Generation stops at ``occurrences`` (capped at 52), at ``end_date``, or one
year after the start, whichever comes first.
"""
from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, List, Optional

from clinic.db.schemas.appointments import MAX_RECURRING_OCCURRENCES
from clinic.utils.timeslots import day_of_week

MAX_SPAN_DAYS = 365


def _week_index(start: date, current: date) -> int:
    """Whole seven-day periods elapsed since ``start``."""
    return (current - start).days // 7


def _months_between(start: date, current: date) -> int:
    return (current.year - start.year) * 12 + (current.month - start.month)


def _matches(frequency: str, interval: int, start: date, current: date, weekdays: set) -> bool:
    if frequency == "DAILY":
        return (current - start).days % interval == 0
    if frequency == "WEEKLY":
        return day_of_week(current) in weekdays and _week_index(start, current) % interval == 0
    if frequency == "BIWEEKLY":
        days = weekdays or {day_of_week(start)}
        return day_of_week(current) in days and _week_index(start, current) % 2 == 0
    if frequency == "MONTHLY":
        return current.day == start.day and _months_between(start, current) % interval == 0
    raise ValueError(f"Unknown recurrence frequency: {frequency}")


def generate_dates(
    *,
    frequency: str,
    start_date: date,
    interval: int = 1,
    days_of_week: Optional[Iterable[int]] = None,
    end_date: Optional[date] = None,
    occurrences: Optional[int] = None,
) -> List[date]:
    limit = min(occurrences or MAX_RECURRING_OCCURRENCES, MAX_RECURRING_OCCURRENCES)
    horizon = start_date + timedelta(days=MAX_SPAN_DAYS)
    weekdays = set(days_of_week or ())
    interval = max(1, interval)

    dates: List[date] = []
    current = start_date
    while len(dates) < limit and current <= horizon:
        if end_date is not None and current > end_date:
            break
        if _matches(frequency, interval, start_date, current, weekdays):
            dates.append(current)
        current += timedelta(days=1)
    return dates
