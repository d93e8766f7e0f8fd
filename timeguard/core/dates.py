"""
Date helpers — ISO weeks, working days, month arithmetic and UTC normalization.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone

from timeguard.models.config_models import WorkingDays


def ensure_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def week_start(day: date) -> date:
    """Monday of the ISO week containing `day`."""
    return day - timedelta(days=day.weekday())


def week_end(start: date) -> date:
    return start + timedelta(days=6)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max, tzinfo=timezone.utc)


def days_back(as_of: datetime, days: int) -> date:
    """Calendar date `days` days before the as-of date."""
    return as_of.date() - timedelta(days=days)


def working_days_between(start: date, end: date, working_days: WorkingDays) -> int:
    """Number of working days in [start, end], both inclusive."""
    if end < start:
        return 0
    count = 0
    current = start
    while current <= end:
        if working_days.is_working_day(current):
            count += 1
        current += timedelta(days=1)
    return count


def subtract_months(moment: datetime, months: int) -> datetime:
    """Same wall-clock moment `months` months earlier, clamped to month end."""
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def months_between(earlier: datetime, later: datetime) -> int:
    """Approximate whole months elapsed, using 30-day months."""
    return round((later - earlier).total_seconds() / (60 * 60 * 24 * 30))
