"""Calendar-aligned challenge windows.

All windows are half-open ``[start, end)`` intervals in UTC.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

DAILY = "daily"
WEEKLY = "weekly"
MONTHLY = "monthly"
HOT = "hot"

CADENCES = (DAILY, WEEKLY, MONTHLY, HOT)


@dataclass(frozen=True)
class Window:
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= ensure_utc(moment) < self.end


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round trip)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_of_day(dt: datetime | date) -> datetime:
    """Midnight UTC of the day containing dt."""
    d = ensure_utc(dt).date() if isinstance(dt, datetime) else dt
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def add_months(dt: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length."""
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def day_window(now: datetime | None = None) -> Window:
    """Midnight-to-midnight window for the day containing now."""
    start = start_of_day(now or utcnow())
    return Window(start, start + timedelta(days=1))


def week_window(now: datetime | None = None) -> Window:
    """Seven days starting at today's midnight."""
    start = start_of_day(now or utcnow())
    return Window(start, start + timedelta(days=7))


def month_window(now: datetime | None = None) -> Window:
    """Today's midnight to the same day next calendar month."""
    start = start_of_day(now or utcnow())
    return Window(start, add_months(start, 1))


def hot_window(now: datetime | None = None, hours: int = 4) -> Window:
    """From the start of the current hour for the next ``hours`` hours."""
    start = ensure_utc(now or utcnow()).replace(minute=0, second=0, microsecond=0)
    return Window(start, start + timedelta(hours=hours))


def window_for(cadence: str, now: datetime | None = None, hot_hours: int = 4) -> Window:
    """Canonical window for a cadence."""
    if cadence == DAILY:
        return day_window(now)
    if cadence == WEEKLY:
        return week_window(now)
    if cadence == MONTHLY:
        return month_window(now)
    if cadence == HOT:
        return hot_window(now, hot_hours)
    raise ValueError(f"Unknown cadence: {cadence}")


def seconds_until_midnight(now: datetime | None = None) -> int:
    """Whole seconds until the next UTC midnight, never less than 1."""
    now = ensure_utc(now or utcnow())
    remaining = day_window(now).end - now
    return max(1, int(remaining.total_seconds()))
