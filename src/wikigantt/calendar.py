"""Working-day arithmetic: off-day calendars, duration adjustment, end dates."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable

DATE_FORMAT = "%Y-%m-%d"

ONE_DAY = timedelta(days=1)

# date.weekday() numbering
WEEKDAY_NAMES = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

OffDayPredicate = Callable[[date], bool]


def as_date(value: date | datetime) -> date:
    """Drop any time-of-day component."""
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_date(text: str) -> date:
    """Parse ``YYYY-MM-DD``; single-digit months and days are accepted."""
    return datetime.strptime(text.strip(), DATE_FORMAT).date()


def format_date(day: date) -> str:
    return day.strftime(DATE_FORMAT)


@dataclass(frozen=True)
class OffDayCalendar:
    """Non-working days: a weekly pattern plus holiday dates.

    ``yearly_holidays`` holds ``(month, day)`` pairs that repeat every year.
    """

    off_weekdays: frozenset[int] = frozenset({5, 6})
    holidays: frozenset[date] = field(default_factory=frozenset)
    yearly_holidays: frozenset[tuple[int, int]] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "off_weekdays", frozenset(self.off_weekdays))
        object.__setattr__(self, "holidays", frozenset(as_date(d) for d in self.holidays))
        object.__setattr__(self, "yearly_holidays", frozenset(self.yearly_holidays))
        bad = [d for d in self.off_weekdays if d not in range(7)]
        if bad:
            raise ValueError(f"Weekday numbers must be 0-6 (Monday=0), got {sorted(bad)}")
        if len(self.off_weekdays) == 7:
            raise ValueError("A calendar needs at least one working weekday")

    def is_off_day(self, day: date | datetime) -> bool:
        day = as_date(day)
        if day.weekday() in self.off_weekdays:
            return True
        if day in self.holidays:
            return True
        return (day.month, day.day) in self.yearly_holidays


def adjust_duration(
    start: date | datetime,
    nominal_days: int,
    is_off_day: OffDayPredicate,
) -> int:
    """Return the calendar-day length needed to fit *nominal_days* working days.

    Walks one calendar day at a time from *start*; every off-day met before
    the (growing) end pushes the end out by one more day.
    """
    start = as_date(start)
    adjusted = nominal_days
    cur = start
    while cur < start + timedelta(days=adjusted):
        if is_off_day(cur):
            adjusted += 1
        cur += ONE_DAY
    return adjusted


def end_date(start: date | datetime, duration: int) -> date:
    """Inclusive end of a task lasting *duration* calendar days."""
    return as_date(start) + timedelta(days=max(duration - 1, 0))


def add_business_days(
    start: date | datetime,
    days: int,
    is_off_day: OffDayPredicate | None = None,
) -> date:
    """Move forward *days* working days from *start*.

    Zero days returns *start* itself, even when it falls on an off-day.
    """
    if is_off_day is None:
        is_off_day = OffDayCalendar().is_off_day
    cur = as_date(start)
    remaining = days
    while remaining > 0:
        cur += ONE_DAY
        if not is_off_day(cur):
            remaining -= 1
    return cur
