"""Clock and calendar helpers.

All reminder math happens at local-date granularity: a timestamp is
reduced to its calendar date before days are counted.

Weekday indices follow the Sunday-first convention used by the reminder
table (0 = Sunday .. 6 = Saturday), not Python's Monday-first weekday().
"""

from datetime import date, datetime, time, timedelta
from typing import Union

DateLike = Union[date, datetime]


def to_date(value: DateLike) -> date:
    """Reduce a date or datetime to its calendar date."""
    if isinstance(value, datetime):
        return value.date()
    return value


def start_of_day(value: DateLike) -> datetime:
    """Return local midnight of the given day."""
    return datetime.combine(to_date(value), time.min)


def days_between(start: DateLike, end: DateLike) -> int:
    """Whole calendar days from start to end.

    Negative when end precedes start.

    Examples:
        >>> days_between(date(2025, 1, 1), date(2025, 1, 31))
        30
    """
    return (to_date(end) - to_date(start)).days


def add_days(value: DateLike, days: int) -> date:
    """Return the calendar date ``days`` after value."""
    return to_date(value) + timedelta(days=days)


def weekday_index(value: DateLike) -> int:
    """Return 0 for Sunday through 6 for Saturday."""
    # date.weekday(): Monday=0 .. Sunday=6
    return (to_date(value).weekday() + 1) % 7


WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def day_name(index: int) -> str:
    """Return weekday name for a Sunday-first index."""
    return WEEKDAY_NAMES[index]


def today() -> date:
    """Return the local calendar date."""
    return date.today()


def now() -> datetime:
    """Return the local wall-clock time."""
    return datetime.now()
