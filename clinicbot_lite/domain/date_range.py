"""Range bound helpers shared by the generator, expansion and day queries."""

from __future__ import annotations

import datetime
from collections.abc import Iterator
from typing import Union

from dateutil.relativedelta import relativedelta

DateLike = Union[datetime.date, datetime.datetime]


def day_of(value: DateLike) -> datetime.date:
    """Calendar day of a date or datetime, in the value's own zone."""
    if isinstance(value, datetime.datetime):
        return value.date()
    return value


def start_of_day(day: DateLike) -> datetime.datetime:
    if isinstance(day, datetime.datetime):
        return day.replace(hour=0, minute=0, second=0, microsecond=0)
    return datetime.datetime.combine(day, datetime.time.min)


def end_of_day(day: DateLike) -> datetime.datetime:
    if isinstance(day, datetime.datetime):
        return day.replace(hour=23, minute=59, second=59, microsecond=999999)
    return datetime.datetime.combine(day, datetime.time.max)


def _comparable(value: DateLike, *, upper: bool) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value.replace(tzinfo=None)
    return end_of_day(value) if upper else start_of_day(value)


def is_reversed(start: DateLike, end: DateLike) -> bool:
    """True when end lies before start.

    Plain dates count as whole days. Aware and naive datetimes are compared
    on their wall-clock values so mixed inputs never raise.
    """
    return _comparable(end, upper=True) < _comparable(start, upper=False)


def iter_days(first: datetime.date, last: datetime.date) -> Iterator[datetime.date]:
    day = first
    while day <= last:
        yield day
        day += datetime.timedelta(days=1)


def iter_month_starts(first: datetime.date, last: datetime.date) -> Iterator[datetime.date]:
    """First day of every month overlapping [first, last]."""
    month = first.replace(day=1)
    while month <= last:
        yield month
        month += relativedelta(months=1)


def clip(
    window_start: datetime.date,
    window_end: datetime.date,
    start: datetime.date,
    end: datetime.date,
) -> Iterator[datetime.date]:
    """Days of the window that also fall inside [start, end]."""
    return iter_days(max(window_start, start), min(window_end, end))
