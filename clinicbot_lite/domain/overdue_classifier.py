"""Overdue classification for split-cycle recurrence patterns.

Only eow, midm and eom carry a deadline. Standard patterns simply keep
generating new occurrences and are never overdue here; callers that need a
different notion of lateness decide it elsewhere and can still use the
generic overdue_reason() text.
"""

from __future__ import annotations

import calendar
import datetime
import logging
from typing import Any

from ..core.clock import Clock, resolve_now
from .task_models import CyclePeriod, RecurrencePattern, RecurringInstance, TaskOrInstance

logger = logging.getLogger(__name__)

GENERIC_OVERDUE_REASON = "Overdue"

OVERDUE_REASONS: dict[RecurrencePattern, str] = {
    RecurrencePattern.EOW: "Not completed by end of week (Sunday)",
    RecurrencePattern.MIDM: "Not completed by mid-month deadline",
    RecurrencePattern.EOM: "Not completed by end of month",
}

# Last day of the first/second mid-month cycles
MIDM_FIRST_CYCLE_END = 7
MIDM_SECOND_CYCLE_START = 15
MIDM_SECOND_CYCLE_END = 21

_END_OF_DAY = datetime.time(23, 59, 59)


def coerce_pattern(value: Any) -> RecurrencePattern | None:
    """Return value as a RecurrencePattern, or None when it is not one."""
    if isinstance(value, RecurrencePattern):
        return value
    try:
        return RecurrencePattern(value)
    except ValueError:
        return None


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def end_of_week(day: datetime.date) -> datetime.date:
    """Sunday of the Monday-Sunday week containing day."""
    return day + datetime.timedelta(days=6 - day.weekday())


def _reference_day(item: TaskOrInstance) -> datetime.date:
    if isinstance(item, RecurringInstance):
        return item.instance_date
    return item.anchor_date.date()


def end_of_week_deadline(day: datetime.date) -> datetime.datetime:
    """Sunday 23:59:59 of the week containing day."""
    return datetime.datetime.combine(end_of_week(day), _END_OF_DAY)


def mid_month_deadline(day: datetime.date, period: CyclePeriod) -> datetime.datetime:
    """Day 7 (first cycle) or day 21 (second cycle) of day's month at 23:59:59."""
    deadline_day = MIDM_FIRST_CYCLE_END if period == CyclePeriod.FIRST else MIDM_SECOND_CYCLE_END
    return datetime.datetime.combine(day.replace(day=deadline_day), _END_OF_DAY)


def end_of_month_deadline(day: datetime.date) -> datetime.datetime:
    last = last_day_of_month(day.year, day.month)
    return datetime.datetime.combine(day.replace(day=last), _END_OF_DAY)


def mid_month_period(day: datetime.date) -> CyclePeriod | None:
    """Mid-month cycle containing day, or None between the two windows."""
    if day.day <= MIDM_FIRST_CYCLE_END:
        return CyclePeriod.FIRST
    if MIDM_SECOND_CYCLE_START <= day.day <= MIDM_SECOND_CYCLE_END:
        return CyclePeriod.SECOND
    return None


def cycle_deadline(pattern: RecurrencePattern, day: datetime.date) -> datetime.datetime | None:
    """Deadline of the cycle containing day, or None if the pattern has none.

    Args:
        pattern: Recurrence pattern of the task
        day: Calendar day of the occurrence

    Returns:
        Naive datetime at 23:59:59 of the cycle's last day
    """
    if pattern == RecurrencePattern.EOW:
        return end_of_week_deadline(day)

    if pattern == RecurrencePattern.MIDM:
        period = mid_month_period(day)
        if period is None:
            return None
        return mid_month_deadline(day, period)

    if pattern == RecurrencePattern.EOM:
        return end_of_month_deadline(day)

    return None


def overdue_deadline(item: TaskOrInstance) -> datetime.datetime | None:
    """Deadline after which item counts as overdue, if its pattern defines one."""
    pattern = coerce_pattern(item.recurrence)
    if pattern is None:
        return None
    return cycle_deadline(pattern, _reference_day(item))


def _is_past(deadline: datetime.datetime, now: datetime.datetime) -> bool:
    # Deadlines are wall-clock values in the caller's zone
    if now.tzinfo is not None:
        return now > deadline.replace(tzinfo=now.tzinfo)
    return now > deadline


def is_overdue(item: TaskOrInstance, now: datetime.datetime | Clock | None = None) -> bool:
    """Classify a task or instance as overdue at the given time.

    Args:
        item: Stored task or generated instance
        now: Current time, a Clock, or None for the default clock

    Returns:
        True only for non-completed eow/midm/eom items past their cycle deadline
    """
    if item.is_completed:
        return False

    deadline = overdue_deadline(item)
    if deadline is None:
        return False

    return _is_past(deadline, resolve_now(now))


def overdue_reason(item: TaskOrInstance) -> str:
    """Human-readable reason text for an overdue item."""
    pattern = coerce_pattern(item.recurrence)
    if pattern is None:
        return GENERIC_OVERDUE_REASON
    return OVERDUE_REASONS.get(pattern, GENERIC_OVERDUE_REASON)
