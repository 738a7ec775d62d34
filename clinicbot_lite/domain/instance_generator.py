"""Recurrence expansion for clinic task definitions.

generate() turns one stored Task into the ordered list of synthetic
occurrences that fall inside a date range. It is a pure function: the Task
is never mutated and every RecurringInstance is an independent snapshot.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Iterator
from typing import Optional

from dateutil.relativedelta import relativedelta

from ..core.clock import Clock, resolve_now
from ..core.config_manager import DEFAULT_ENGINE_CONFIG, EngineConfig
from .date_range import DateLike, clip, day_of, is_reversed, iter_month_starts
from .overdue_classifier import (
    MIDM_FIRST_CYCLE_END,
    MIDM_SECOND_CYCLE_END,
    MIDM_SECOND_CYCLE_START,
    coerce_pattern,
    end_of_month_deadline,
    end_of_week,
    end_of_week_deadline,
    is_overdue,
    last_day_of_month,
    mid_month_deadline,
    overdue_reason,
)
from .task_models import (
    SPLIT_CYCLE_PATTERNS,
    STANDARD_PATTERNS,
    CyclePeriod,
    RecurrencePattern,
    RecurringInstance,
    Task,
)

logger = logging.getLogger(__name__)

_DAY_STEPS: dict[RecurrencePattern, int] = {
    RecurrencePattern.DAILY: 1,
    RecurrencePattern.WEEKLY: 7,
    RecurrencePattern.BIWEEKLY: 14,
}

_MONTH_STEPS: dict[RecurrencePattern, int] = {
    RecurrencePattern.MONTHLY: 1,
    RecurrencePattern.QUARTERLY: 3,
    RecurrencePattern.YEARLY: 12,
}

# Carry-over window at the start of a month for eom tasks
EOM_START_WINDOW_END = 5
EOM_END_WINDOW_START = 25

# (day, period, original due date)
_Occurrence = tuple[datetime.date, Optional[CyclePeriod], datetime.datetime]


def instance_id(
    parent_task_id: str,
    day: datetime.date,
    pattern: RecurrencePattern,
    period: CyclePeriod | None = None,
) -> str:
    """Deterministic synthetic id for an occurrence.

    Standard patterns: ``{parent}_{YYYY-MM-DD}``; eow: ``{parent}_eow_{date}``;
    midm/eom include the cycle period: ``{parent}_midm_first_{date}``.
    """
    stamp = day.isoformat()
    if pattern == RecurrencePattern.EOW:
        return f"{parent_task_id}_eow_{stamp}"
    if pattern in (RecurrencePattern.MIDM, RecurrencePattern.EOM) and period is not None:
        return f"{parent_task_id}_{pattern.value}_{period.value}_{stamp}"
    return f"{parent_task_id}_{stamp}"


def _standard_occurrences(
    task: Task,
    pattern: RecurrencePattern,
    start_day: datetime.date,
    end_day: datetime.date,
    cap: int,
) -> Iterator[_Occurrence]:
    anchor = task.anchor_date
    first = max(anchor.date(), start_day)
    due_time = anchor.timetz()

    for step in range(cap):
        if pattern in _DAY_STEPS:
            day = first + datetime.timedelta(days=_DAY_STEPS[pattern] * step)
        else:
            # Offset from the first candidate so the 31st clamps without drifting
            day = first + relativedelta(months=_MONTH_STEPS[pattern] * step)

        if day > end_day:
            return
        if day < start_day:
            continue
        yield day, None, datetime.datetime.combine(day, due_time)

    logger.debug(
        "Recurrence expansion for task %s limited to %d occurrences", task.id, cap
    )


def _eow_occurrences(start_day: datetime.date, end_day: datetime.date) -> Iterator[_Occurrence]:
    # Every day of each overlapping Monday-Sunday week stays open until Sunday
    week_start = start_day - datetime.timedelta(days=start_day.weekday())
    while week_start <= end_day:
        deadline = end_of_week_deadline(week_start)
        for day in clip(week_start, end_of_week(week_start), start_day, end_day):
            yield day, None, deadline
        week_start += datetime.timedelta(days=7)


def _midm_occurrences(start_day: datetime.date, end_day: datetime.date) -> Iterator[_Occurrence]:
    for month in iter_month_starts(start_day, end_day):
        windows = (
            (CyclePeriod.FIRST, month, month.replace(day=MIDM_FIRST_CYCLE_END)),
            (
                CyclePeriod.SECOND,
                month.replace(day=MIDM_SECOND_CYCLE_START),
                month.replace(day=MIDM_SECOND_CYCLE_END),
            ),
        )
        for period, window_start, window_end in windows:
            deadline = mid_month_deadline(month, period)
            for day in clip(window_start, window_end, start_day, end_day):
                yield day, period, deadline


def _eom_occurrences(start_day: datetime.date, end_day: datetime.date) -> Iterator[_Occurrence]:
    for month in iter_month_starts(start_day, end_day):
        last = month.replace(day=last_day_of_month(month.year, month.month))
        deadline = end_of_month_deadline(month)
        windows = (
            (CyclePeriod.START, month, month.replace(day=EOM_START_WINDOW_END)),
            (CyclePeriod.END, month.replace(day=EOM_END_WINDOW_START), last),
        )
        for period, window_start, window_end in windows:
            for day in clip(window_start, window_end, start_day, end_day):
                yield day, period, deadline


_SPLIT_CYCLE_OCCURRENCES: dict[
    RecurrencePattern,
    Callable[[datetime.date, datetime.date], Iterator[_Occurrence]],
] = {
    RecurrencePattern.EOW: _eow_occurrences,
    RecurrencePattern.MIDM: _midm_occurrences,
    RecurrencePattern.EOM: _eom_occurrences,
}


def _build_instance(
    task: Task,
    pattern: RecurrencePattern,
    occurrence: _Occurrence,
    now: datetime.datetime,
) -> RecurringInstance:
    day, period, due = occurrence
    instance = RecurringInstance(
        id=instance_id(task.id, day, pattern, period),
        parent_task_id=task.id,
        instance_date=day,
        original_due_date=due,
        recurrence=pattern,
        period=period,
        status=task.status,
        assigned_to=task.assigned_to,
        claimed_by=task.claimed_by,
        completed_at=task.completed_at,
        completed_by=task.completed_by,
        due_type=task.due_type,
        title=task.title,
        description=task.description,
        priority=task.priority,
        category=task.category,
        clinic_id=task.clinic_id,
        template_id=task.template_id,
        target_role=task.target_role,
    )
    if is_overdue(instance, now):
        return instance.model_copy(
            update={"is_overdue": True, "overdue_reason": overdue_reason(instance)}
        )
    return instance


def generate(
    task: Task,
    start: DateLike,
    end: DateLike,
    *,
    now: datetime.datetime | Clock | None = None,
    config: EngineConfig | None = None,
) -> list[RecurringInstance]:
    """Generate the occurrences of a recurring task inside [start, end].

    Args:
        task: Stored task definition
        start: First day of the range (date or datetime)
        end: Last day of the range (date or datetime)
        now: Instant used to classify overdue occurrences (defaults to the clock)
        config: Engine configuration (occurrence cap)

    Returns:
        Instances in ascending date order; empty for reversed ranges,
        non-recurring tasks and completed tasks
    """
    if is_reversed(start, end):
        return []
    if task.is_completed:
        return []

    pattern = coerce_pattern(task.recurrence)
    if pattern is None:
        logger.warning(
            "Task %s has unsupported recurrence %r; no occurrences generated",
            task.id,
            task.recurrence,
        )
        return []
    if pattern == RecurrencePattern.NONE:
        return []

    cfg = config or DEFAULT_ENGINE_CONFIG
    start_day, end_day = day_of(start), day_of(end)

    if pattern in STANDARD_PATTERNS:
        occurrences = _standard_occurrences(task, pattern, start_day, end_day, cfg.occurrence_cap)
    elif pattern in SPLIT_CYCLE_PATTERNS:
        occurrences = _SPLIT_CYCLE_OCCURRENCES[pattern](start_day, end_day)
    else:
        logger.warning("Task %s has no generator for pattern %s", task.id, pattern.value)
        return []

    current = resolve_now(now)
    instances = [_build_instance(task, pattern, occ, current) for occ in occurrences]

    logger.debug(
        "Generated %d %s instance(s) for task %s in %s..%s",
        len(instances),
        pattern.value,
        task.id,
        start_day,
        end_day,
    )
    return instances
