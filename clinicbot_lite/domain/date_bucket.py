"""Narrow an expansion down to the items that belong on one calendar day."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable

from ..core.clock import Clock
from ..core.config_manager import EngineConfig
from .date_range import DateLike, day_of, end_of_day, start_of_day
from .expansion import expand
from .task_models import (
    DueType,
    RecurrencePattern,
    RecurringInstance,
    Task,
    TaskOrInstance,
    item_key,
)

logger = logging.getLogger(__name__)

# Due types that keep a non-recurring task on every day from its creation
_FIXED_DUE_TYPES = frozenset(DueType) - {DueType.NONE, DueType.CUSTOM}


def matches_date(item: TaskOrInstance, day: datetime.date) -> bool:
    """Apply the day-matching cascade to a single item. First rule wins.

    1. Instances match on their instance_date.
    2. Completed tasks match on their completion day.
    3. Tasks with an explicit due date match on that day.
    4. Open daily tasks without a due date match every day.
    5. Other open recurring "anytime" tasks without a due date match every day.
    6. Non-recurring tasks with a fixed due type match every day from creation.
    7. Nothing else matches.
    """
    if isinstance(item, RecurringInstance):
        return item.instance_date == day

    task: Task = item
    if task.is_completed:
        return task.completion_reference.date() == day

    explicit_due = task.explicit_due_date
    if explicit_due is not None:
        return explicit_due.date() == day

    if task.recurrence == RecurrencePattern.DAILY:
        return True

    if task.is_recurring:
        return task.due_type == DueType.ANYTIME

    if task.due_type in _FIXED_DUE_TYPES:
        # Stays listed until handled; nothing expires it automatically
        return task.created_at.date() <= day

    return False


def for_date(
    tasks: Iterable[Task],
    day: DateLike,
    *,
    now: datetime.datetime | Clock | None = None,
    config: EngineConfig | None = None,
) -> list[TaskOrInstance]:
    """Items to show on one calendar day.

    Args:
        tasks: Stored task snapshots
        day: The calendar day (a datetime is reduced to its date)
        now: Instant used for overdue classification
        config: Engine configuration

    Returns:
        Matching items in expansion order, at most one per stored task
    """
    target = day_of(day)
    expanded = expand(tasks, start_of_day(target), end_of_day(target), now=now, config=config)

    results: list[TaskOrInstance] = []
    seen_keys: set[str] = set()
    for item in expanded:
        if not matches_date(item, target):
            continue
        key = item_key(item)
        if key in seen_keys:
            continue
        seen_keys.add(key)
        results.append(item)

    logger.debug(
        "%d of %d expanded item(s) fall on %s", len(results), len(expanded), target
    )
    return results
