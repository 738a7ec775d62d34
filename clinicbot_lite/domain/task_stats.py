"""Aggregate counts over a task list for dashboard summaries."""

from __future__ import annotations

import datetime
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any

from ..core.clock import Clock, resolve_now
from .date_bucket import matches_date
from .overdue_classifier import is_overdue
from .task_models import RecurringInstance, TaskOrInstance, TaskStatus


@dataclass
class TaskStats:
    """Counts shown on the dashboard header."""

    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    overdue: int = 0
    due_today: int = 0
    unassigned: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _past_explicit_due(item: TaskOrInstance, today: datetime.date) -> bool:
    if isinstance(item, RecurringInstance) or item.is_completed:
        return False
    due = item.explicit_due_date
    return due is not None and due.date() < today


def calculate_task_stats(
    items: Iterable[TaskOrInstance],
    now: datetime.datetime | Clock | None = None,
    today: datetime.date | None = None,
) -> TaskStats:
    """Count statuses, overdue, due-today and unassigned items.

    An item is overdue when the classifier flags it or, for a stored open
    task, when its explicit due day is already behind today.

    Args:
        items: Tasks and/or instances, typically an expansion result
        now: Current time or clock
        today: Day used for due-today checks (defaults to now's date)

    Returns:
        TaskStats with all counters populated
    """
    current = resolve_now(now)
    reference_day = today or current.date()

    stats = TaskStats()
    for item in items:
        stats.total += 1

        if item.status == TaskStatus.PENDING:
            stats.pending += 1
        elif item.status == TaskStatus.IN_PROGRESS:
            stats.in_progress += 1
        elif item.status == TaskStatus.COMPLETED:
            stats.completed += 1

        if matches_date(item, reference_day):
            stats.due_today += 1

        if not item.assigned_to:
            stats.unassigned += 1

        if is_overdue(item, current) or _past_explicit_due(item, reference_day):
            stats.overdue += 1

    return stats
