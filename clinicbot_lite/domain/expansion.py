"""Expansion of a task collection into display-ready items for a date range."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable

from ..core.clock import Clock, resolve_now
from ..core.config_manager import EngineConfig
from .date_range import DateLike, day_of, is_reversed
from .instance_generator import generate
from .task_models import Task, TaskOrInstance

logger = logging.getLogger(__name__)


def completed_in_range(task: Task, start_day: datetime.date, end_day: datetime.date) -> bool:
    """True when a completed task's completion day falls inside the range."""
    return start_day <= task.completion_reference.date() <= end_day


def expand(
    tasks: Iterable[Task],
    start: DateLike,
    end: DateLike,
    *,
    now: datetime.datetime | Clock | None = None,
    config: EngineConfig | None = None,
) -> list[TaskOrInstance]:
    """Expand tasks into the tasks and occurrences visible in [start, end].

    Rules per task:
    - recurring and open: its generated instances, or the raw task when the
      range produces none, so it never silently disappears
    - recurring and completed: the raw task once, only if it was completed
      inside the range (never instance-expanded)
    - non-recurring: the raw task once

    Args:
        tasks: Stored task snapshots
        start: First day of the range
        end: Last day of the range
        now: Instant used for overdue classification
        config: Engine configuration

    Returns:
        Items in input order, instances ascending by date within each task.
        No two items share an id.
    """
    if is_reversed(start, end):
        return []

    start_day, end_day = day_of(start), day_of(end)
    current = resolve_now(now)

    results: list[TaskOrInstance] = []
    seen: set[str] = set()

    def emit(item: TaskOrInstance) -> None:
        if item.id in seen:
            logger.debug("Skipping duplicate item %s", item.id)
            return
        seen.add(item.id)
        results.append(item)

    for task in tasks:
        if not task.is_recurring:
            emit(task)
            continue

        if task.is_completed:
            if completed_in_range(task, start_day, end_day):
                emit(task)
            continue

        instances = generate(task, start, end, now=current, config=config)
        if not instances:
            emit(task)
            continue

        if task.id in seen:
            logger.debug("Skipping duplicate task %s", task.id)
            continue
        # Reserve the parent id so a repeated task record is not expanded twice
        seen.add(task.id)
        for instance in instances:
            emit(instance)

    logger.debug(
        "Expanded %d item(s) for range %s..%s", len(results), start_day, end_day
    )
    return results


def for_range(
    tasks: Iterable[Task],
    start: DateLike,
    end: DateLike,
    *,
    now: datetime.datetime | Clock | None = None,
    config: EngineConfig | None = None,
) -> list[TaskOrInstance]:
    """Alias of expand()."""
    return expand(tasks, start, end, now=now, config=config)
