"""Working-day aware wrappers around generation, expansion and day queries.

Each candidate occurrence costs one lookup against the working-calendar
service. Lookups run concurrently under a semaphore and results are
reassembled in generation order, so output does not depend on latency.
A failed or slow lookup counts as a working day.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from collections.abc import Iterable, Sequence

from ..core.clock import Clock, resolve_now
from ..core.config_manager import DEFAULT_ENGINE_CONFIG, EngineConfig
from ..domain.date_bucket import for_date
from ..domain.date_range import DateLike, day_of
from ..domain.expansion import expand
from ..domain.instance_generator import generate
from ..domain.task_models import RecurringInstance, Task, TaskOrInstance
from .service import WorkingCalendarService

logger = logging.getLogger(__name__)


async def check_working_day(
    service: WorkingCalendarService,
    clinic_id: str,
    day: datetime.date,
    *,
    timeout: float | None = None,
) -> bool:
    """Ask the service whether day is a working day, failing open.

    Args:
        service: Working-calendar service
        clinic_id: Clinic whose calendar applies
        day: Day to check
        timeout: Seconds to wait before giving up (None waits indefinitely)

    Returns:
        The service's answer, or True if the lookup raised or timed out
    """
    try:
        return bool(await asyncio.wait_for(service.is_working_day(clinic_id, day), timeout))
    except TimeoutError:
        logger.warning(
            "Working-day lookup for clinic %s on %s timed out (timeout=%s); treating as working day",
            clinic_id,
            day,
            timeout,
        )
        return True
    except Exception as e:
        logger.warning(
            "Working-day lookup for clinic %s on %s failed (%s); treating as working day",
            clinic_id,
            day,
            e,
        )
        return True


async def _working_day_flags(
    days: Sequence[datetime.date],
    clinic_id: str,
    service: WorkingCalendarService,
    config: EngineConfig,
) -> list[bool]:
    semaphore = asyncio.Semaphore(config.working_calendar_concurrency)

    async def bounded(day: datetime.date) -> bool:
        async with semaphore:
            return await check_working_day(
                service, clinic_id, day, timeout=config.working_calendar_timeout_seconds
            )

    # gather keeps submission order regardless of completion order
    return list(await asyncio.gather(*(bounded(day) for day in days)))


async def _drop_non_working(
    items: list[TaskOrInstance],
    clinic_id: str,
    service: WorkingCalendarService,
    config: EngineConfig,
) -> list[TaskOrInstance]:
    instances = [item for item in items if isinstance(item, RecurringInstance)]
    flags = await _working_day_flags(
        [instance.instance_date for instance in instances], clinic_id, service, config
    )
    excluded = {instance.id for instance, ok in zip(instances, flags) if not ok}

    if excluded:
        logger.debug(
            "Removed %d instance(s) on non-working days for clinic %s", len(excluded), clinic_id
        )
    return [item for item in items if item.id not in excluded]


async def generate_working_day_instances(
    task: Task,
    start: DateLike,
    end: DateLike,
    clinic_id: str,
    service: WorkingCalendarService,
    *,
    now: datetime.datetime | Clock | None = None,
    config: EngineConfig | None = None,
) -> list[RecurringInstance]:
    """generate(), keeping only instances on the clinic's working days."""
    cfg = config or DEFAULT_ENGINE_CONFIG
    instances = generate(task, start, end, now=now, config=cfg)
    if not instances:
        return []

    flags = await _working_day_flags(
        [instance.instance_date for instance in instances], clinic_id, service, cfg
    )
    return [instance for instance, ok in zip(instances, flags) if ok]


async def expand_working_day(
    tasks: Iterable[Task],
    start: DateLike,
    end: DateLike,
    clinic_id: str,
    service: WorkingCalendarService,
    *,
    now: datetime.datetime | Clock | None = None,
    config: EngineConfig | None = None,
) -> list[TaskOrInstance]:
    """expand(), with occurrences on non-working days removed.

    Stored tasks in the expansion are kept as they are; only generated
    occurrences are subject to the working-day check.
    """
    cfg = config or DEFAULT_ENGINE_CONFIG
    items = expand(tasks, start, end, now=resolve_now(now), config=cfg)
    if not items:
        return []
    return await _drop_non_working(items, clinic_id, service, cfg)


async def for_working_day(
    tasks: Iterable[Task],
    day: DateLike,
    clinic_id: str,
    service: WorkingCalendarService,
    *,
    now: datetime.datetime | Clock | None = None,
    config: EngineConfig | None = None,
) -> list[TaskOrInstance]:
    """for_date(), or [] without expanding anything when day is not a working day."""
    cfg = config or DEFAULT_ENGINE_CONFIG
    target = day_of(day)

    working = await check_working_day(
        service, clinic_id, target, timeout=cfg.working_calendar_timeout_seconds
    )
    if not working:
        logger.debug("%s is not a working day for clinic %s", target, clinic_id)
        return []

    # Every instance of this bucket sits on the already-approved day
    return for_date(tasks, target, now=now, config=cfg)
