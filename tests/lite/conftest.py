from collections.abc import AsyncIterator, Callable, Generator
from datetime import datetime
from typing import Any

import pytest

from clinicbot_lite.core.clock import FixedClock, set_default_clock
from clinicbot_lite.core.http_client import close_all_clients
from clinicbot_lite.domain.task_models import Task, parse_task


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, Any, None]:
    """Ensure engine environment variables are cleared between tests.

    Some tests set CLINICBOT_TEST_TIME to freeze the system clock. Clearing
    every CLINICBOT_* variable keeps a developer's shell from leaking into
    configuration tests.
    """
    for key in [
        "CLINICBOT_TEST_TIME",
        "CLINICBOT_DEBUG",
        "CLINICBOT_LOG_LEVEL",
        "CLINICBOT_MAX_OCCURRENCES",
        "CLINICBOT_WORKING_CALENDAR_URL",
        "CLINICBOT_WORKING_CALENDAR_TOKEN",
        "CLINICBOT_WORKING_CALENDAR_TIMEOUT",
        "CLINICBOT_WORKING_CALENDAR_CONCURRENCY",
        "CLINICBOT_SETTINGS_CACHE_TTL",
    ]:
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture(autouse=True)
def reset_default_clock() -> Generator[None, Any, None]:
    """Restore the process-wide system clock after each test."""
    yield
    set_default_clock(None)


@pytest.fixture
async def http_cleanup() -> AsyncIterator[None]:
    """Close shared HTTP clients created during a test."""
    yield
    await close_all_clients()


@pytest.fixture
def fixed_now() -> datetime:
    """Deterministic 'now': Tuesday 2024-03-05 12:00 (naive wall clock)."""
    return datetime(2024, 3, 5, 12, 0, 0)


@pytest.fixture
def fixed_clock(fixed_now: datetime) -> FixedClock:
    return FixedClock(fixed_now)


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Return a builder for Task snapshots from store-shaped keyword data.

    Defaults: pending, non-recurring, created 2024-03-01 08:00. Keyword
    arguments use store field names; `due_type` and `due_date` may be given
    with underscores.
    """
    counter = {"n": 0}

    def builder(**fields: Any) -> Task:
        counter["n"] += 1
        record: dict[str, Any] = {
            "id": f"task-{counter['n']}",
            "status": "pending",
            "recurrence": "none",
            "created_at": "2024-03-01T08:00:00",
        }
        record.update(fields)
        return parse_task(record)

    return builder
