"""Injectable clocks for overdue classification."""

from __future__ import annotations

import datetime
import logging
import os
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

TEST_TIME_ENV_VAR = "CLINICBOT_TEST_TIME"


@runtime_checkable
class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime.datetime: ...


class SystemClock:
    """Wall clock with test time override support."""

    def now(self) -> datetime.datetime:
        """Return current UTC time with tzinfo.

        Can be overridden for testing via CLINICBOT_TEST_TIME environment variable.
        Format: ISO 8601 datetime string (e.g., "2024-03-05T08:20:00-07:00")

        Returns:
            Current time in UTC with timezone info
        """
        test_time = os.environ.get(TEST_TIME_ENV_VAR)
        if test_time:
            try:
                from dateutil import parser as date_parser

                dt = date_parser.isoparse(test_time)
                if dt.tzinfo is not None:
                    return dt.astimezone(datetime.UTC)
                # Assume naive datetime is already UTC
                return dt.replace(tzinfo=datetime.UTC)

            except Exception as e:
                logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV_VAR, test_time, e)
                # Fall through to real time

        return datetime.datetime.now(datetime.UTC)


class FixedClock:
    """Clock frozen at a given instant. Used by tests and batch jobs."""

    def __init__(self, instant: datetime.datetime) -> None:
        self._instant = instant

    def now(self) -> datetime.datetime:
        return self._instant

    def advance(self, delta: datetime.timedelta) -> None:
        self._instant = self._instant + delta


_default_clock: Clock = SystemClock()


def get_default_clock() -> Clock:
    return _default_clock


def set_default_clock(clock: Clock | None) -> None:
    """Replace the process-wide default clock (None restores the system clock)."""
    global _default_clock  # noqa: PLW0603
    _default_clock = clock if clock is not None else SystemClock()


def resolve_now(now: datetime.datetime | Clock | None) -> datetime.datetime:
    """Turn an explicit instant, a Clock, or None into a datetime.

    Args:
        now: Instant to use as-is, a Clock to query, or None for the default clock

    Returns:
        The current time to classify against
    """
    if now is None:
        return _default_clock.now()
    if isinstance(now, datetime.datetime):
        return now
    return now.now()
