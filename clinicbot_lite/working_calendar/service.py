"""Working-calendar service clients (weekend policy and clinic holidays).

The working-calendar store belongs to the managed backend. This module only
defines the interface the engine consumes and two clients for it: an
in-memory one and one that reads the backend over HTTP.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
import time
from collections.abc import Callable, Mapping
from typing import Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.config_manager import EngineConfig
from ..core.http_client import get_shared_client, record_client_error, record_client_success
from ..exceptions import ConfigurationError, WorkingCalendarError

logger = logging.getLogger(__name__)

SATURDAY = 5


class WorkingCalendarSettings(BaseModel):
    """A clinic's working-day policy."""

    model_config = ConfigDict(frozen=True)

    weekends_are_workdays: bool = False
    holidays: list[datetime.date] = Field(default_factory=list)

    def is_working_day(self, day: datetime.date) -> bool:
        if day in self.holidays:
            return False
        if day.weekday() >= SATURDAY and not self.weekends_are_workdays:
            return False
        return True


@runtime_checkable
class WorkingCalendarService(Protocol):
    """Interface of the external working-calendar service."""

    async def is_working_day(self, clinic_id: str, day: datetime.date) -> bool: ...

    async def get_settings(self, clinic_id: str) -> WorkingCalendarSettings: ...


class StaticWorkingCalendarService:
    """In-memory working calendar keyed by clinic id."""

    def __init__(
        self,
        settings_by_clinic: Mapping[str, WorkingCalendarSettings] | None = None,
        default: WorkingCalendarSettings | None = None,
    ) -> None:
        self._settings = dict(settings_by_clinic or {})
        self._default = default or WorkingCalendarSettings()

    async def get_settings(self, clinic_id: str) -> WorkingCalendarSettings:
        return self._settings.get(clinic_id, self._default)

    async def is_working_day(self, clinic_id: str, day: datetime.date) -> bool:
        settings = await self.get_settings(clinic_id)
        return settings.is_working_day(day)


class HttpWorkingCalendarService:
    """Reads clinic working-calendar settings from the managed backend.

    Expects ``GET {base_url}/clinics/{clinic_id}/working-calendar`` to answer
    with ``{"weekends_are_workdays": bool, "holidays": ["YYYY-MM-DD", ...]}``.
    Settings are cached per clinic for ``cache_ttl_seconds``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        cache_ttl_seconds: int = 300,
        client_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        time_func: Callable[[], float] = time.monotonic,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.cache_ttl_seconds = cache_ttl_seconds
        if client_id is None:
            # Shared clients are cached by id; keep one per backend and transport
            client_id = f"working-calendar:{self.base_url}"
            if transport is not None:
                client_id = f"{client_id}:{id(transport)}"
        self._client_id = client_id
        self._transport = transport
        self._time = time_func
        self._headers: dict[str, str] = {}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

        self._cache: dict[str, tuple[float, WorkingCalendarSettings]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> HttpWorkingCalendarService:
        """Build a client from engine configuration.

        Raises:
            ConfigurationError: If no working_calendar_url is configured
        """
        if not config.working_calendar_url:
            raise ConfigurationError("working_calendar_url is not configured")
        return cls(
            config.working_calendar_url,
            token=config.working_calendar_token,
            cache_ttl_seconds=config.settings_cache_ttl_seconds,
            transport=transport,
        )

    def settings_url(self, clinic_id: str) -> str:
        return f"{self.base_url}/clinics/{clinic_id}/working-calendar"

    def clear_cache(self) -> None:
        self._cache.clear()

    def _cached(self, clinic_id: str) -> WorkingCalendarSettings | None:
        entry = self._cache.get(clinic_id)
        if entry is None:
            return None
        fetched_at, settings = entry
        if self._time() - fetched_at >= self.cache_ttl_seconds:
            return None
        return settings

    async def get_settings(self, clinic_id: str) -> WorkingCalendarSettings:
        """Fetch (or reuse cached) settings for a clinic.

        Raises:
            WorkingCalendarError: On transport errors, non-2xx answers or bad payloads
        """
        cached = self._cached(clinic_id)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(clinic_id, asyncio.Lock())
        async with lock:
            # Another waiter may have filled the cache meanwhile
            cached = self._cached(clinic_id)
            if cached is not None:
                return cached

            settings = await self._fetch_settings(clinic_id)
            self._cache[clinic_id] = (self._time(), settings)
            return settings

    async def _fetch_settings(self, clinic_id: str) -> WorkingCalendarSettings:
        url = self.settings_url(clinic_id)
        client = await get_shared_client(self._client_id, transport=self._transport)

        try:
            response = await client.get(url, headers=self._headers)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            await record_client_error(self._client_id)
            raise WorkingCalendarError(
                f"Working calendar lookup failed for clinic {clinic_id}: {e}"
            ) from e
        except ValueError as e:
            raise WorkingCalendarError(
                f"Working calendar response for clinic {clinic_id} is not JSON"
            ) from e

        try:
            settings = WorkingCalendarSettings.model_validate(payload)
        except ValidationError as e:
            raise WorkingCalendarError(
                f"Working calendar payload for clinic {clinic_id} is invalid: {e}"
            ) from e

        await record_client_success(self._client_id)
        logger.debug(
            "Loaded working calendar for clinic %s: weekends_are_workdays=%s, holidays=%d",
            clinic_id,
            settings.weekends_are_workdays,
            len(settings.holidays),
        )
        return settings

    async def is_working_day(self, clinic_id: str, day: datetime.date) -> bool:
        settings = await self.get_settings(clinic_id)
        return settings.is_working_day(day)
