"""Unit tests for clinicbot_lite.core.http_client module."""

import httpx
import pytest

from clinicbot_lite.core import http_client
from clinicbot_lite.core.http_client import (
    HEALTH_ERROR_THRESHOLD,
    close_all_clients,
    get_shared_client,
    record_client_error,
    record_client_success,
)

pytestmark = pytest.mark.unit


class TestSharedHTTPClient:
    """Test shared HTTP client management."""

    async def test_get_shared_client_reuses_existing_client(self, http_cleanup):
        client1 = await get_shared_client("test_client")
        client2 = await get_shared_client("test_client")

        assert isinstance(client1, httpx.AsyncClient)
        assert client1 is client2

    async def test_different_ids_get_separate_clients(self, http_cleanup):
        client1 = await get_shared_client("test_client_1")
        client2 = await get_shared_client("test_client_2")

        assert client1 is not client2

    async def test_close_all_clients_closes_all(self):
        client1 = await get_shared_client("test_client_1")
        client2 = await get_shared_client("test_client_2")

        await close_all_clients()

        assert client1.is_closed
        assert client2.is_closed

    async def test_closed_client_is_replaced(self, http_cleanup):
        client1 = await get_shared_client("test_client")
        await client1.aclose()

        client2 = await get_shared_client("test_client")

        assert client2 is not client1
        assert not client2.is_closed

    async def test_custom_transport_is_used(self, http_cleanup):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"ok": True}))
        client = await get_shared_client("mocked", transport=transport)

        response = await client.get("https://backend.example/ping")

        assert response.json() == {"ok": True}
        assert response.request.headers["User-Agent"].startswith("clinicbot-lite/")


class TestClientHealth:
    async def test_unhealthy_client_is_recreated(self, http_cleanup):
        client1 = await get_shared_client("flaky")
        for _ in range(HEALTH_ERROR_THRESHOLD):
            await record_client_error("flaky")

        client2 = await get_shared_client("flaky")

        assert client1.is_closed
        assert client2 is not client1

    async def test_success_resets_error_count(self, http_cleanup):
        client1 = await get_shared_client("recovering")
        for _ in range(HEALTH_ERROR_THRESHOLD - 1):
            await record_client_error("recovering")
        await record_client_success("recovering")
        await record_client_error("recovering")

        client2 = await get_shared_client("recovering")

        assert client2 is client1
        assert http_client._client_health["recovering"]["error_count"] == 1
