from __future__ import annotations

import pytest
from aiohttp.test_utils import TestClient, TestServer

from orca.config import ServerConfig
from orca.server import HealthServer


@pytest.fixture
def server() -> HealthServer:
    return HealthServer(ServerConfig(host="127.0.0.1", port=0))


class TestHealthServer:
    @pytest.mark.asyncio
    async def test_healthz(self, server: HealthServer):
        async with TestClient(TestServer(server.create_app())) as client:
            resp = await client.get("/healthz")
            assert resp.status == 200
            assert await resp.json() == {"status": "ok", "service": "orca"}

    @pytest.mark.asyncio
    async def test_readyz_follows_readiness(self, server: HealthServer):
        async with TestClient(TestServer(server.create_app())) as client:
            resp = await client.get("/readyz")
            assert resp.status == 503
            assert (await resp.json())["status"] == "not_ready"

            server.set_ready(True)
            resp = await client.get("/readyz")
            assert resp.status == 200
            assert (await resp.json())["status"] == "ready"

            server.set_ready(False)
            assert (await client.get("/readyz")).status == 503

    @pytest.mark.asyncio
    async def test_unknown_path(self, server: HealthServer):
        async with TestClient(TestServer(server.create_app())) as client:
            assert (await client.get("/metrics")).status == 404

    @pytest.mark.asyncio
    async def test_start_and_stop_are_idempotent(self, server: HealthServer):
        await server.start()
        await server.start()
        await server.stop()
        await server.stop()
