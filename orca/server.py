"""Liveness and readiness endpoints for Kubernetes probes."""

from __future__ import annotations

from aiohttp import web
from loguru import logger

from orca.config import ServerConfig

log = logger.bind(component="health-server")

SERVICE = "orca"


class HealthServer:
    """Serves ``/healthz`` (always ok) and ``/readyz`` (ok once marked ready)."""

    def __init__(self, config: ServerConfig) -> None:
        self.config = config
        self.ready = False
        self._runner: web.AppRunner | None = None

    def set_ready(self, ready: bool) -> None:
        self.ready = ready
        log.info("Readiness changed to {ready}", ready=ready)

    def create_app(self) -> web.Application:
        async def healthz(request: web.Request) -> web.Response:
            log.debug("Health check from {remote}", remote=request.remote)
            return web.json_response({"status": "ok", "service": SERVICE})

        async def readyz(request: web.Request) -> web.Response:
            log.debug("Readiness check from {remote}, ready={ready}", remote=request.remote, ready=self.ready)
            if self.ready:
                return web.json_response({"status": "ready", "service": SERVICE})
            return web.json_response({"status": "not_ready", "service": SERVICE}, status=503)

        app = web.Application()
        app.router.add_get("/healthz", healthz)
        app.router.add_get("/readyz", readyz)
        return app

    async def start(self) -> None:
        if self._runner is not None:
            return
        runner = web.AppRunner(self.create_app())
        await runner.setup()
        site = web.TCPSite(runner, self.config.host, self.config.port)
        await site.start()
        self._runner = runner
        log.info("Health server listening on {host}:{port}", host=self.config.host, port=self.config.port)

    async def stop(self) -> None:
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        log.info("Health server stopped")
