"""Liveness HTTP endpoint.

Runs alongside the Telegram polling bot in the same asyncio event loop so
hosting platforms that expect an open port keep the process alive.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aiohttp import web

from remindbot.config import settings

if TYPE_CHECKING:
    from remindbot.scheduler.registry import JobRegistry

logger = logging.getLogger(__name__)

REGISTRY_KEY = web.AppKey("registry")


async def _root(request: web.Request) -> web.Response:
    """GET /: plain ``ok`` for simple uptime pingers."""
    return web.Response(text="ok")


async def _health(request: web.Request) -> web.Response:
    """GET /health: liveness plus the number of armed reminders."""
    registry = request.app.get(REGISTRY_KEY)
    body = {"status": "ok"}
    if registry is not None:
        body["live_reminders"] = len(registry)
    return web.json_response(body)


def _create_web_app(registry: JobRegistry | None = None) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application()
    if registry is not None:
        app[REGISTRY_KEY] = registry
    app.router.add_get("/", _root)
    app.router.add_get("/health", _health)
    return app


class HealthServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(
        self, port: int | None = None, registry: JobRegistry | None = None
    ) -> None:
        self.port = port or settings.port
        self._registry = registry
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        app = _create_web_app(self._registry)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "0.0.0.0", self.port)  # noqa: S104
        await site.start()
        logger.info("Health endpoint listening on port %d", self.port)

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Health endpoint stopped")
