"""Health check endpoints for the producer service."""

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from aiohttp import web

logger = logging.getLogger(__name__)

HealthProvider = Callable[[], Awaitable[Dict[str, Any]]]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class HealthCheckHandler:
    """Health check HTTP handler."""

    def __init__(self, health_provider: HealthProvider, service_name: str = "dashboard-producer"):
        self.health_provider = health_provider
        self.service_name = service_name

    async def health(self, request: web.Request) -> web.Response:
        """Report service health; 200 only when healthy."""
        try:
            health_data = await self.health_provider()
            status = 200 if health_data["status"] == "healthy" else 503
            return web.json_response(health_data, status=status)

        except Exception as e:
            logger.error(f"Health check failed: {e}", exc_info=True)
            return web.json_response(
                {
                    "service": self.service_name,
                    "status": "unhealthy",
                    "error": str(e),
                    "timestamp": _now()
                },
                status=503
            )

    async def live(self, request: web.Request) -> web.Response:
        """Liveness probe: the process is up and serving HTTP."""
        return web.json_response({"alive": True, "timestamp": _now()}, status=200)


def create_health_app(health_provider: HealthProvider, service_name: str = "dashboard-producer") -> web.Application:
    app = web.Application()
    handler = HealthCheckHandler(health_provider, service_name)
    app.router.add_get('/health', handler.health)
    app.router.add_get('/live', handler.live)
    return app


class HealthCheckServer:
    """HTTP server for health check endpoints."""

    def __init__(
        self,
        health_provider: HealthProvider,
        host: str = "0.0.0.0",
        port: int = 8080,
        service_name: str = "dashboard-producer"
    ):
        self.health_provider = health_provider
        self.host = host
        self.port = port
        self.service_name = service_name
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None

    async def start(self):
        logger.info(f"Starting health check server on {self.host}:{self.port}")

        app = create_health_app(self.health_provider, self.service_name)
        self.runner = web.AppRunner(app)
        await self.runner.setup()

        self.site = web.TCPSite(self.runner, self.host, self.port)
        await self.site.start()

        logger.info(f"Health check server started on http://{self.host}:{self.port}")

    async def stop(self):
        if self.site:
            await self.site.stop()

        if self.runner:
            await self.runner.cleanup()

        logger.info("Health check server stopped")
