"""
Root, health and landing page endpoints.
"""

import time
from pathlib import Path

from aiohttp import web

from gaspredictor.connections.health import check_database_health, get_database_status
from gaspredictor.core.retry.policy import RetryPolicy
from gaspredictor.exceptions import ReadinessTimeoutError, RetryError
from gaspredictor.service.api.errors import ErrorCode
from gaspredictor.service.api.handlers import BaseHandler
from gaspredictor.service.api.responses import send_error, send_success, utc_timestamp

STATIC_DIR = Path(__file__).resolve().parent.parent.parent / "static"

# Health probes must answer quickly
PROBE_RETRY_POLICY = RetryPolicy(max_retries=1, base_delay=0.1, max_delay=0.5, per_attempt_timeout=2.0, max_jitter=0.1)
PROBE_READINESS_TIMEOUT = 1.0


class HealthHandler(BaseHandler):
    """Handler for the root route, health checks and the landing page."""

    def __init__(self, service):
        super().__init__(service)
        self._start_time = time.time()

    async def root(self, request: web.Request) -> web.Response:
        """
        GET /

        Liveness banner.
        """
        return web.json_response(
            {
                "message": "Gas Price Predictor API is running",
                "environment": self.settings.environment,
                "timestamp": utc_timestamp(),
            }
        )

    async def health(self, request: web.Request) -> web.Response:
        """
        GET /health, GET /api/v1/health

        Service health. The service is up even when the database is not;
        ``status`` is then ``degraded``.
        """
        healthy = await check_database_health(self.connection)
        database = get_database_status(self.connection)
        database["healthy"] = healthy

        status = "ok" if healthy or self.connection is None else "degraded"
        data = {
            "status": status,
            "environment": self.settings.environment,
            "version": self._get_version(),
            "uptime_seconds": round(time.time() - self._start_time, 2),
            "database": database,
        }
        return send_success(request, data, "Service is healthy" if status == "ok" else "Service is degraded")

    async def database(self, request: web.Request) -> web.Response:
        """
        GET /api/v1/health/db

        Database status with a live ping run through the resilient executor.
        Answers 503 unless the ping succeeds.
        """
        connection = self.connection
        if connection is None:
            return send_error(
                request,
                "Database not configured",
                503,
                ErrorCode.SERVICE_UNAVAILABLE,
                data=get_database_status(None),
            )

        started = time.perf_counter()
        try:
            await self.retry_manager.execute_with_readiness(
                lambda: connection.state,
                connection.ping,
                policy=PROBE_RETRY_POLICY,
                operation_name="db_health_ping",
                readiness_timeout=PROBE_READINESS_TIMEOUT,
            )
        except (ReadinessTimeoutError, RetryError) as e:
            data = get_database_status(connection)
            data["healthy"] = False
            return send_error(request, "Database unavailable", 503, str(e), data=data)

        data = get_database_status(connection)
        data["healthy"] = True
        data["latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
        return send_success(request, data, "Database is healthy")

    async def ui(self, request: web.Request) -> web.FileResponse:
        """
        GET /ui

        Landing page that calls /health from the browser.
        """
        response = web.FileResponse(STATIC_DIR / "index.html")
        response.headers["Cache-Control"] = "no-cache"
        return response

    def _get_version(self) -> str:
        from gaspredictor import __version__

        return __version__
