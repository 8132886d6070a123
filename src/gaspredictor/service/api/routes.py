"""
API route registration.

Registers all endpoints; versioned endpoints live under ``/api/v1``.
"""

from typing import TYPE_CHECKING

from aiohttp import web

from gaspredictor.service.api.handlers.health import STATIC_DIR, HealthHandler

if TYPE_CHECKING:
    from gaspredictor.service.server import GasPredictorService

API_PREFIX = "/api/v1"


def setup_routes(app: web.Application, service: "GasPredictorService") -> None:
    """
    Register all routes.

    Args:
        app: aiohttp Application
        service: GasPredictorService instance for handler access
    """
    health = HealthHandler(service)

    app.router.add_routes(
        [
            web.get("/", health.root),
            web.get("/health", health.health),
            web.get(f"{API_PREFIX}/health", health.health),
            web.get(f"{API_PREFIX}/health/db", health.database),
            web.get("/ui", health.ui),
        ]
    )
    app.router.add_static("/ui/static", STATIC_DIR, name="ui_static")
