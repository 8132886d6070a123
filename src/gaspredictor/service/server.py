"""
HTTP service.

Builds the aiohttp application: middlewares, routes and the database
lifecycle (connect on startup, heartbeat while running, close on cleanup).
"""

from __future__ import annotations

from aiohttp import web

from gaspredictor.config.settings import Settings
from gaspredictor.connections import BaseConnection, ConnectionMonitor, create_connection
from gaspredictor.core.retry.manager import RetryManager
from gaspredictor.exceptions import RetryError
from gaspredictor.service.api.middleware import (
    compression_middleware,
    create_cors_middleware,
    create_error_middleware,
    create_rate_limit_middleware,
    security_headers_middleware,
)
from gaspredictor.service.api.routes import setup_routes
from gaspredictor.utils.logging import get_logger

logger = get_logger("gaspredictor.service.server")


class GasPredictorService:
    """
    Long-lived state shared by the request handlers.

    Holds the settings, the (optional) database connection, the resilient
    executor and the connection heartbeat.
    """

    def __init__(self, settings: Settings, connection: BaseConnection | None = None):
        self.settings = settings
        if connection is None and settings.database.url:
            connection = create_connection(settings.database.url)
        self.connection = connection
        self.retry_manager = RetryManager(
            default_policy=settings.database.retry,
            readiness_timeout=settings.database.readiness_timeout,
        )
        self.monitor: ConnectionMonitor | None = None
        if connection is not None:
            self.monitor = ConnectionMonitor(
                connection, self.retry_manager, interval=settings.database.heartbeat_interval
            )

    async def start(self) -> None:
        """
        Connect the database and start the heartbeat.

        Outside production a failed connect is logged and the service keeps
        serving; the heartbeat keeps trying to reconnect.

        Raises:
            RetryError: If the database cannot be reached in production
        """
        if self.connection is None:
            logger.warning("No DATABASE_URL configured; running without a database")
            return

        try:
            await self.retry_manager.execute(self.connection.connect, operation_name="database_connect")
        except RetryError as e:
            logger.error(f"Failed to connect to database: {e}")
            if self.settings.is_production:
                raise
        else:
            logger.info("Database connected successfully")

        if self.monitor is not None:
            self.monitor.start()

    async def stop(self) -> None:
        if self.monitor is not None:
            await self.monitor.stop()
        if self.connection is not None:
            await self.connection.close()


SERVICE_KEY = web.AppKey("service", GasPredictorService)


def create_app(settings: Settings, connection: BaseConnection | None = None) -> web.Application:
    """
    Create the aiohttp application.

    Middleware order, outermost first: security headers, compression, CORS,
    error handling, rate limiting.

    Args:
        settings: Loaded settings
        connection: Database connection to use instead of one built from
            ``settings.database.url``
    """
    service = GasPredictorService(settings, connection)

    app = web.Application(
        middlewares=[
            security_headers_middleware,
            compression_middleware,
            create_cors_middleware(settings.cors),
            create_error_middleware(production=settings.is_production, log_requests=not settings.is_test),
            create_rate_limit_middleware(settings.rate_limit, trust_proxy=settings.server.trust_proxy),
        ],
        client_max_size=settings.server.client_max_size,
    )
    app[SERVICE_KEY] = service

    setup_routes(app, service)

    async def on_startup(app: web.Application) -> None:
        await service.start()
        logger.info(f"Gas Predictor API started ({settings.environment})")

    async def on_cleanup(app: web.Application) -> None:
        await service.stop()
        logger.info("Gas Predictor API stopped")

    app.on_startup.append(on_startup)
    app.on_cleanup.append(on_cleanup)
    return app


def run_service(settings: Settings, *, host: str | None = None, port: int | None = None) -> None:
    """
    Run the service (blocking).

    Args:
        settings: Loaded settings
        host: Host to bind to (default: settings.server.host)
        port: Port to bind to (default: settings.server.port)
    """
    host = host or settings.server.host
    port = port or settings.server.port
    app = create_app(settings)

    logger.info(f"Serving on http://{host}:{port} (UI at http://{host}:{port}/ui)")
    web.run_app(app, host=host, port=port, access_log=None, print=None)
