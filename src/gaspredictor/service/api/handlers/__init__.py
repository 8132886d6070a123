"""
API endpoint handlers.

Each handler class serves one group of endpoints.
"""

from typing import TYPE_CHECKING

from aiohttp import web

from gaspredictor.config.settings import Settings
from gaspredictor.connections.base import BaseConnection
from gaspredictor.core.retry.manager import RetryManager

if TYPE_CHECKING:
    from gaspredictor.service.server import GasPredictorService


class BaseHandler:
    """
    Base class for API handlers.

    Provides access to service components and common utilities.
    """

    def __init__(self, service: "GasPredictorService"):
        self.service = service

    @property
    def settings(self) -> Settings:
        return self.service.settings

    @property
    def connection(self) -> BaseConnection | None:
        """Database connection, or None when no DATABASE_URL is configured."""
        return self.service.connection

    @property
    def retry_manager(self) -> RetryManager:
        return self.service.retry_manager

    def get_request_id(self, request: web.Request) -> str | None:
        """Get request ID from request context."""
        return request.get("request_id")
