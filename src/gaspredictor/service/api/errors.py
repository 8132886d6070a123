"""
API error definitions and exception classes.

Provides consistent error handling across all API endpoints.
"""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standard API error codes, sent as the envelope's ``error`` field."""

    # Client errors (4xx)
    INVALID_REQUEST = "INVALID_REQUEST"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CAST_ERROR = "CAST_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMITED = "RATE_LIMITED"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class APIError(Exception):
    """
    API exception rendered as an error envelope by the error middleware.

    Usage:
        raise APIError(
            code=ErrorCode.NOT_FOUND,
            message="Station 'ab12' not found",
            status=404,
        )
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status: int = 400,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status = status
        self.details = details or {}
        self.headers = headers or {}
