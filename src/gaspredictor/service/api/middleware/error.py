"""
Error handling middleware.

Assigns a request ID, binds it as the logging correlation ID, logs each
request and renders every failure as an error envelope.
"""

import json
import time
import traceback
import uuid
from typing import Any

from aiohttp import web

from gaspredictor.exceptions import (
    AuthError,
    CastError,
    DatabaseConnectionError,
    DuplicateKeyError,
    ForbiddenError,
    NotFoundError,
    ReadinessTimeoutError,
    RequestError,
    RetriesExhaustedError,
    TerminalFailureError,
    ValidationError,
)
from gaspredictor.observability import add_correlation_id
from gaspredictor.service.api.errors import APIError, ErrorCode
from gaspredictor.service.api.responses import send_error
from gaspredictor.utils.logging import get_logger

logger = get_logger("gaspredictor.api.middleware.error")

# Checked in order; ForbiddenError is an AuthError
_REQUEST_ERROR_CODES: tuple[tuple[type[RequestError], ErrorCode], ...] = (
    (ValidationError, ErrorCode.VALIDATION_ERROR),
    (CastError, ErrorCode.CAST_ERROR),
    (ForbiddenError, ErrorCode.FORBIDDEN),
    (AuthError, ErrorCode.UNAUTHORIZED),
    (NotFoundError, ErrorCode.NOT_FOUND),
    (DuplicateKeyError, ErrorCode.CONFLICT),
)


def _request_error_code(error: RequestError) -> ErrorCode:
    for cls, code in _REQUEST_ERROR_CODES:
        if isinstance(error, cls):
            return code
    return ErrorCode.INVALID_REQUEST


def create_error_middleware(*, production: bool, log_requests: bool = True) -> Any:
    """
    Build the error middleware.

    Args:
        production: Hide internal error messages and tracebacks
        log_requests: Log one line per request (method, path, status, duration)
    """

    def render_request_error(request: web.Request, error: RequestError) -> web.Response:
        if isinstance(error, ValidationError):
            return send_error(request, "Validation Error", error.status, error.message)
        if isinstance(error, DuplicateKeyError):
            return send_error(request, "Duplicate data error", error.status, error.message)
        return send_error(request, error.message, error.status, _request_error_code(error))

    def render(request: web.Request, error: Exception) -> web.Response:
        if isinstance(error, APIError):
            response = send_error(request, error.message, error.status, error.code, data=error.details or None)
            response.headers.update(error.headers)
            return response

        if isinstance(error, RequestError):
            return render_request_error(request, error)

        if isinstance(error, TerminalFailureError) and isinstance(error.__cause__, RequestError):
            return render_request_error(request, error.__cause__)

        if isinstance(error, (RetriesExhaustedError, ReadinessTimeoutError, DatabaseConnectionError)):
            message = "Service temporarily unavailable" if production else error.message
            return send_error(request, message, 503, ErrorCode.SERVICE_UNAVAILABLE)

        if isinstance(error, json.JSONDecodeError):
            return send_error(request, "Invalid JSON in request body", 400, ErrorCode.INVALID_REQUEST)

        if production:
            return send_error(request, "Internal server error", 500, ErrorCode.INTERNAL_ERROR)
        detail = "".join(traceback.format_exception(error))
        return send_error(request, str(error) or type(error).__name__, 500, detail)

    @web.middleware
    async def error_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
        request_id = request.headers.get("X-Request-ID") or f"req_{uuid.uuid4().hex[:12]}"
        request["request_id"] = request_id
        started = time.perf_counter()

        with add_correlation_id(request_id):
            try:
                response = await handler(request)
            except web.HTTPException as e:
                if e.status < 400:
                    raise
                response = send_error(request, e.reason, e.status)
            except Exception as e:
                status = getattr(e, "status", 500)
                if isinstance(e, (APIError, RequestError)) and status < 500:
                    logger.warning(
                        f"{type(e).__name__}: {e}",
                        extra={"request_id": request_id, "status": status, "path": request.path},
                    )
                else:
                    logger.error(
                        f"Unhandled error: {e}",
                        extra={"request_id": request_id, "path": request.path, "method": request.method},
                        exc_info=True,
                    )
                response = render(request, e)

            response.headers["X-Request-ID"] = request_id

            if log_requests:
                duration_ms = (time.perf_counter() - started) * 1000
                logger.info(
                    f"{request.method} {request.path_qs} {response.status} {duration_ms:.1f}ms",
                    extra={
                        "method": request.method,
                        "path": request.path,
                        "status": response.status,
                        "duration_ms": round(duration_ms, 1),
                    },
                )

        return response

    return error_middleware
