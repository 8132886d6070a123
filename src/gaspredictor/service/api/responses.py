"""
Response envelope helpers.

Every JSON body the API sends has the same shape::

    {"success": true, "data": ..., "message": ..., "timestamp": ..., "path": ...}

Error bodies set ``success`` to false and add ``error`` and ``status_code``;
paginated bodies add ``pagination``. Fields whose value is ``None`` are left
out.
"""

import datetime
import functools
import math
from collections.abc import Awaitable, Callable
from typing import Any

from aiohttp import web

from gaspredictor.service.api.errors import ErrorCode
from gaspredictor.utils.logging import get_logger

logger = get_logger("gaspredictor.api.responses")

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    now = datetime.datetime.now(datetime.UTC)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def envelope(request: web.Request, *, success: bool, **fields: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"success": success}
    body.update({k: v for k, v in fields.items() if v is not None})
    body["timestamp"] = utc_timestamp()
    body["path"] = request.path_qs
    return body


def _respond(request: web.Request, body: dict[str, Any], status: int) -> web.Response:
    headers = {}
    request_id = request.get("request_id")
    if request_id:
        headers["X-Request-ID"] = request_id
    return web.json_response(body, status=status, headers=headers)


# Success responses


def send_success(request: web.Request, data: Any = None, message: str | None = None, status: int = 200) -> web.Response:
    return _respond(request, envelope(request, success=True, data=data, message=message), status)


def send_created(request: web.Request, data: Any = None, message: str | None = None) -> web.Response:
    return send_success(request, data, message, status=201)


def send_no_content(request: web.Request) -> web.Response:
    return web.Response(status=204)


def build_pagination(page: int, per_page: int, total_items: int) -> dict[str, Any]:
    """
    Pagination block for ``send_paginated``.

    Pages are 1-based; an empty result still has one (empty) page.
    """
    if page < 1:
        raise ValueError("page must be >= 1")
    if per_page < 1:
        raise ValueError("per_page must be >= 1")
    total_pages = max(1, math.ceil(total_items / per_page))
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_items": total_items,
        "items_per_page": per_page,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


def send_paginated(
    request: web.Request,
    data: list[Any],
    pagination: dict[str, Any],
    message: str | None = None,
) -> web.Response:
    body = envelope(request, success=True, data=data, pagination=pagination, message=message)
    return _respond(request, body, 200)


# Error responses


def send_error(
    request: web.Request,
    message: str,
    status: int = 500,
    error: str | None = None,
    data: Any = None,
) -> web.Response:
    body = envelope(request, success=False, message=message, error=error, data=data, status_code=status)
    return _respond(request, body, status)


def send_bad_request(request: web.Request, message: str = "Bad Request", error: str | None = None) -> web.Response:
    return send_error(request, message, 400, error)


def send_unauthorized(request: web.Request, message: str = "Unauthorized", error: str | None = None) -> web.Response:
    return send_error(request, message, 401, error)


def send_forbidden(request: web.Request, message: str = "Forbidden", error: str | None = None) -> web.Response:
    return send_error(request, message, 403, error)


def send_not_found(
    request: web.Request, message: str = "Resource not found", error: str | None = None
) -> web.Response:
    return send_error(request, message, 404, error)


def send_conflict(request: web.Request, message: str = "Conflict", error: str | None = None) -> web.Response:
    return send_error(request, message, 409, error)


def send_validation_error(
    request: web.Request, message: str = "Validation failed", errors: Any = None
) -> web.Response:
    data = {"errors": errors} if errors else None
    return send_error(request, message, 400, "Validation Error", data=data)


def send_too_many_requests(
    request: web.Request, message: str = "Too Many Requests", error: str | None = None
) -> web.Response:
    return send_error(request, message, 429, error)


def send_internal_server_error(
    request: web.Request, message: str = "Internal Server Error", error: str | None = None
) -> web.Response:
    return send_error(request, message, 500, error)


def async_handler(handler: Handler) -> Handler:
    """
    Wrap a handler so unexpected exceptions become a 500 envelope.

    aiohttp HTTP exceptions (redirects, 404s raised on purpose) pass through.
    """

    @functools.wraps(handler)
    async def wrapper(request: web.Request) -> web.StreamResponse:
        try:
            return await handler(request)
        except web.HTTPException:
            raise
        except Exception as e:
            logger.error(f"API error in {request.method} {request.path}: {e}", exc_info=True)
            return send_internal_server_error(request, "An unexpected error occurred", str(e) or ErrorCode.INTERNAL_ERROR)

    return wrapper
