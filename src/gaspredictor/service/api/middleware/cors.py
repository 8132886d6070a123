"""
CORS middleware.

Enables Cross-Origin Resource Sharing for the configured origins.
"""

from typing import Any

from aiohttp import web

from gaspredictor.config.settings import CorsSettings

DEFAULT_EXPOSE_HEADERS = ("X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset")


def create_cors_middleware(
    cors: CorsSettings,
    expose_headers: tuple[str, ...] = DEFAULT_EXPOSE_HEADERS,
    max_age: int = 3600,
) -> Any:
    """
    Build the CORS middleware.

    Args:
        cors: Allowed origins, methods and headers; ``"*"`` allows any origin
        expose_headers: Headers to expose to browser
        max_age: Preflight cache duration in seconds
    """
    origins = set(cors.origins)
    allow_methods = ", ".join(cors.methods)
    allow_headers = ", ".join(cors.allowed_headers)
    expose = ", ".join(expose_headers)

    @web.middleware
    async def cors_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
        origin = request.headers.get("Origin", "")

        allowed_origin = None
        if "*" in origins:
            allowed_origin = origin or "*"
        elif origin in origins:
            allowed_origin = origin

        def apply(headers: Any) -> None:
            if not allowed_origin:
                return
            headers["Access-Control-Allow-Origin"] = allowed_origin
            headers["Vary"] = "Origin"
            if cors.credentials:
                headers["Access-Control-Allow-Credentials"] = "true"
            headers["Access-Control-Allow-Methods"] = allow_methods
            headers["Access-Control-Allow-Headers"] = allow_headers
            headers["Access-Control-Expose-Headers"] = expose
            headers["Access-Control-Max-Age"] = str(max_age)

        # Preflight
        if request.method == "OPTIONS" and request.headers.get("Access-Control-Request-Method"):
            response: web.StreamResponse = web.Response(status=204)
        else:
            try:
                response = await handler(request)
            except web.HTTPException as e:
                apply(e.headers)
                raise

        apply(response.headers)
        return response

    return cors_middleware
