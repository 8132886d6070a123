"""
Per-client rate limiting.

Fixed window counter keyed by client IP: at most ``max_requests`` requests
per ``window`` seconds, after which requests are rejected with 429 until the
window resets.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, NamedTuple

from aiohttp import web

from gaspredictor.config.settings import RateLimitSettings
from gaspredictor.service.api.errors import APIError, ErrorCode
from gaspredictor.utils.logging import get_logger

logger = get_logger("gaspredictor.api.middleware.rate_limit")


@dataclass
class WindowState:
    """Request count for a single client in the current window."""

    started: float
    count: int = 0


class RateLimitDecision(NamedTuple):
    allowed: bool
    limit: int
    remaining: int
    reset_after: float


class FixedWindowRateLimiter:
    """In-process fixed window counter."""

    def __init__(self, max_requests: int, window: float, clock: Callable[[], float] = time.monotonic):
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window <= 0:
            raise ValueError("window must be > 0")
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._clients: dict[str, WindowState] = {}
        self._last_purge = clock()

    def hit(self, key: str) -> RateLimitDecision:
        """Count one request for ``key``."""
        now = self._clock()
        if now - self._last_purge >= self.window:
            self._purge(now)

        state = self._clients.get(key)
        if state is None or now - state.started >= self.window:
            state = WindowState(started=now)
            self._clients[key] = state

        state.count += 1
        reset_after = max(0.0, self.window - (now - state.started))
        remaining = max(0, self.max_requests - state.count)
        return RateLimitDecision(state.count <= self.max_requests, self.max_requests, remaining, reset_after)

    def _purge(self, now: float) -> None:
        expired = [key for key, state in self._clients.items() if now - state.started >= self.window]
        for key in expired:
            del self._clients[key]
        self._last_purge = now


def client_ip(request: web.Request, trust_proxy: bool) -> str:
    """Client address; behind a proxy, the first ``X-Forwarded-For`` hop."""
    if trust_proxy:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first = forwarded.split(",", 1)[0].strip()
        if first:
            return first
    return request.remote or "unknown"


def create_rate_limit_middleware(settings: RateLimitSettings, *, trust_proxy: bool = True) -> Any:
    """Build the rate limit middleware."""
    limiter = FixedWindowRateLimiter(settings.max_requests, settings.window_seconds)

    @web.middleware
    async def rate_limit_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
        ip = client_ip(request, trust_proxy)
        decision = limiter.hit(ip)
        headers = {
            "X-RateLimit-Limit": str(decision.limit),
            "X-RateLimit-Remaining": str(decision.remaining),
            "X-RateLimit-Reset": str(int(decision.reset_after + 0.999)),
        }

        if not decision.allowed:
            logger.warning(f"Rate limit exceeded for {ip}", extra={"client_ip": ip, "path": request.path})
            headers["Retry-After"] = headers["X-RateLimit-Reset"]
            raise APIError(
                code=ErrorCode.RATE_LIMITED,
                message=settings.message,
                status=429,
                details={"limit": decision.limit, "retry_after": round(decision.reset_after, 2)},
                headers=headers,
            )

        response = await handler(request)
        response.headers.update(headers)
        return response

    return rate_limit_middleware
