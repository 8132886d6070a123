"""
API middleware components.

Provides error handling, CORS, rate limiting, security headers and
compression.
"""

from gaspredictor.service.api.middleware.cors import create_cors_middleware
from gaspredictor.service.api.middleware.error import create_error_middleware
from gaspredictor.service.api.middleware.rate_limit import FixedWindowRateLimiter, create_rate_limit_middleware
from gaspredictor.service.api.middleware.security import compression_middleware, security_headers_middleware

__all__ = [
    "create_error_middleware",
    "create_cors_middleware",
    "create_rate_limit_middleware",
    "FixedWindowRateLimiter",
    "security_headers_middleware",
    "compression_middleware",
]
