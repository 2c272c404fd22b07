"""Middleware package for the rate limiter."""

from ratewindow.app.middleware.rate_limit import (
    RateLimitMiddleware,
    build_rate_limit_headers,
    get_client_key,
)

__all__ = [
    "RateLimitMiddleware",
    "build_rate_limit_headers",
    "get_client_key",
]
