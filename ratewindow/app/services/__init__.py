"""Services package for the rate limiter."""

from ratewindow.app.services.sliding_window import (
    RateLimitResult,
    SlidingWindowLimiter,
    WindowConfig,
    get_rate_limiter,
    reset_rate_limiter,
)

__all__ = [
    "RateLimitResult",
    "SlidingWindowLimiter",
    "WindowConfig",
    "get_rate_limiter",
    "reset_rate_limiter",
]
