"""Sliding window rate limiting over a shared window store.

This package keeps no window state in process; every decision is made
from atomic batches against the store so several instances can share one
quota per identifier.
"""

from .models import RateLimitResult, WindowConfig
from .service import (
    SlidingWindowLimiter,
    create_window_store,
    get_rate_limiter,
    reset_rate_limiter,
)

__all__ = [
    "RateLimitResult",
    "WindowConfig",
    "SlidingWindowLimiter",
    "create_window_store",
    "get_rate_limiter",
    "reset_rate_limiter",
]
