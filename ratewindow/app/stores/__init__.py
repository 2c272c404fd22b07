"""Window store backends for the sliding window limiter."""

from ratewindow.app.stores.base import (
    TTL_KEY_ABSENT,
    TTL_NO_EXPIRY,
    WindowBatch,
    WindowStore,
)
from ratewindow.app.stores.memory import InMemoryWindowStore
from ratewindow.app.stores.redis_store import RedisWindowStore

__all__ = [
    "TTL_KEY_ABSENT",
    "TTL_NO_EXPIRY",
    "WindowBatch",
    "WindowStore",
    "InMemoryWindowStore",
    "RedisWindowStore",
]
