"""Window store abstraction.

The limiter only talks to a store through atomic batches: a batch queues
primitive operations against window records and executes them as one
indivisible unit, returning one result per queued operation.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Tuple

# Sentinels returned by time_to_live(), same as Redis PTTL
TTL_NO_EXPIRY = -1
TTL_KEY_ABSENT = -2


class WindowBatch(ABC):
    """Queue of primitive window operations executed atomically.

    Queueing methods return the batch so calls can be chained:

        count, ttl = (await store.batch()
                      .trim(key, window_start)
                      .cardinality(key)
                      .time_to_live(key)
                      .execute())[1:]
    """

    def __init__(self) -> None:
        self._ops: List[Tuple[str, tuple]] = []

    def _queue(self, op: str, *args: Any) -> "WindowBatch":
        self._ops.append((op, args))
        return self

    def trim(self, key: str, window_start: int) -> "WindowBatch":
        """Remove entries with score <= window_start. Result: count removed."""
        return self._queue("trim", key, window_start)

    def cardinality(self, key: str) -> "WindowBatch":
        """Result: number of entries in the record."""
        return self._queue("cardinality", key)

    def time_to_live(self, key: str) -> "WindowBatch":
        """Result: remaining lifetime in ms, TTL_NO_EXPIRY or TTL_KEY_ABSENT."""
        return self._queue("time_to_live", key)

    def add(self, key: str, score: int, token: str) -> "WindowBatch":
        """Insert one entry. Result: number of entries inserted."""
        return self._queue("add", key, score, token)

    def set_expiry(self, key: str, duration_ms: int) -> "WindowBatch":
        """Reset the record lifetime to duration_ms from now."""
        return self._queue("set_expiry", key, duration_ms)

    def delete(self, key: str) -> "WindowBatch":
        """Remove the record. Result: number of records removed."""
        return self._queue("delete", key)

    @abstractmethod
    async def execute(self) -> List[Any]:
        """Run all queued operations as one atomic unit.

        Returns:
            Results in the order operations were queued.

        Raises:
            StoreUnavailable: If the store cannot be reached or fails.
        """
        pass


class WindowStore(ABC):
    """Abstract base class for window stores."""

    @abstractmethod
    def batch(self) -> WindowBatch:
        """Start a new atomic batch."""
        pass

    @property
    def supports_atomic_consume(self) -> bool:
        """Whether consume_atomic() is available.

        Stores returning False keep the default consume_atomic(), which raises
        NotImplementedError. SlidingWindowLimiter checks this flag when built
        with strict=True and raises InvalidConfiguration instead of failing
        on the first request.
        """
        return False

    async def consume_atomic(
        self,
        key: str,
        window_start: int,
        now: int,
        cost: int,
        max_requests: int,
        window_ms: int,
        token_prefix: str,
    ) -> Tuple[bool, int, int]:
        """Trim, count and conditionally record cost entries in one step.

        Entries are scored now + i with member f"{token_prefix}-{i}". The
        expiry is reset to window_ms only when the entries are recorded. A
        full window (count >= max_requests) rejects every call, cost=0
        included.

        Returns:
            (admitted, count before recording, ttl in ms)
        """
        raise NotImplementedError(f"{type(self).__name__} has no atomic consume")

    async def close(self) -> None:
        """Release store resources."""
        return None
