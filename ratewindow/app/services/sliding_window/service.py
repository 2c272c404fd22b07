"""Sliding window rate limiter over a shared window store.

All window state lives in the store; the limiter itself only holds its
immutable configuration, so one instance can be shared by any number of
concurrent callers without local locking.

Known relaxation: in the default mode consume() reads the window in one
batch and records the request in a second one. Callers racing on the same
identifier can all pass the guard before any of them writes, so the stored
count may exceed max by at most (racers - 1) * cost. The reported
remaining is always clamped to 0. Strict mode collapses both batches into
one atomic server-side operation and removes the overshoot.
"""

import itertools
import uuid
from typing import Callable, Optional

from ratewindow.app.core.config import settings
from ratewindow.app.core.logging import get_log_context, get_logger
from ratewindow.app.core.utils import now_ms
from ratewindow.app.exceptions import InvalidConfiguration
from ratewindow.app.stores import InMemoryWindowStore, RedisWindowStore, WindowStore

from .models import RateLimitResult, WindowConfig

logger = get_logger(__name__)


class SlidingWindowLimiter:
    """Per-identifier quota over a rolling window.

    Window record format:
    - key: {key_prefix}{identifier}
    - sorted set members: {now}-{sequence}-{random hex}-{unit}
    - scores: request timestamps in milliseconds
    """

    def __init__(
        self,
        store: WindowStore,
        window_ms: int = 60000,
        max_requests: int = 100,
        key_prefix: str = "rl:",
        strict: bool = False,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Window store shared by every process enforcing the quota
            window_ms: Rolling window length in milliseconds
            max_requests: Requests admitted per window
            key_prefix: Namespace prepended to identifiers
            strict: Use the store's atomic consume (no overshoot)
            clock: Millisecond clock, injectable for tests

        Raises:
            InvalidConfiguration: On a bad window, quota, or when strict mode
                is requested from a store without atomic consume.
        """
        self.config = WindowConfig(window_ms=window_ms, max=max_requests, key_prefix=key_prefix)
        if strict and not store.supports_atomic_consume:
            raise InvalidConfiguration("strict", strict, f"{type(store).__name__} has no atomic consume")
        self._store = store
        self._strict = strict
        self._clock = clock
        self._sequence = itertools.count()

    @property
    def store(self) -> WindowStore:
        return self._store

    @property
    def strict(self) -> bool:
        return self._strict

    def _reset_at(self, now: int, ttl: int) -> int:
        """Estimate when the quota resets from the record TTL.

        A negative TTL means the record is absent or has no expiry, which is
        treated as a full fresh window.
        """
        if ttl >= 0:
            return now + max(ttl, 0)
        return now + self.config.window_ms

    def _token_prefix(self, now: int) -> str:
        return f"{now}-{next(self._sequence)}-{uuid.uuid4().hex}"

    async def check(self, identifier: str) -> RateLimitResult:
        """Report the current window state without recording a request.

        Expired entries are trimmed from the store as a side effect.
        """
        key = self.config.make_key(identifier)
        now = self._clock()
        window_start = now - self.config.window_ms

        results = await (
            self._store.batch()
            .trim(key, window_start)
            .cardinality(key)
            .time_to_live(key)
            .execute()
        )
        count = int(results[1] or 0)
        ttl = int(results[2])

        return RateLimitResult(
            allowed=count < self.config.max,
            remaining=max(0, self.config.max - count),
            total=self.config.max,
            reset_at=self._reset_at(now, ttl),
        )

    async def consume(self, identifier: str, cost: int = 1) -> RateLimitResult:
        """Try to admit cost requests as one decision.

        Either all cost units are recorded or none are. A full window rejects
        every call, including cost=0, and a rejection always reports
        remaining=0.

        Raises:
            InvalidConfiguration: If cost is negative or not an integer.
            StoreUnavailable: If the store fails.
        """
        if isinstance(cost, bool) or not isinstance(cost, int):
            raise InvalidConfiguration("cost", cost, "must be an integer")
        if cost < 0:
            raise InvalidConfiguration("cost", cost, "must not be negative")

        if self._strict:
            return await self._consume_atomic(identifier, cost)

        key = self.config.make_key(identifier)
        now = self._clock()
        window_start = now - self.config.window_ms

        results = await (
            self._store.batch()
            .trim(key, window_start)
            .cardinality(key)
            .time_to_live(key)
            .execute()
        )
        count = int(results[1] or 0)
        ttl = int(results[2])

        if count >= self.config.max or count + cost > self.config.max:
            logger.debug(
                f"Rejected {cost} request(s): {count}/{self.config.max} in window",
                extra=get_log_context(identifier=identifier, key=key),
            )
            return RateLimitResult(
                allowed=False,
                remaining=0,
                total=self.config.max,
                reset_at=self._reset_at(now, ttl),
            )

        prefix = self._token_prefix(now)
        batch = self._store.batch()
        for i in range(cost):
            batch.add(key, now + i, f"{prefix}-{i}")
        batch.set_expiry(key, self.config.window_ms)
        await batch.execute()

        return RateLimitResult(
            allowed=True,
            remaining=max(0, self.config.max - count - cost),
            total=self.config.max,
            reset_at=now + self.config.window_ms,
        )

    async def _consume_atomic(self, identifier: str, cost: int) -> RateLimitResult:
        key = self.config.make_key(identifier)
        now = self._clock()
        admitted, count, ttl = await self._store.consume_atomic(
            key,
            now - self.config.window_ms,
            now,
            cost,
            self.config.max,
            self.config.window_ms,
            self._token_prefix(now),
        )

        if not admitted:
            logger.debug(
                f"Rejected {cost} request(s): {count}/{self.config.max} in window",
                extra=get_log_context(identifier=identifier, key=key),
            )
            return RateLimitResult(
                allowed=False,
                remaining=0,
                total=self.config.max,
                reset_at=self._reset_at(now, ttl),
            )

        return RateLimitResult(
            allowed=True,
            remaining=max(0, self.config.max - count - cost),
            total=self.config.max,
            reset_at=now + self.config.window_ms,
        )

    async def reset(self, identifier: str) -> None:
        """Delete the window record. Absent records are not an error."""
        key = self.config.make_key(identifier)
        await self._store.batch().delete(key).execute()
        logger.debug("Reset rate limit window", extra=get_log_context(identifier=identifier, key=key))

    async def close(self) -> None:
        """Close the underlying store."""
        await self._store.close()


_rate_limiter: Optional[SlidingWindowLimiter] = None


def create_window_store(redis_client=None) -> WindowStore:
    """Build the store selected by settings.

    Uses Redis when redis_enabled (or when a client is given), otherwise an
    in-memory store that only limits within this process.
    """
    if redis_client is not None or settings.redis_enabled:
        logger.info("Using Redis window store")
        return RedisWindowStore(redis_client=redis_client, redis_url=settings.redis_url)
    logger.warning("Redis disabled; rate limits are enforced per process only")
    return InMemoryWindowStore()


def get_rate_limiter(redis_client=None) -> SlidingWindowLimiter:
    """Get the global limiter instance configured from settings."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = SlidingWindowLimiter(
            store=create_window_store(redis_client),
            window_ms=settings.rate_limit_window_ms,
            max_requests=settings.rate_limit_max,
            key_prefix=settings.rate_limit_key_prefix,
            strict=settings.rate_limit_strict,
        )
    return _rate_limiter


def reset_rate_limiter() -> None:
    """Reset the global limiter instance."""
    global _rate_limiter
    _rate_limiter = None
