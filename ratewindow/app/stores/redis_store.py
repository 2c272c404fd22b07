"""Redis-backed window store.

Each window record is a sorted set: members are unique request tokens,
scores are request timestamps in milliseconds. A batch is a MULTI/EXEC
pipeline, so its commands run without interleaving with other clients.
"""

from typing import Any, List, Optional, Tuple

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ratewindow.app.core.config import settings
from ratewindow.app.core.logging import get_logger
from ratewindow.app.exceptions import StoreUnavailable
from ratewindow.app.stores.base import WindowBatch, WindowStore
from ratewindow.app.stores.redis_lua import CONSUME_SCRIPT

logger = get_logger(__name__)


class RedisWindowBatch(WindowBatch):
    """Batch translated to a transactional Redis pipeline."""

    def __init__(self, store: "RedisWindowStore") -> None:
        super().__init__()
        self._store = store

    async def execute(self) -> List[Any]:
        client = self._store.get_redis()
        pipe = client.pipeline(transaction=True)
        for op, args in self._ops:
            if op == "trim":
                key, window_start = args
                pipe.zremrangebyscore(key, 0, window_start)
            elif op == "cardinality":
                pipe.zcard(args[0])
            elif op == "time_to_live":
                pipe.pttl(args[0])
            elif op == "add":
                key, score, token = args
                pipe.zadd(key, {token: score})
            elif op == "set_expiry":
                key, duration_ms = args
                pipe.pexpire(key, duration_ms)
            elif op == "delete":
                pipe.delete(args[0])
            else:
                raise ValueError(f"Unknown window operation: {op}")

        try:
            return await pipe.execute()
        except RedisError as e:
            logger.error(f"Redis batch failed: {e}")
            raise StoreUnavailable(str(e) or type(e).__name__, operation="batch") from e


class RedisWindowStore(WindowStore):
    """Window store on top of redis.asyncio.

    The client is created lazily from redis_url unless one is injected.
    Connection and socket timeouts come from settings; no retries are made.
    """

    def __init__(
        self,
        redis_client: Optional[Any] = None,
        redis_url: Optional[str] = None,
    ) -> None:
        self._redis = redis_client
        self._redis_url = redis_url or settings.redis_url

    def get_redis(self) -> Any:
        """Get or create the Redis client."""
        if self._redis is None:
            self._redis = aioredis.from_url(
                self._redis_url,
                socket_timeout=settings.redis_socket_timeout,
                socket_connect_timeout=settings.redis_connect_timeout,
            )
            logger.info("Connected window store to Redis")
        return self._redis

    def batch(self) -> RedisWindowBatch:
        return RedisWindowBatch(self)

    @property
    def supports_atomic_consume(self) -> bool:
        return True

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
        client = self.get_redis()
        try:
            result = await client.eval(
                CONSUME_SCRIPT,
                1,  # Number of keys
                key,  # KEYS[1]
                window_start,  # ARGV[1]
                now,  # ARGV[2]
                cost,  # ARGV[3]
                max_requests,  # ARGV[4]
                window_ms,  # ARGV[5]
                token_prefix,  # ARGV[6]
            )
        except RedisError as e:
            logger.error(f"Lua script execution failed: {e}")
            raise StoreUnavailable(str(e) or type(e).__name__, operation="consume_atomic") from e
        return bool(result[0]), int(result[1]), int(result[2])

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis is not None:
            try:
                await self._redis.aclose()
            except RedisError as e:
                logger.warning(f"Error closing Redis connection: {e}")
            self._redis = None
