"""In-memory window store.

Mirrors the Redis sorted-set semantics closely enough for single-instance
deployments and tests: empty records disappear, PTTL sentinels are the
same, and expiry is evaluated against an injectable millisecond clock.

Note: state is not shared between processes and is lost on restart.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ratewindow.app.core.utils import now_ms
from ratewindow.app.stores.base import (
    TTL_KEY_ABSENT,
    TTL_NO_EXPIRY,
    WindowBatch,
    WindowStore,
)


@dataclass
class _WindowRecord:
    """Entries of one window (token -> score) with optional expiry."""

    entries: Dict[str, int] = field(default_factory=dict)
    expires_at: Optional[int] = None

    def is_expired(self, now: int) -> bool:
        if self.expires_at is None:
            return False
        return now >= self.expires_at


class InMemoryWindowBatch(WindowBatch):
    """Batch applied under the store lock."""

    def __init__(self, store: "InMemoryWindowStore") -> None:
        super().__init__()
        self._store = store

    async def execute(self) -> List[Any]:
        # Yield like a network round-trip would
        await asyncio.sleep(0)
        async with self._store._lock:
            return [self._store._apply(op, args) for op, args in self._ops]


class InMemoryWindowStore(WindowStore):
    """In-memory window store guarded by an asyncio.Lock."""

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock
        self._records: Dict[str, _WindowRecord] = {}
        self._lock = asyncio.Lock()

    def batch(self) -> InMemoryWindowBatch:
        return InMemoryWindowBatch(self)

    @property
    def supports_atomic_consume(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._records)

    def _get(self, key: str) -> Optional[_WindowRecord]:
        record = self._records.get(key)
        if record is not None and record.is_expired(self._clock()):
            del self._records[key]
            return None
        return record

    def _apply(self, op: str, args: tuple) -> Any:
        if op == "trim":
            key, window_start = args
            record = self._get(key)
            if record is None:
                return 0
            expired = [t for t, score in record.entries.items() if score <= window_start]
            for token in expired:
                del record.entries[token]
            if not record.entries:
                del self._records[key]
            return len(expired)

        if op == "cardinality":
            record = self._get(args[0])
            return 0 if record is None else len(record.entries)

        if op == "time_to_live":
            record = self._get(args[0])
            if record is None:
                return TTL_KEY_ABSENT
            if record.expires_at is None:
                return TTL_NO_EXPIRY
            return max(record.expires_at - self._clock(), 0)

        if op == "add":
            key, score, token = args
            record = self._get(key)
            if record is None:
                record = self._records[key] = _WindowRecord()
            added = 0 if token in record.entries else 1
            record.entries[token] = score
            return added

        if op == "set_expiry":
            key, duration_ms = args
            record = self._get(key)
            if record is None:
                return False
            record.expires_at = self._clock() + duration_ms
            return True

        if op == "delete":
            return 0 if self._records.pop(args[0], None) is None else 1

        raise ValueError(f"Unknown window operation: {op}")

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
        await asyncio.sleep(0)
        async with self._lock:
            self._apply("trim", (key, window_start))
            count = self._apply("cardinality", (key,))
            if count >= max_requests or count + cost > max_requests:
                return False, count, self._apply("time_to_live", (key,))
            for i in range(cost):
                self._apply("add", (key, now + i, f"{token_prefix}-{i}"))
            self._apply("set_expiry", (key, window_ms))
            return True, count, window_ms
