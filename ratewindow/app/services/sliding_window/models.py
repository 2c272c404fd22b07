"""Data models for the sliding window limiter."""

import math
from dataclasses import dataclass

from ratewindow.app.exceptions import InvalidConfiguration


@dataclass(frozen=True)
class WindowConfig:
    """Immutable limiter configuration.

    Attributes:
        window_ms: Length of the rolling window in milliseconds (> 0)
        max: Requests admitted per window (>= 0)
        key_prefix: Namespace prepended to every identifier
    """
    window_ms: int = 60000
    max: int = 100
    key_prefix: str = "rl:"

    def __post_init__(self) -> None:
        if isinstance(self.window_ms, bool) or not isinstance(self.window_ms, int):
            raise InvalidConfiguration("window_ms", self.window_ms, "must be an integer")
        if self.window_ms <= 0:
            raise InvalidConfiguration("window_ms", self.window_ms, "must be positive")
        if isinstance(self.max, bool) or not isinstance(self.max, int):
            raise InvalidConfiguration("max", self.max, "must be an integer")
        if self.max < 0:
            raise InvalidConfiguration("max", self.max, "must not be negative")
        if not isinstance(self.key_prefix, str):
            raise InvalidConfiguration("key_prefix", self.key_prefix, "must be a string")

    def make_key(self, identifier: str) -> str:
        """Create the store key for an identifier."""
        return f"{self.key_prefix}{identifier}"


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a check or consume.

    reset_at is an absolute epoch timestamp in milliseconds. It is derived
    from the record's time-to-live, not from the age of individual entries.
    """
    allowed: bool
    remaining: int
    total: int
    reset_at: int

    @property
    def reset_at_seconds(self) -> int:
        """reset_at as epoch seconds, rounded up."""
        return math.ceil(self.reset_at / 1000)

    def retry_after(self, now: int) -> int:
        """Seconds until reset_at, rounded up and never negative."""
        return max(0, math.ceil((self.reset_at - now) / 1000))

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "allowed": self.allowed,
            "remaining": self.remaining,
            "total": self.total,
            "reset_at": self.reset_at,
        }
