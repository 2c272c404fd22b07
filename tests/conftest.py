"""Shared fixtures for rate limiter tests."""

import pytest

from ratewindow.app.services.sliding_window import SlidingWindowLimiter, reset_rate_limiter
from ratewindow.app.stores import InMemoryWindowStore


class FakeClock:
    """Millisecond clock advanced manually."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture(autouse=True)
def reset_globals():
    """Reset global state before each test."""
    reset_rate_limiter()
    yield
    reset_rate_limiter()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryWindowStore(clock=clock)


@pytest.fixture
def make_limiter(store, clock):
    """Build limiters sharing the in-memory store and fake clock."""
    def _make(**kwargs) -> SlidingWindowLimiter:
        kwargs.setdefault("window_ms", 1000)
        kwargs.setdefault("max_requests", 2)
        return SlidingWindowLimiter(store=store, clock=clock, **kwargs)
    return _make
