"""Tests for rate limiting middleware."""

import hashlib
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from ratewindow.app.exceptions import StoreUnavailable
from ratewindow.app.middleware.rate_limit import (
    RateLimitMiddleware,
    build_rate_limit_headers,
    get_client_key,
)
from ratewindow.app.services.sliding_window import RateLimitResult, SlidingWindowLimiter
from ratewindow.app.stores import InMemoryWindowStore


def make_app(limiter, **options) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limiter=limiter, **options)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {"status": "up"}

    return app


class TestBuildHeaders:
    """Header derivation from a RateLimitResult."""

    def test_allowed_headers(self):
        result = RateLimitResult(allowed=True, remaining=4, total=5, reset_at=1_700_000_060_500)
        headers = build_rate_limit_headers(result, now=1_700_000_000_500)
        assert headers == {
            "X-RateLimit-Limit": "5",
            "X-RateLimit-Remaining": "4",
            "X-RateLimit-Reset": "1700000061",
        }

    def test_rejected_headers_include_retry_after(self):
        result = RateLimitResult(allowed=False, remaining=0, total=5, reset_at=10_001)
        headers = build_rate_limit_headers(result, now=8_000)
        assert headers["Retry-After"] == "3"
        assert headers["X-RateLimit-Remaining"] == "0"

    def test_retry_after_never_negative(self):
        result = RateLimitResult(allowed=False, remaining=0, total=5, reset_at=1_000)
        assert result.retry_after(5_000) == 0

    def test_result_to_dict(self):
        result = RateLimitResult(allowed=True, remaining=1, total=2, reset_at=3)
        assert result.to_dict() == {"allowed": True, "remaining": 1, "total": 2, "reset_at": 3}


class TestClientKey:
    """Identifier derivation from requests."""

    def test_get_client_key_from_api_key(self):
        request = Mock()
        request.headers = {"Authorization": "Bearer test_api_key_123"}
        request.client.host = "127.0.0.1"

        key = get_client_key(request)
        assert key.startswith("apikey:")
        assert "test_api_key_123" not in key

    def test_get_client_key_from_ip(self):
        request = Mock()
        request.headers = {}
        request.client.host = "192.168.1.1"

        key = get_client_key(request)
        expected_hash = hashlib.sha256("192.168.1.1".encode()).hexdigest()[:32]
        assert key == f"ip:{expected_hash}"

    def test_get_client_key_from_x_forwarded_for(self):
        request = Mock()
        request.headers = {"X-Forwarded-For": "10.0.0.1, 192.168.1.1"}
        request.client.host = "127.0.0.1"

        key = get_client_key(request)
        expected_hash = hashlib.sha256("10.0.0.1".encode()).hexdigest()[:32]
        assert key == f"ip:{expected_hash}"

    def test_get_client_key_without_client(self):
        request = Mock()
        request.headers = {}
        request.client = None

        expected_hash = hashlib.sha256("unknown".encode()).hexdigest()[:32]
        assert get_client_key(request) == f"ip:{expected_hash}"


class TestRateLimitMiddleware:
    """End-to-end behaviour through a FastAPI app."""

    @pytest.fixture
    def limiter(self):
        return SlidingWindowLimiter(InMemoryWindowStore(), window_ms=60000, max_requests=2)

    def test_allows_and_sets_headers(self, limiter):
        client = TestClient(make_app(limiter))

        resp = client.get("/ping")
        assert resp.status_code == 200
        assert resp.headers["X-RateLimit-Limit"] == "2"
        assert resp.headers["X-RateLimit-Remaining"] == "1"
        assert "X-RateLimit-Reset" in resp.headers
        assert "Retry-After" not in resp.headers

    def test_returns_429_when_exceeded(self, limiter):
        client = TestClient(make_app(limiter))
        client.get("/ping")
        client.get("/ping")

        resp = client.get("/ping")
        assert resp.status_code == 429
        assert resp.json()["error"] == "Too Many Requests"
        assert resp.headers["X-RateLimit-Remaining"] == "0"
        assert int(resp.headers["Retry-After"]) > 0
        assert resp.json()["retry_after"] == int(resp.headers["Retry-After"])

    def test_custom_key_func(self, limiter):
        client = TestClient(make_app(limiter, key_func=lambda req: req.headers.get("X-User", "anon")))
        client.get("/ping", headers={"X-User": "alice"})
        client.get("/ping", headers={"X-User": "alice"})

        assert client.get("/ping", headers={"X-User": "alice"}).status_code == 429
        assert client.get("/ping", headers={"X-User": "bob"}).status_code == 200

    def test_skip_callable(self, limiter):
        async def skip(request: Request) -> bool:
            return request.url.path == "/health"

        client = TestClient(make_app(limiter, skip=skip))
        for _ in range(5):
            resp = client.get("/health")
            assert resp.status_code == 200
            assert "X-RateLimit-Limit" not in resp.headers

    def test_headers_disabled(self, limiter):
        client = TestClient(make_app(limiter, headers=False))
        resp = client.get("/ping")
        assert resp.status_code == 200
        assert "X-RateLimit-Limit" not in resp.headers

    def test_fail_open_on_store_failure(self):
        limiter = Mock()
        limiter.consume = AsyncMock(side_effect=StoreUnavailable("down"))
        client = TestClient(make_app(limiter, fail_closed=False))

        resp = client.get("/ping")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}

    def test_fail_closed_on_store_failure(self):
        limiter = Mock()
        limiter.consume = AsyncMock(side_effect=StoreUnavailable("down"))
        client = TestClient(make_app(limiter, fail_closed=True))

        resp = client.get("/ping")
        assert resp.status_code == 503
        assert resp.json()["error"] == "Service Unavailable"
