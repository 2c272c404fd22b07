"""Rate limiting middleware.

Thin HTTP adapter over SlidingWindowLimiter: derives the identifier from
the request, consumes one unit per request and translates the result into
X-RateLimit-* headers and 429 responses. The limiter core does not depend
on this module.
"""

import hashlib
import inspect
from typing import Awaitable, Callable, Dict, Optional, Union

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from ratewindow.app.core.config import settings
from ratewindow.app.core.logging import get_log_context, get_logger
from ratewindow.app.core.utils import now_ms
from ratewindow.app.exceptions import StoreUnavailable
from ratewindow.app.services.sliding_window import RateLimitResult, SlidingWindowLimiter

logger = get_logger(__name__)

KeyFunc = Callable[[Request], str]
SkipFunc = Callable[[Request], Union[bool, Awaitable[bool]]]


def build_rate_limit_headers(result: RateLimitResult, now: Optional[int] = None) -> Dict[str, str]:
    """Derive rate limit response headers from a result.

    Retry-After is only included for rejected results.

    Args:
        result: Limiter decision
        now: Current time in milliseconds (defaults to the wall clock)
    """
    headers = {
        "X-RateLimit-Limit": str(result.total),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_at_seconds),
    }
    if not result.allowed:
        headers["Retry-After"] = str(result.retry_after(now if now is not None else now_ms()))
    return headers


def get_client_key(request: Request) -> str:
    """Get rate limit identifier for the request.

    Uses the API key if available, otherwise the client IP address. Both
    are hashed with SHA-256 so raw credentials and addresses never reach
    the store.
    """
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        api_key = auth[7:].strip()
        # 32 hex chars (128 bits) for collision resistance
        key_hash = hashlib.sha256(api_key.encode()).hexdigest()[:32]
        return f"apikey:{key_hash}"

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        client_ip = forwarded.split(",")[0].strip()
    else:
        client_ip = request.client.host if request.client else "unknown"

    ip_hash = hashlib.sha256(client_ip.encode()).hexdigest()[:32]
    return f"ip:{ip_hash}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce a sliding window quota on requests.

    Store failures are not rate limit decisions; they are resolved by the
    fail-open / fail-closed policy (settings.rate_limit_fail_closed unless
    overridden).
    """

    def __init__(
        self,
        app,
        limiter: SlidingWindowLimiter,
        key_func: Optional[KeyFunc] = None,
        skip: Optional[SkipFunc] = None,
        headers: bool = True,
        fail_closed: Optional[bool] = None,
    ):
        super().__init__(app)
        self.limiter = limiter
        self.key_func = key_func or get_client_key
        self.skip = skip
        self.headers = headers
        self.fail_closed = settings.rate_limit_fail_closed if fail_closed is None else fail_closed

    async def _should_skip(self, request: Request) -> bool:
        if self.skip is None:
            return False
        skipped = self.skip(request)
        if inspect.isawaitable(skipped):
            skipped = await skipped
        return bool(skipped)

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request with rate limiting."""
        if await self._should_skip(request):
            return await call_next(request)

        identifier = self.key_func(request)
        try:
            result = await self.limiter.consume(identifier)
        except StoreUnavailable as e:
            context = get_log_context(
                identifier=identifier,
                path=request.url.path,
                method=request.method,
            )
            if self.fail_closed:
                logger.warning(f"Rate limiting fail-closed triggered: {e}. Request denied.", extra=context)
                return JSONResponse(
                    status_code=e.status_code,
                    content={"error": "Service Unavailable", "detail": e.message},
                )
            logger.warning(
                f"Rate limiting fail-open triggered: {e}. Request allowed without rate limit check.",
                extra=context,
            )
            return await call_next(request)

        now = now_ms()
        headers = build_rate_limit_headers(result, now) if self.headers else {}

        if not result.allowed:
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Too Many Requests",
                    "retry_after": result.retry_after(now),
                },
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response
