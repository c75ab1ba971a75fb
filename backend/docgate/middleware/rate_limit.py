"""
DocGate — Rate Limiting
========================

What:  Per-IP fixed-window rate limiting, applied twice:
       1. RateLimitMiddleware: global ceiling on every request (default 100 / 15 min)
       2. WriteRateLimit dependency: stricter ceiling on POST/PUT/PATCH/DELETE
          routes (default 30 / 15 min), layered on top of the global one
How:   FixedWindowRateLimiter keeps (window_start, count) per client IP.
       The first hit opens a window; hits inside it increment the count; once
       the window elapses the next hit opens a fresh one.

Algorithm: Fixed Window Counter
    window 1 [t0, t0+900s): hits 1..100 allowed, hit 101 → 429
    window 2 opens on the first hit at or after t0+900s

Response headers (IETF RateLimit draft, as sent on every governed response):
    RateLimit-Limit:     ceiling for the window
    RateLimit-Remaining: hits left in the window
    RateLimit-Reset:     seconds until the window resets
    Retry-After:         on 429 only

Thread Safety:
    Counter updates happen under a threading.Lock, so the limiter is safe
    whether requests are dispatched on the event loop or from a thread pool.
    State is in-process; multiple workers each keep their own counters.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from docgate.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

GLOBAL_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."
WRITE_LIMIT_MESSAGE = "Too many write operations from this IP, please try again later."

WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after),
        }


class FixedWindowRateLimiter:
    """
    Counts hits per key inside fixed windows of `window_seconds`.

    Args:
        limit:          Maximum hits allowed per key per window
        window_seconds: Window length
        clock:          Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> RateLimitResult:
        """Record one hit for `key` and report whether it is within the limit."""
        with self._lock:
            now = self._clock()
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            count += 1
            self._windows[key] = (started, count)

            if len(self._windows) > 10_000:
                self._evict_expired(now)

        reset_after = max(0, math.ceil(started + self.window_seconds - now))
        return RateLimitResult(
            allowed=count <= self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            reset_after=reset_after,
        )

    def reset(self, key: Optional[str] = None) -> None:
        """Forget one key's window, or every window when `key` is None."""
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def _evict_expired(self, now: float) -> None:
        # Called with the lock held
        expired = [
            key for key, (started, _) in self._windows.items()
            if now - started >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug("Evicted %d expired rate-limit windows", len(expired))


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Global per-IP limiter applied to every request.

    Excluded paths:
        - /health.json: health checks are never rate-limited
        - /openapi.json: the schema should always be reachable
    """

    EXCLUDED_PATHS = {"/health.json", "/openapi.json"}

    def __init__(
        self,
        app: ASGIApp,
        limiter: FixedWindowRateLimiter,
        message: str = GLOBAL_LIMIT_MESSAGE,
    ):
        super().__init__(app)
        self.limiter = limiter
        self.message = message

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        ip = client_ip(request)
        result = self.limiter.hit(ip)

        if not result.allowed:
            logger.warning(
                "Global rate limit exceeded for IP %s (%d per %ss)",
                ip,
                self.limiter.limit,
                self.limiter.window_seconds,
            )
            return JSONResponse(
                status_code=429,
                content={"error": self.message},
                headers={**result.headers, "Retry-After": str(result.reset_after)},
            )

        response = await call_next(request)
        for name, value in result.headers.items():
            response.headers.setdefault(name, value)
        return response


class WriteRateLimit:
    """
    FastAPI dependency enforcing the write-operation ceiling.

    Usage:
        @router.post("/{collection}", dependencies=[Depends(enforce_write_limit)])

    The limiter instance lives on app.state so each application (and each
    test) has its own counters.
    """

    def __init__(self, message: str = WRITE_LIMIT_MESSAGE):
        self.message = message

    async def __call__(self, request: Request, response: Response) -> None:
        limiter: Optional[FixedWindowRateLimiter] = getattr(
            request.app.state, "write_limiter", None
        )
        if limiter is None or request.method not in WRITE_METHODS:
            return

        ip = client_ip(request)
        result = limiter.hit(ip)
        if not result.allowed:
            logger.warning("Write rate limit exceeded for IP %s", ip)
            raise RateLimitExceededError(
                message=self.message,
                retry_after=result.reset_after,
                context={"client_ip": ip, "limit": limiter.limit},
            )
        for name, value in result.headers.items():
            response.headers[name] = value


enforce_write_limit = WriteRateLimit()
