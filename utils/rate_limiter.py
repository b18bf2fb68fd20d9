# utils/rate_limiter.py - Fixed-window rate limiting as an injectable capability
"""
Per-client fixed-window rate limiter.

The limiter is passed to the server as a dependency, so the in-memory
store can be swapped for a shared one (e.g. Redis) without touching callers.
"""

import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Protocol, Tuple

from fastapi import HTTPException, Request


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float
    limit: int

    def headers(self) -> Dict[str, str]:
        """Standard X-RateLimit-* response headers."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": datetime.fromtimestamp(self.reset_at, tz=timezone.utc).isoformat(),
        }


class RateLimiter(Protocol):
    def check(self, key: str) -> RateLimitResult:
        ...


class InMemoryRateLimiter:
    """Fixed window counter keyed by client, held in process memory."""

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.time):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        # Structure: {key: (request_count, window_reset_at)}
        self._store: Dict[str, Tuple[int, float]] = {}

    def check(self, key: str) -> RateLimitResult:
        now = self._clock()

        # Purge expired windows now and then to bound memory
        if random.random() < 0.001:
            self._purge(now)

        count, reset_at = self._store.get(key, (0, 0.0))

        # No record or window expired - start a new window
        if reset_at <= now:
            reset_at = now + self.window_seconds
            self._store[key] = (1, reset_at)
            return RateLimitResult(True, self.max_requests - 1, reset_at, self.max_requests)

        if count >= self.max_requests:
            return RateLimitResult(False, 0, reset_at, self.max_requests)

        count += 1
        self._store[key] = (count, reset_at)
        return RateLimitResult(True, self.max_requests - count, reset_at, self.max_requests)

    def reset(self, key: str) -> None:
        """Reset the window for a specific client (for testing)."""
        self._store.pop(key, None)

    def _purge(self, now: float) -> None:
        for key in [k for k, (_, reset_at) in self._store.items() if reset_at <= now]:
            del self._store[key]


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    # Check for forwarded IP (behind proxy)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    # Cloudflare
    cf_ip = request.headers.get("CF-Connecting-IP")
    if cf_ip:
        return cf_ip

    return request.client.host if request.client else "unknown"


def enforce_rate_limit(request: Request, limiter: RateLimiter) -> RateLimitResult:
    """
    Check the client against the limiter.

    Raises:
        HTTPException: 429 Too Many Requests if limit exceeded
    """
    result = limiter.check(get_client_ip(request))
    if not result.allowed:
        retry_after = max(1, int(result.reset_at - time.time()))
        raise HTTPException(
            status_code=429,
            detail=f"Rate limit exceeded. Try again in {retry_after} seconds.",
            headers={"Retry-After": str(retry_after), **result.headers()},
        )
    return result
