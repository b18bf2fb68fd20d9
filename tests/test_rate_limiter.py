# tests/test_rate_limiter.py - Fixed-window rate limiting
import pytest
from fastapi import HTTPException
from starlette.requests import Request

from utils.rate_limiter import InMemoryRateLimiter, enforce_rate_limit, get_client_ip


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def make_request(headers=None, client=("10.0.0.1", 1234)):
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/chat",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestInMemoryRateLimiter:
    def test_allows_up_to_limit(self):
        limiter = InMemoryRateLimiter(3, 60, clock=FakeClock())
        results = [limiter.check("a") for _ in range(4)]
        assert [r.allowed for r in results] == [True, True, True, False]
        assert [r.remaining for r in results] == [2, 1, 0, 0]

    def test_window_resets(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(1, 60, clock=clock)
        assert limiter.check("a").allowed
        assert not limiter.check("a").allowed
        clock.now += 61
        assert limiter.check("a").allowed

    def test_keys_are_independent(self):
        limiter = InMemoryRateLimiter(1, 60, clock=FakeClock())
        assert limiter.check("a").allowed
        assert limiter.check("b").allowed

    def test_reset_clears_key(self):
        limiter = InMemoryRateLimiter(1, 60, clock=FakeClock())
        limiter.check("a")
        limiter.reset("a")
        assert limiter.check("a").allowed

    def test_reset_at_is_window_end(self):
        limiter = InMemoryRateLimiter(5, 60, clock=FakeClock(1000.0))
        assert limiter.check("a").reset_at == 1060.0


class TestGetClientIp:
    def test_forwarded_for_first_hop(self):
        request = make_request({"X-Forwarded-For": "203.0.113.5, 10.0.0.2"})
        assert get_client_ip(request) == "203.0.113.5"

    def test_real_ip(self):
        assert get_client_ip(make_request({"X-Real-IP": "203.0.113.6"})) == "203.0.113.6"

    def test_cloudflare_ip(self):
        assert get_client_ip(make_request({"CF-Connecting-IP": "203.0.113.7"})) == "203.0.113.7"

    def test_peer_address(self):
        assert get_client_ip(make_request()) == "10.0.0.1"

    def test_unknown(self):
        assert get_client_ip(make_request(client=None)) == "unknown"


class TestEnforceRateLimit:
    def test_raises_429_with_headers(self):
        limiter = InMemoryRateLimiter(1, 60)
        request = make_request()
        enforce_rate_limit(request, limiter)

        with pytest.raises(HTTPException) as exc_info:
            enforce_rate_limit(request, limiter)

        assert exc_info.value.status_code == 429
        assert int(exc_info.value.headers["Retry-After"]) >= 1
        assert exc_info.value.headers["X-RateLimit-Limit"] == "1"
