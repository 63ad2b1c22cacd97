"""
Unit Tests - Rate Limiting and Sign-in Throttling
=================================================
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from exceptions import AccountLockedError
from rate_limiter import LoginThrottle, RateLimiter, RateLimitMiddleware


class FakeClock:
    def __init__(self):
        self.now = 500.0

    def __call__(self) -> float:
        return self.now


class TestRateLimiter:

    @pytest.mark.unit
    def test_burst_then_reject(self):
        limiter = RateLimiter(requests_per_minute=60, burst_size=3)

        results = [limiter.check_rate_limit("10.0.0.1")[0] for _ in range(4)]

        assert results == [True, True, True, False]

    @pytest.mark.unit
    def test_clients_have_separate_buckets(self):
        limiter = RateLimiter(requests_per_minute=60, burst_size=1)

        assert limiter.check_rate_limit("10.0.0.1")[0]
        assert limiter.check_rate_limit("10.0.0.2")[0]

    @pytest.mark.unit
    def test_rejection_reports_wait_time(self):
        limiter = RateLimiter(requests_per_minute=60, burst_size=1)
        limiter.check_rate_limit("10.0.0.1")

        allowed, retry_after = limiter.check_rate_limit("10.0.0.1")

        assert not allowed
        assert 0 < retry_after <= 1.0


class TestRateLimitMiddleware:

    @pytest.fixture
    def client(self):
        app = FastAPI()
        app.add_middleware(RateLimitMiddleware, requests_per_minute=60, burst_size=2)

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        @app.get("/health")
        async def health():
            return {"status": "healthy"}

        return TestClient(app)

    @pytest.mark.unit
    def test_limited_request_returns_429(self, client):
        assert client.get("/ping").status_code == 200
        assert client.get("/ping").headers["X-RateLimit-Limit"] == "60"

        response = client.get("/ping")

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) >= 1
        assert response.json()["error"]["error_type"] == "RateLimitExceeded"

    @pytest.mark.unit
    def test_health_is_exempt(self, client):
        for _ in range(5):
            assert client.get("/health").status_code == 200


class TestLoginThrottle:

    @pytest.mark.unit
    def test_locks_after_max_attempts(self):
        throttle = LoginThrottle(max_attempts=4, lockout_seconds=300, clock=FakeClock())

        for _ in range(3):
            throttle.record_failure("ana@example.com")
            throttle.check("ana@example.com")

        assert throttle.record_failure("ana@example.com") == 4

        with pytest.raises(AccountLockedError) as exc_info:
            throttle.check("ana@example.com")
        assert exc_info.value.retry_after == pytest.approx(300)
        assert "5 minutes" in exc_info.value.message

    @pytest.mark.unit
    def test_lock_expires(self):
        clock = FakeClock()
        throttle = LoginThrottle(max_attempts=1, lockout_seconds=300, clock=clock)
        throttle.record_failure("ana@example.com")

        clock.now += 301

        throttle.check("ana@example.com")
        assert throttle.failures("ana@example.com") == 0

    @pytest.mark.unit
    def test_email_is_case_insensitive(self):
        throttle = LoginThrottle(max_attempts=1, clock=FakeClock())
        throttle.record_failure("Ana@Example.com ")

        with pytest.raises(AccountLockedError):
            throttle.check("ana@example.com")

    @pytest.mark.unit
    def test_success_clears_failures(self):
        throttle = LoginThrottle(max_attempts=4, clock=FakeClock())
        throttle.record_failure("ana@example.com")
        throttle.record_failure("ana@example.com")

        throttle.record_success("ana@example.com")

        assert throttle.failures("ana@example.com") == 0

    @pytest.mark.unit
    def test_quiet_emails_are_forgotten(self):
        clock = FakeClock()
        throttle = LoginThrottle(max_attempts=4, lockout_seconds=300, clock=clock)
        for i in range(50):
            throttle.record_failure(f"user{i}@example.com")

        clock.now += 301
        throttle.record_failure("ana@example.com")

        assert len(throttle._attempts) == 1
        assert throttle.failures("user0@example.com") == 0
        assert throttle.failures("ana@example.com") == 1

    @pytest.mark.unit
    def test_locked_emails_are_kept_until_the_lock_ends(self):
        clock = FakeClock()
        throttle = LoginThrottle(max_attempts=1, lockout_seconds=300, clock=clock)
        throttle.record_failure("ana@example.com")

        clock.now += 200
        assert throttle.cleanup_stale_records() == 0

        with pytest.raises(AccountLockedError):
            throttle.check("ana@example.com")
