"""
LinguaLens - Rate Limiting
==========================
Request rate limiting and sign-in attempt throttling.
"""

import time
from typing import Callable, Dict, Optional
from dataclasses import dataclass, field

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from exceptions import AccountLockedError
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitBucket:
    """Token bucket for rate limiting."""
    capacity: int
    refill_rate: float  # tokens per second
    tokens: float = field(init=False)
    last_refill: float = field(init=False)

    def __post_init__(self):
        self.tokens = float(self.capacity)
        self.last_refill = time.time()

    def refill(self):
        """Refill tokens based on elapsed time."""
        now = time.time()
        elapsed = now - self.last_refill

        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    def consume(self, tokens: int = 1) -> bool:
        """
        Try to consume tokens.

        Returns:
            True if tokens consumed, False if insufficient
        """
        self.refill()

        if self.tokens >= tokens:
            self.tokens -= tokens
            return True

        return False

    def get_wait_time(self, tokens: int = 1) -> float:
        """Get time to wait for tokens to be available."""
        self.refill()

        if self.tokens >= tokens:
            return 0.0

        return (tokens - self.tokens) / self.refill_rate


class RateLimiter:
    """
    Token bucket rate limiter.

    Supports per-client and global rate limiting.
    """

    def __init__(
        self,
        requests_per_minute: int = 60,
        burst_size: Optional[int] = None,
    ):
        """
        Initialize rate limiter.

        Args:
            requests_per_minute: Sustained rate limit
            burst_size: Maximum burst (defaults to requests_per_minute)
        """
        self.requests_per_minute = requests_per_minute
        self.burst_size = burst_size or requests_per_minute
        self.refill_rate = requests_per_minute / 60.0

        self._buckets: Dict[str, RateLimitBucket] = {}

        self._global_bucket = RateLimitBucket(
            capacity=self.burst_size * 10,
            refill_rate=self.refill_rate * 10,
        )

    def _get_bucket(self, client_id: str) -> RateLimitBucket:
        if client_id not in self._buckets:
            self._buckets[client_id] = RateLimitBucket(
                capacity=self.burst_size,
                refill_rate=self.refill_rate,
            )

        return self._buckets[client_id]

    def check_rate_limit(self, client_id: str) -> tuple[bool, Optional[float]]:
        """
        Check if request is allowed under rate limits.

        Returns:
            Tuple of (allowed, retry_after_seconds)
        """
        if not self._global_bucket.consume():
            wait_time = self._global_bucket.get_wait_time()
            logger.warning("global_rate_limit_exceeded", wait_time=wait_time)
            return False, wait_time

        bucket = self._get_bucket(client_id)
        if not bucket.consume():
            wait_time = bucket.get_wait_time()
            logger.warning("client_rate_limit_exceeded", client_id=client_id, wait_time=wait_time)
            return False, wait_time

        return True, None

    def cleanup_stale_buckets(self, max_age: float = 3600.0):
        """Remove buckets for clients that haven't been seen recently."""
        now = time.time()
        stale_clients = [
            client_id
            for client_id, bucket in self._buckets.items()
            if now - bucket.last_refill > max_age
        ]

        for client_id in stale_clients:
            del self._buckets[client_id]

        if stale_clients:
            logger.debug("rate_limit_buckets_cleaned", count=len(stale_clients))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware for FastAPI.

    Applies per-client and global rate limits.
    """

    EXEMPT_PATHS = ("/health", "/metrics", "/")

    def __init__(self, app, requests_per_minute: int = 60, burst_size: Optional[int] = None):
        super().__init__(app)
        self.limiter = RateLimiter(
            requests_per_minute=requests_per_minute,
            burst_size=burst_size,
        )
        self._last_cleanup = time.time()

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        client_id = request.client.host if request.client else "unknown"

        allowed, retry_after = self.limiter.check_rate_limit(client_id)

        if not allowed:
            retry_after = retry_after or 1.0
            return JSONResponse(
                status_code=429,
                content={
                    "error": {
                        "error_type": "RateLimitExceeded",
                        "message": "Rate limit exceeded",
                        "context": {"retry_after": round(retry_after, 2)},
                    },
                    "path": request.url.path,
                },
                headers={"Retry-After": str(max(1, int(retry_after + 0.999)))},
            )

        now = time.time()
        if now - self._last_cleanup > 300:
            self.limiter.cleanup_stale_buckets()
            self._last_cleanup = now

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limiter.requests_per_minute)

        return response


# =============================================================================
# Sign-in Throttling
# =============================================================================

@dataclass
class _LoginAttempts:
    failures: int = 0
    last_failure: float = 0.0
    locked_until: Optional[float] = None


class LoginThrottle:
    """
    Lock an email out after repeated failed sign-ins.

    After ``max_attempts`` consecutive failures the email is locked for
    ``lockout_seconds``. A successful sign-in clears the record, and so does
    ``lockout_seconds`` without another failure.
    """

    def __init__(
        self,
        max_attempts: int = 4,
        lockout_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self._clock = clock
        self._attempts: Dict[str, _LoginAttempts] = {}

    @staticmethod
    def _key(email: str) -> str:
        return email.strip().lower()

    def check(self, email: str) -> None:
        """
        Raise if the email is currently locked.

        Raises:
            AccountLockedError: With the seconds remaining on the lock
        """
        record = self._attempts.get(self._key(email))
        if record is None or record.locked_until is None:
            return

        remaining = record.locked_until - self._clock()
        if remaining > 0:
            raise AccountLockedError(email=email, retry_after=remaining)

        # Lock expired
        del self._attempts[self._key(email)]

    def record_failure(self, email: str) -> int:
        """Count a failed attempt and return the running total."""
        self.cleanup_stale_records()
        record = self._attempts.setdefault(self._key(email), _LoginAttempts())
        record.failures += 1
        record.last_failure = self._clock()
        if record.failures >= self.max_attempts:
            record.locked_until = self._clock() + self.lockout_seconds
            logger.warning("sign_in_locked", email=email, failures=record.failures)
        return record.failures

    def record_success(self, email: str) -> None:
        self._attempts.pop(self._key(email), None)

    def failures(self, email: str) -> int:
        record = self._attempts.get(self._key(email))
        return record.failures if record else 0

    def cleanup_stale_records(self) -> int:
        """Forget emails that are not locked and have not failed recently."""
        now = self._clock()
        stale = [
            key
            for key, record in self._attempts.items()
            if (record.locked_until is None or record.locked_until <= now)
            and now - record.last_failure > self.lockout_seconds
        ]

        for key in stale:
            del self._attempts[key]

        if stale:
            logger.debug("login_attempts_cleaned", count=len(stale))
        return len(stale)
