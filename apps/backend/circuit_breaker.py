"""
LinguaLens - Circuit Breaker
============================
Circuit breaker pattern for the hosted APIs the backend depends on.
"""

import time
from enum import Enum
from typing import Callable, Dict, Optional, Any
from dataclasses import dataclass

from logging_config import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, requests rejected
    HALF_OPEN = "half_open"  # Testing if service recovered


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""
    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    success_threshold: int = 2
    expected_exception: type = Exception


class CircuitBreakerOpenError(Exception):
    """Raised when circuit breaker is open and refuses requests."""

    def __init__(self, name: str):
        super().__init__(f"Circuit breaker '{name}' is OPEN - refusing request")
        self.name = name


class CircuitBreaker:
    """
    Circuit breaker to prevent cascading failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: Too many failures, requests are rejected immediately
    - HALF_OPEN: Testing recovery, limited requests allowed

    Example:
        ```python
        breaker = get_circuit_breaker("openai")

        try:
            content = await breaker.call(client.post, "/chat/completions", json=payload)
        except CircuitBreakerOpenError:
            raise ServiceUnavailableError()
        ```
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        success_threshold: int = 2,
        expected_exception: type = Exception,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize circuit breaker.

        Args:
            name: Identifier for logging/metrics
            failure_threshold: Number of failures before opening circuit
            recovery_timeout: Seconds before attempting recovery
            success_threshold: Successes needed to close from half-open
            expected_exception: Exception type to track (defaults to all)
            clock: Monotonic time source
        """
        self.name = name
        self.config = CircuitBreakerConfig(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            success_threshold=success_threshold,
            expected_exception=expected_exception,
        )
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> CircuitState:
        """Get current state (may transition to HALF_OPEN if timeout expired)."""
        if self._state == CircuitState.OPEN and self._should_attempt_reset():
            logger.info("circuit_half_open", breaker=self.name)
            self._state = CircuitState.HALF_OPEN
            self._success_count = 0

        return self._state

    def _should_attempt_reset(self) -> bool:
        if self._last_failure_time is None:
            return False

        return (self._clock() - self._last_failure_time) >= self.config.recovery_timeout

    async def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute function through circuit breaker.

        Args:
            func: Async function to execute
            *args, **kwargs: Arguments to pass to function

        Returns:
            Result from function

        Raises:
            CircuitBreakerOpenError: If circuit is open
            Original exception: If function fails in closed/half-open state
        """
        if self.state == CircuitState.OPEN:
            raise CircuitBreakerOpenError(self.name)

        try:
            result = await func(*args, **kwargs)
        except self.config.expected_exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def _on_success(self):
        if self._state == CircuitState.HALF_OPEN:
            self._success_count += 1
            logger.debug(
                "circuit_half_open_success",
                breaker=self.name,
                successes=self._success_count,
                needed=self.config.success_threshold,
            )

            if self._success_count >= self.config.success_threshold:
                logger.info("circuit_closed", breaker=self.name)
                self._state = CircuitState.CLOSED
                self._failure_count = 0
                self._success_count = 0

        elif self._state == CircuitState.CLOSED:
            self._failure_count = 0

    def _on_failure(self):
        self._failure_count += 1
        self._last_failure_time = self._clock()

        if self._state == CircuitState.HALF_OPEN:
            logger.warning("circuit_reopened", breaker=self.name)
            self._state = CircuitState.OPEN
            self._success_count = 0

        elif self._state == CircuitState.CLOSED:
            if self._failure_count >= self.config.failure_threshold:
                logger.error(
                    "circuit_opened",
                    breaker=self.name,
                    failures=self._failure_count,
                )
                self._state = CircuitState.OPEN

    def reset(self):
        """Manually reset circuit breaker to CLOSED state."""
        logger.info("circuit_reset", breaker=self.name)
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time = None

    def get_stats(self) -> dict:
        """Get current circuit breaker statistics."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failure_count,
            "success_count": self._success_count,
            "last_failure_time": self._last_failure_time,
        }


# =============================================================================
# Registry
# =============================================================================

_breakers: Dict[str, CircuitBreaker] = {}


def get_circuit_breaker(name: str, **kwargs) -> CircuitBreaker:
    """Return the process-wide breaker for ``name``, creating it on first use."""
    if name not in _breakers:
        _breakers[name] = CircuitBreaker(name=name, **kwargs)
    return _breakers[name]


def all_circuit_breakers() -> list[dict]:
    return [breaker.get_stats() for breaker in _breakers.values()]


def reset_circuit_breaker(name: str) -> Optional[dict]:
    """Close the named breaker; returns its stats, or None if it was never created."""
    breaker = _breakers.get(name)
    if breaker is None:
        return None
    breaker.reset()
    return breaker.get_stats()
