"""
Unit Tests - Circuit Breaker
=============================
Test circuit breaker fault tolerance patterns.
"""

import pytest

from circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpenError,
    CircuitState,
    all_circuit_breakers,
    get_circuit_breaker,
    reset_circuit_breaker,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


async def failing():
    raise RuntimeError("Service down")


async def success():
    return "ok"


async def open_breaker(breaker: CircuitBreaker, failures: int):
    for _ in range(failures):
        with pytest.raises(RuntimeError):
            await breaker.call(failing)


class TestCircuitBreaker:
    """Test circuit breaker state machine and fault handling."""

    @pytest.mark.unit
    async def test_circuit_starts_closed(self):
        breaker = CircuitBreaker(name="test")
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.unit
    async def test_successful_call_keeps_closed(self):
        breaker = CircuitBreaker(name="test")

        result = await breaker.call(success)
        assert result == "ok"
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.unit
    async def test_failures_open_circuit(self):
        """Circuit should open after threshold failures."""
        breaker = CircuitBreaker(name="test", failure_threshold=3)

        await open_breaker(breaker, 3)

        assert breaker.state == CircuitState.OPEN

    @pytest.mark.unit
    async def test_open_circuit_rejects_requests(self):
        """OPEN circuit should reject requests without calling the function."""
        breaker = CircuitBreaker(name="test", failure_threshold=2)
        await open_breaker(breaker, 2)

        async def should_not_run():
            pytest.fail("Function should not be called when circuit is open")

        with pytest.raises(CircuitBreakerOpenError):
            await breaker.call(should_not_run)

    @pytest.mark.unit
    async def test_half_open_after_timeout(self):
        clock = FakeClock()
        breaker = CircuitBreaker(name="test", failure_threshold=2, recovery_timeout=30, clock=clock)
        await open_breaker(breaker, 2)
        assert breaker.state == CircuitState.OPEN

        clock.now += 29
        assert breaker.state == CircuitState.OPEN

        clock.now += 1
        assert breaker.state == CircuitState.HALF_OPEN

    @pytest.mark.unit
    async def test_half_open_success_closes_circuit(self):
        clock = FakeClock()
        breaker = CircuitBreaker(
            name="test",
            failure_threshold=2,
            recovery_timeout=30,
            success_threshold=2,
            clock=clock,
        )
        await open_breaker(breaker, 2)
        clock.now += 30

        await breaker.call(success)
        assert breaker.state == CircuitState.HALF_OPEN
        await breaker.call(success)

        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.unit
    async def test_half_open_failure_reopens_circuit(self):
        clock = FakeClock()
        breaker = CircuitBreaker(name="test", failure_threshold=2, recovery_timeout=30, clock=clock)
        await open_breaker(breaker, 2)
        clock.now += 30
        assert breaker.state == CircuitState.HALF_OPEN

        with pytest.raises(RuntimeError):
            await breaker.call(failing)

        assert breaker.state == CircuitState.OPEN

    @pytest.mark.unit
    async def test_unexpected_exceptions_are_not_counted(self):
        """Only ``expected_exception`` failures move the breaker."""
        breaker = CircuitBreaker(name="test", failure_threshold=1, expected_exception=ConnectionError)

        with pytest.raises(RuntimeError):
            await breaker.call(failing)

        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.unit
    async def test_manual_reset(self):
        breaker = CircuitBreaker(name="test", failure_threshold=2)
        await open_breaker(breaker, 2)

        breaker.reset()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.get_stats()["failure_count"] == 0

    @pytest.mark.unit
    async def test_success_resets_failure_count_in_closed(self):
        breaker = CircuitBreaker(name="test", failure_threshold=3)
        await open_breaker(breaker, 2)

        await breaker.call(success)
        await open_breaker(breaker, 2)

        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.unit
    def test_get_stats(self):
        breaker = CircuitBreaker(name="test-service", failure_threshold=3)

        stats = breaker.get_stats()

        assert stats["name"] == "test-service"
        assert stats["state"] == "closed"
        assert stats["failure_count"] == 0


class TestRegistry:

    @pytest.mark.unit
    def test_same_name_returns_same_breaker(self):
        first = get_circuit_breaker("registry-test", failure_threshold=7)
        second = get_circuit_breaker("registry-test")

        assert first is second
        assert first.config.failure_threshold == 7

    @pytest.mark.unit
    def test_all_circuit_breakers_lists_stats(self):
        get_circuit_breaker("registry-listed")

        names = [stats["name"] for stats in all_circuit_breakers()]

        assert "registry-listed" in names

    @pytest.mark.unit
    async def test_reset_by_name(self):
        breaker = get_circuit_breaker("registry-reset", failure_threshold=1)

        async def failing():
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            await breaker.call(failing)
        assert breaker.state == CircuitState.OPEN

        stats = reset_circuit_breaker("registry-reset")

        assert stats["state"] == "closed"
        assert reset_circuit_breaker("registry-unknown") is None
