"""Tests for the generation endpoint circuit breaker.

Covers the state machine (CLOSED -> OPEN -> HALF_OPEN -> CLOSED/OPEN),
the per-endpoint registry and run_with_timeout.
"""

import time

import pytest

from docwarehouse.exceptions import GenerationTimeoutError
from docwarehouse.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpen,
    CircuitState,
    get_breaker,
    reset_all,
    run_with_timeout,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


# ---------------------------------------------------------------------------
# State transitions
# ---------------------------------------------------------------------------


class TestCircuitBreakerStates:
    def test_starts_closed(self):
        assert CircuitBreaker("openai/gpt-4.1").state == CircuitState.CLOSED

    def test_opens_at_threshold(self):
        cb = CircuitBreaker("m", failure_threshold=3)
        cb.record_failure()
        cb.record_failure()
        assert cb.state == CircuitState.CLOSED
        cb.record_failure()
        assert cb.state == CircuitState.OPEN

    def test_open_blocks_calls(self):
        cb = CircuitBreaker("m", failure_threshold=1, cooldown_seconds=60)
        cb.record_failure()
        with pytest.raises(CircuitBreakerOpen) as exc_info:
            cb.check()
        assert exc_info.value.endpoint == "m"
        assert exc_info.value.retry_after > 0

    def test_success_resets_failure_count(self):
        cb = CircuitBreaker("m", failure_threshold=2)
        cb.record_failure()
        cb.record_success()
        cb.record_failure()
        assert cb.state == CircuitState.CLOSED

    def test_half_open_after_cooldown_then_closes(self):
        clock = FakeClock()
        cb = CircuitBreaker("m", failure_threshold=1, cooldown_seconds=30, clock=clock)
        cb.record_failure()
        clock.now += 31
        cb.check()
        assert cb.state == CircuitState.HALF_OPEN
        cb.record_success()
        assert cb.state == CircuitState.CLOSED

    def test_failed_probe_reopens(self):
        clock = FakeClock()
        cb = CircuitBreaker("m", failure_threshold=1, cooldown_seconds=30, clock=clock)
        cb.record_failure()
        clock.now += 31
        cb.check()
        cb.record_failure()
        assert cb.state == CircuitState.OPEN


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestRegistry:
    def test_same_endpoint_same_breaker(self):
        assert get_breaker("a") is get_breaker("a")
        assert get_breaker("a") is not get_breaker("b")

    def test_reset_all_forgets_state(self):
        for _ in range(3):
            get_breaker("a").record_failure()
        reset_all()
        assert get_breaker("a").state == CircuitState.CLOSED


# ---------------------------------------------------------------------------
# run_with_timeout
# ---------------------------------------------------------------------------


class TestRunWithTimeout:
    def test_returns_result(self):
        assert run_with_timeout(lambda: 42, timeout=5, label="ok") == 42

    def test_timeout_raises_generation_timeout(self):
        with pytest.raises(GenerationTimeoutError):
            run_with_timeout(lambda: time.sleep(2), timeout=0.05, label="slow")
        assert get_breaker("slow")._failure_count == 1

    def test_exception_propagates_and_counts(self):
        def failing():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            run_with_timeout(failing, timeout=5, label="fail")
        assert get_breaker("fail")._failure_count == 1

    def test_open_circuit_blocks_before_calling(self):
        calls = []
        for _ in range(3):
            get_breaker("blocked").record_failure()
        with pytest.raises(CircuitBreakerOpen):
            run_with_timeout(lambda: calls.append(1), timeout=5, label="blocked")
        assert calls == []
