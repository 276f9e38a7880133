"""Per-model circuit breaker for generation calls.

Document tasks for one job all talk to the same model, so a model outage
would otherwise show up as one timeout per in-flight node. Once a model
has failed ``failure_threshold`` times in a row its breaker opens and
further calls fail immediately until the cooldown has passed; the first
call after that is a probe whose outcome closes or re-opens the breaker.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..core.config import settings
from ..exceptions import GenerationTimeoutError

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """A call was refused because the model's breaker is open."""

    def __init__(self, endpoint: str, retry_after: float):
        self.endpoint = endpoint
        self.retry_after = retry_after
        super().__init__(f"Model {endpoint!r} is unavailable, next probe in {retry_after:.0f}s")


class CircuitBreaker:
    """Consecutive-failure counter with an open/half-open/closed state."""

    def __init__(
        self,
        endpoint: str,
        failure_threshold: Optional[int] = None,
        cooldown_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.endpoint = endpoint
        self.failure_threshold = failure_threshold or settings.breaker_failure_threshold
        self.cooldown_seconds = (
            settings.breaker_cooldown_seconds if cooldown_seconds is None else cooldown_seconds
        )
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: Optional[float] = None

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    def _move_to(self, state: CircuitState, reason: str) -> None:
        # Caller holds the lock.
        if state is self._state:
            return
        log = logger.warning if state is CircuitState.OPEN else logger.info
        log("Model %s breaker %s -> %s (%s)", self.endpoint, self._state.value, state.value, reason)
        self._state = state
        self._opened_at = self._clock() if state is CircuitState.OPEN else None

    def check(self) -> None:
        """Raise CircuitBreakerOpen if the model may not be called right now."""
        with self._lock:
            if self._state is not CircuitState.OPEN:
                return
            remaining = self.cooldown_seconds - (self._clock() - self._opened_at)
            if remaining > 0:
                raise CircuitBreakerOpen(self.endpoint, remaining)
            self._move_to(CircuitState.HALF_OPEN, "cooldown elapsed")

    def record_success(self) -> None:
        with self._lock:
            self._failure_count = 0
            self._move_to(CircuitState.CLOSED, "call succeeded")

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            if self._state is CircuitState.HALF_OPEN:
                self._move_to(CircuitState.OPEN, "probe failed")
            elif self._failure_count >= self.failure_threshold:
                self._move_to(CircuitState.OPEN, f"{self._failure_count} failures in a row")


_breakers: Dict[str, CircuitBreaker] = {}
_registry_lock = threading.Lock()


def get_breaker(endpoint: str) -> CircuitBreaker:
    """The shared breaker for *endpoint*, created on first use."""
    with _registry_lock:
        breaker = _breakers.get(endpoint)
        if breaker is None:
            breaker = _breakers[endpoint] = CircuitBreaker(endpoint)
        return breaker


def reset_all() -> None:
    with _registry_lock:
        _breakers.clear()


def run_with_timeout(fn: Callable[[], Any], timeout: float, label: str) -> Any:
    """Call *fn* under the breaker for *label*, giving up after *timeout* seconds.

    Raises:
        CircuitBreakerOpen: the breaker refused the call; *fn* was not run.
        GenerationTimeoutError: *fn* did not return in time. Its thread is
            left to finish on its own.
    """
    breaker = get_breaker(label)
    breaker.check()

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"llm-{label}")
    try:
        result = executor.submit(fn).result(timeout=timeout)
    except FuturesTimeoutError:
        breaker.record_failure()
        logger.error("Call to %s timed out after %ss", label, timeout)
        raise GenerationTimeoutError(label, timeout)
    except Exception:
        breaker.record_failure()
        raise
    finally:
        executor.shutdown(wait=False)

    breaker.record_success()
    return result
