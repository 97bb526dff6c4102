# backend/tracker/services/circuit_breaker.py
"""
Circuit breaker for the FX rate source.

Every portfolio view asks for the current USD/THB rate. When the FX provider
is down, calling it on every view only adds latency before the resolver falls
back to the default rate anyway. The breaker stops calling a failing source
for a while and lets a few probe calls through once the timeout expires.

States:
    CLOSED    - Normal operation, calls pass through
    OPEN      - Too many failures, calls rejected immediately
    HALF_OPEN - Recovery timeout expired, limited probe calls allowed

State Transitions:
    CLOSED -> OPEN: failure count reaches threshold
    OPEN -> HALF_OPEN: recovery timeout expires
    HALF_OPEN -> CLOSED: a probe call succeeds
    HALF_OPEN -> OPEN: a probe call fails

Usage:
    breaker = CircuitBreaker(name="fx-usd-thb", failure_threshold=3)

    try:
        with breaker:
            rate = source.get_usd_thb_rate()
    except CircuitBreakerOpen:
        rate = settings.default_fx_rate
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """
    Raised when a call is attempted while the breaker is open.

    Attributes:
        breaker_name: Name of the circuit breaker
        time_remaining: Seconds until recovery timeout expires
    """

    def __init__(self, breaker_name: str, time_remaining: float) -> None:
        self.breaker_name = breaker_name
        self.time_remaining = time_remaining
        super().__init__(
            f"Circuit breaker '{breaker_name}' is open. "
            f"Retry in {time_remaining:.1f} seconds."
        )


@dataclass
class CircuitBreaker:
    """
    Thread-safe circuit breaker used as a context manager.

    Attributes:
        name: Identifier used in logs and errors
        failure_threshold: Consecutive failures before opening
        recovery_timeout: Seconds to stay open before probing
        half_open_max_calls: Probe calls allowed while half-open
    """

    name: str
    failure_threshold: int = 3
    recovery_timeout: float = 300.0
    half_open_max_calls: int = 1

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _last_failure_time: float = field(default=0.0, init=False)
    _half_open_calls: int = field(default=0, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False)

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.recovery_timeout < 0:
            raise ValueError("recovery_timeout cannot be negative")
        if self.half_open_max_calls < 1:
            raise ValueError("half_open_max_calls must be at least 1")

    @property
    def state(self) -> CircuitState:
        """Current state, after applying any pending timeout transition."""
        with self._lock:
            self._check_state_transition()
            return self._state

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    def _check_state_transition(self) -> None:
        """Move OPEN -> HALF_OPEN once the timeout expires. Lock must be held."""
        if self._state == CircuitState.OPEN:
            if time.time() - self._last_failure_time >= self.recovery_timeout:
                self._transition_to(CircuitState.HALF_OPEN)

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state

        if new_state == CircuitState.HALF_OPEN:
            self._half_open_calls = 0
        if new_state == CircuitState.CLOSED:
            self._failure_count = 0

        logger.info(
            f"CircuitBreaker '{self.name}' state change: "
            f"{old_state.value} -> {new_state.value}"
        )

    def _record_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            self._transition_to(CircuitState.CLOSED)
        else:
            self._failure_count = 0

    def _record_failure(self) -> None:
        self._last_failure_time = time.time()

        if self._state == CircuitState.HALF_OPEN:
            self._transition_to(CircuitState.OPEN)
            return

        self._failure_count += 1
        if self._failure_count >= self.failure_threshold:
            self._transition_to(CircuitState.OPEN)

    def _can_execute(self) -> bool:
        self._check_state_transition()

        if self._state == CircuitState.CLOSED:
            return True

        if self._state == CircuitState.HALF_OPEN:
            if self._half_open_calls < self.half_open_max_calls:
                self._half_open_calls += 1
                return True

        return False

    def _time_until_recovery(self) -> float:
        remaining = self.recovery_timeout - (time.time() - self._last_failure_time)
        return max(0.0, remaining)

    def __enter__(self) -> "CircuitBreaker":
        """
        Raises:
            CircuitBreakerOpen: If the circuit is open
        """
        with self._lock:
            if not self._can_execute():
                raise CircuitBreakerOpen(self.name, self._time_until_recovery())
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> bool:
        with self._lock:
            if exc_val is None:
                self._record_success()
            else:
                self._record_failure()

        return False  # Don't suppress exceptions

    def reset(self) -> None:
        """Manually close the breaker."""
        with self._lock:
            self._transition_to(CircuitState.CLOSED)
