# =============================================================================
# File: tenantsync/infra/reliability/circuit_breaker.py
# Description: Circuit breaker guarding calls to Postgres and Redis
# =============================================================================

import asyncio
import logging
import time
from collections import deque
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from tenantsync.config.reliability_config import CircuitBreakerConfig
from tenantsync.infra.metrics.circuit_breaker import (
    circuit_breaker_call_duration,
    circuit_breaker_failures,
    circuit_breaker_state,
    circuit_breaker_trips,
)

logger = logging.getLogger("tenantsync.circuit_breaker")

T = TypeVar('T')


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = auto()
    OPEN = auto()
    HALF_OPEN = auto()


# Gauge values exported for each state
_STATE_GAUGE = {
    CircuitState.CLOSED: 0,
    CircuitState.OPEN: 1,
    CircuitState.HALF_OPEN: 2,
}


class CircuitBreakerOpenError(Exception):
    """Raised when a call is rejected because the breaker is open."""


class CircuitBreaker:
    """Counts consecutive failures of a dependency and short-circuits calls while it is down."""

    def __init__(self, config: CircuitBreakerConfig):
        self.name = config.name
        self.config = config

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: Optional[datetime] = None
        self._half_open_calls = 0

        self._window: Optional[deque] = None
        if config.window_size:
            self._window = deque(maxlen=config.window_size)

        self._lock = asyncio.Lock()
        circuit_breaker_state.labels(name=self.name).set(_STATE_GAUGE[self._state])

    @property
    def state(self) -> CircuitState:
        return self._state

    async def call(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """Execute func under breaker protection; raises CircuitBreakerOpenError when open."""
        async with self._lock:
            if not self._can_execute():
                raise CircuitBreakerOpenError(f"Circuit breaker {self.name} is OPEN")

        start_time = time.monotonic()

        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            await self._on_failure(time.monotonic() - start_time, str(e))
            raise

        await self._on_success(time.monotonic() - start_time)
        return result

    def _can_execute(self) -> bool:
        if self._state == CircuitState.CLOSED:
            return True

        if self._state == CircuitState.OPEN:
            if not self._should_attempt_reset():
                return False
            self._set_state(CircuitState.HALF_OPEN)
            self._half_open_calls = 1
            logger.info(f"circuit_breaker_half_open for {self.name}")
            return True

        if self._half_open_calls < self.config.half_open_max_calls:
            self._half_open_calls += 1
            return True
        return False

    async def _on_success(self, duration: float) -> None:
        async with self._lock:
            if self._window is not None:
                self._window.append(True)

            self._failure_count = 0
            circuit_breaker_call_duration.labels(name=self.name, result='success').observe(duration)

            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.config.success_threshold:
                    self._transition_to_closed()

    async def _on_failure(self, duration: float, error_details: Optional[str] = None) -> None:
        async with self._lock:
            if self._window is not None:
                self._window.append(False)

            self._failure_count += 1
            self._last_failure_time = datetime.now(timezone.utc)

            if error_details:
                logger.debug(f"Circuit breaker {self.name} failure: {error_details}")

            circuit_breaker_failures.labels(name=self.name).inc()
            circuit_breaker_call_duration.labels(name=self.name, result='failure').observe(duration)

            if self._state == CircuitState.HALF_OPEN:
                self._transition_to_open()
            elif self._state == CircuitState.CLOSED and self._threshold_reached():
                self._transition_to_open()

    def _threshold_reached(self) -> bool:
        if self._failure_count >= self.config.failure_threshold:
            return True

        if (self.config.failure_rate_threshold is not None
                and self._window is not None
                and len(self._window) >= self.config.window_size):
            return self._failure_rate() >= self.config.failure_rate_threshold

        return False

    def _failure_rate(self) -> float:
        if not self._window:
            return 0.0
        return sum(1 for ok in self._window if not ok) / len(self._window)

    def _should_attempt_reset(self) -> bool:
        if self._last_failure_time is None:
            return True
        elapsed = (datetime.now(timezone.utc) - self._last_failure_time).total_seconds()
        return elapsed >= self.config.reset_timeout_seconds

    def _set_state(self, state: CircuitState) -> None:
        self._state = state
        circuit_breaker_state.labels(name=self.name).set(_STATE_GAUGE[state])

    def _transition_to_closed(self) -> None:
        self._set_state(CircuitState.CLOSED)
        self._failure_count = 0
        self._success_count = 0
        self._half_open_calls = 0
        logger.info(f"circuit_breaker_closed for {self.name}")

    def _transition_to_open(self) -> None:
        self._set_state(CircuitState.OPEN)
        self._success_count = 0
        circuit_breaker_trips.labels(name=self.name).inc()
        logger.warning(f"circuit_breaker_opened for {self.name}")

    def get_metrics(self) -> Dict[str, Any]:
        """Snapshot used by health endpoints."""
        metrics = {
            "name": self.name,
            "state": self._state.name,
            "failure_count": self._failure_count,
            "last_failure_time": self._last_failure_time.isoformat() if self._last_failure_time else None,
        }
        if self._window is not None:
            metrics["failure_rate"] = self._failure_rate()
        return metrics
