from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import monotonic_ms
from ..core.enums import CircuitState
from ..core.settings import CircuitBreakerConfig


@dataclass(frozen=True)
class CircuitBreakerStatus:
    state: CircuitState
    failure_count: int
    last_failure_time: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "failure_count": self.failure_count,
            "last_failure_time": self.last_failure_time.isoformat() if self.last_failure_time else None,
        }


class CircuitBreaker:
    """Per-device gate.

    CLOSED lets everything through. ``failure_threshold`` consecutive failures
    open it; once ``recovery_timeout_ms`` has passed a single trial call is
    admitted (HALF_OPEN). The trial's outcome closes or re-opens it.
    """

    def __init__(
        self,
        config: CircuitBreakerConfig,
        *,
        clock_ms: Callable[[], float] = monotonic_ms,
        wall_clock: Callable[[], datetime] = datetime.now,
    ):
        self._config = config
        self._clock_ms = clock_ms
        self._wall_clock = wall_clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_ms = 0.0
        self._last_failure_at: Optional[datetime] = None

    @property
    def state(self) -> CircuitState:
        return self._state

    def is_operation_allowed(self) -> bool:
        with self._lock:
            if self._state == CircuitState.CLOSED:
                return True
            if self._state == CircuitState.OPEN:
                if self._clock_ms() - self._last_failure_ms >= self._config.recovery_timeout_ms:
                    self._state = CircuitState.HALF_OPEN
                    return True
                return False
            # HALF_OPEN: the single trial has already been handed out.
            return False

    def record_success(self) -> None:
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_ms = self._clock_ms()
            self._last_failure_at = self._wall_clock()
            if self._state == CircuitState.HALF_OPEN or self._failure_count >= self._config.failure_threshold:
                self._state = CircuitState.OPEN

    def reset(self) -> None:
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._last_failure_ms = 0.0
            self._last_failure_at = None

    def status(self) -> CircuitBreakerStatus:
        with self._lock:
            return CircuitBreakerStatus(
                state=self._state,
                failure_count=self._failure_count,
                last_failure_time=self._last_failure_at,
            )
