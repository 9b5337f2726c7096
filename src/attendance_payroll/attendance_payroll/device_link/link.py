"""Resilient request/response wrapper around terminal operations.

``DeviceLink.execute`` runs one idempotent operation against one device and
always returns a ``Result``: failures are categorised, retried with backoff
when retryable, and counted against a per-device circuit breaker. Nothing
raised by an operation escapes this module.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Callable, Dict, Optional, TypeVar

from ..common.datetime_utils import monotonic_ms
from ..core.enums import ErrorCategory, ErrorSeverity, NotificationEvent
from ..core.result import Result
from ..core.settings import CircuitBreakerConfig, RetryConfig
from ..notifications.sink import LoggingNotificationSink, NotificationSink, notify_safely
from .circuit_breaker import CircuitBreaker, CircuitBreakerStatus
from .errors import (
    CIRCUIT_OPEN_CODE,
    DeviceError,
    categorize_error,
    determine_severity,
    format_error_for_logging,
)
from .retry import RetryPolicy

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _sleep_ms(ms: int) -> None:
    time.sleep(ms / 1000.0)


class DeviceLink:
    def __init__(
        self,
        retry: RetryConfig,
        circuit_breaker: CircuitBreakerConfig,
        *,
        notification_sink: Optional[NotificationSink] = None,
        notification_cooldown_ms: int = 300000,
        sleeper: Callable[[int], None] = _sleep_ms,
        clock_ms: Callable[[], float] = monotonic_ms,
        max_workers: int = 8,
    ):
        self._policy = RetryPolicy(retry)
        self._breaker_config = circuit_breaker
        self._sink = notification_sink or LoggingNotificationSink()
        self._cooldown_ms = notification_cooldown_ms
        self._sleep = sleeper
        self._clock_ms = clock_ms
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()
        self._last_notification_ms: Optional[float] = None
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="device-link")
        # Timed-out calls still running, per device.
        self._abandoned: Dict[str, Future] = {}

    def _breaker(self, device_id: str) -> CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(device_id)
            if breaker is None:
                breaker = CircuitBreaker(self._breaker_config, clock_ms=self._clock_ms)
                self._breakers[device_id] = breaker
            return breaker

    def execute(
        self,
        operation: Callable[[], T],
        device_id: str,
        *,
        operation_name: str = "operation",
        timeout_ms: Optional[int] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> Result[T, DeviceError]:
        breaker = self._breaker(device_id)
        if not breaker.is_operation_allowed():
            error = DeviceError(
                code=CIRCUIT_OPEN_CODE,
                message=f"Circuit breaker is open for device {device_id}",
                category=ErrorCategory.DEVICE_UNAVAILABLE,
                severity=ErrorSeverity.MEDIUM,
                is_retryable=False,
                device_id=device_id,
                operation=operation_name,
                context=dict(context or {}),
            )
            logger.warning(format_error_for_logging(error), extra={"device_id": device_id})
            return Result.fail(error)

        max_attempts = self._policy.max_attempts
        attempt = 0
        while True:
            try:
                data = self._call(operation, device_id, timeout_ms)
            except Exception as exc:
                category = categorize_error(exc)
                retryable = self._policy.is_retryable(category)
                exhausted = retryable and attempt == max_attempts - 1
                error = DeviceError(
                    code=str(getattr(exc, "code", None) or category.value),
                    message=str(exc) or exc.__class__.__name__,
                    category=category,
                    severity=determine_severity(category, max_attempts if exhausted else attempt, max_attempts),
                    is_retryable=retryable,
                    retry_count=attempt,
                    device_id=device_id,
                    operation=operation_name,
                    context=dict(context or {}),
                )

                if retryable and not exhausted:
                    delay = self._policy.compute_delay_ms(attempt)
                    logger.warning(
                        "%s; retrying in %d ms (attempt %d/%d)",
                        format_error_for_logging(error),
                        delay,
                        attempt + 1,
                        max_attempts,
                        extra={"device_id": device_id},
                    )
                    self._sleep(delay)
                    attempt += 1
                    continue

                breaker.record_failure()
                logger.error(format_error_for_logging(error), extra={"device_id": device_id})
                if error.severity == ErrorSeverity.CRITICAL:
                    self._notify_critical(error)
                return Result.fail(error)

            breaker.record_success()
            return Result.ok(data)

    def _await_abandoned(self, device_id: str) -> None:
        with self._lock:
            future = self._abandoned.pop(device_id, None)
        if future is not None and not future.done():
            logger.debug("Waiting for timed-out call on %s to finish", device_id)
            wait([future])

    def _call(self, operation: Callable[[], T], device_id: str, timeout_ms: Optional[int]) -> T:
        # A worker thread cannot be interrupted; one call per device at a time.
        self._await_abandoned(device_id)
        if not timeout_ms:
            return operation()
        future = self._executor.submit(operation)
        try:
            return future.result(timeout=timeout_ms / 1000.0)
        except FutureTimeout:
            if not future.cancel():
                with self._lock:
                    self._abandoned[device_id] = future
            raise TimeoutError(f"Operation timed out after {timeout_ms} ms")

    def _notify_critical(self, error: DeviceError) -> None:
        now = self._clock_ms()
        with self._lock:
            if self._last_notification_ms is not None and now - self._last_notification_ms < self._cooldown_ms:
                logger.debug("Critical device notification suppressed (cooldown)")
                return
            self._last_notification_ms = now
        notify_safely(self._sink, NotificationEvent.DEVICE_CRITICAL_ERROR, error.to_dict())

    def get_circuit_breaker_status(self, device_id: Optional[str] = None) -> Dict[str, CircuitBreakerStatus]:
        with self._lock:
            breakers = dict(self._breakers)
        if device_id is not None:
            breaker = breakers.get(device_id)
            if breaker is None:
                breaker = self._breaker(device_id)
            return {device_id: breaker.status()}
        return {key: b.status() for key, b in breakers.items()}

    def reset_circuit_breaker(self, device_id: Optional[str] = None) -> None:
        with self._lock:
            if device_id is None:
                targets = list(self._breakers.values())
            else:
                targets = [self._breakers[device_id]] if device_id in self._breakers else []
        for breaker in targets:
            breaker.reset()
        logger.info("Circuit breaker reset for %s", device_id or "all devices")

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
