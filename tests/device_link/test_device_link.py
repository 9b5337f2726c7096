from __future__ import annotations

import threading
import time

from src.attendance_payroll.attendance_payroll.core.enums import CircuitState, ErrorCategory, ErrorSeverity, NotificationEvent
from src.attendance_payroll.attendance_payroll.core.settings import CircuitBreakerConfig, RetryConfig
from src.attendance_payroll.attendance_payroll.device_link.circuit_breaker import CircuitBreaker
from src.attendance_payroll.attendance_payroll.device_link.errors import CIRCUIT_OPEN_CODE
from src.attendance_payroll.attendance_payroll.device_link.link import DeviceLink


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class RecordingSink:
    def __init__(self):
        self.events = []

    def notify(self, event, payload):
        self.events.append((event, dict(payload)))


class Flaky:
    """Raises the queued exceptions in order, then returns ``value``."""

    def __init__(self, *errors, value="ok"):
        self.errors = list(errors)
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.value


def make_link(clock, *, max_attempts=3, threshold=5, recovery_ms=30000, sink=None):
    sleeps = []
    link = DeviceLink(
        RetryConfig(max_attempts=max_attempts, base_delay_ms=100, max_delay_ms=1000),
        CircuitBreakerConfig(failure_threshold=threshold, recovery_timeout_ms=recovery_ms),
        notification_sink=sink or RecordingSink(),
        notification_cooldown_ms=60000,
        sleeper=sleeps.append,
        clock_ms=clock,
    )
    return link, sleeps


def test_authentication_failure_is_not_retried():
    link, sleeps = make_link(FakeClock())
    op = Flaky(PermissionError("invalid credentials"))

    result = link.execute(op, "dev-1", operation_name="connect")

    assert result.success is False
    assert op.calls == 1
    assert sleeps == []
    assert result.error.category == ErrorCategory.AUTHENTICATION
    assert result.error.severity == ErrorSeverity.CRITICAL
    assert result.error.is_retryable is False


def test_network_failure_is_retried_with_backoff_until_exhausted():
    link, sleeps = make_link(FakeClock())
    op = Flaky(*(ConnectionError("connection refused") for _ in range(5)))

    result = link.execute(op, "dev-1")

    assert op.calls == 3
    assert len(sleeps) == 2
    assert 100 <= sleeps[0] <= 110
    assert 200 <= sleeps[1] <= 220
    assert result.error.category == ErrorCategory.NETWORK
    assert result.error.retry_count == 2
    assert result.error.severity == ErrorSeverity.CRITICAL


def test_transient_failure_then_success():
    link, sleeps = make_link(FakeClock())
    op = Flaky(TimeoutError("timed out"), value=[1, 2])

    result = link.execute(op, "dev-1")

    assert result.success is True
    assert result.data == [1, 2]
    assert op.calls == 2
    status = link.get_circuit_breaker_status("dev-1")["dev-1"]
    assert status.state == CircuitState.CLOSED
    assert status.failure_count == 0


def test_breaker_opens_after_threshold_and_short_circuits():
    clock = FakeClock()
    link, _ = make_link(clock, max_attempts=1, threshold=2)
    failing = Flaky(*(ConnectionError("unreachable") for _ in range(10)))

    link.execute(failing, "dev-1")
    link.execute(failing, "dev-1")
    assert link.get_circuit_breaker_status("dev-1")["dev-1"].state == CircuitState.OPEN

    untouched = Flaky()
    result = link.execute(untouched, "dev-1")
    assert untouched.calls == 0
    assert result.error.code == CIRCUIT_OPEN_CODE
    assert result.error.category == ErrorCategory.DEVICE_UNAVAILABLE

    # Other devices have their own breaker.
    assert link.execute(Flaky(), "dev-2").success is True


def test_half_open_trial_success_closes_breaker():
    clock = FakeClock()
    link, _ = make_link(clock, max_attempts=1, threshold=1, recovery_ms=1000)
    link.execute(Flaky(ConnectionError("unreachable")), "dev-1")

    clock.now = 1000
    result = link.execute(Flaky(value="back"), "dev-1")

    assert result.success is True
    assert link.get_circuit_breaker_status("dev-1")["dev-1"].state == CircuitState.CLOSED


def test_half_open_trial_failure_reopens_breaker():
    clock = FakeClock()
    link, _ = make_link(clock, max_attempts=1, threshold=1, recovery_ms=1000)
    link.execute(Flaky(ConnectionError("unreachable")), "dev-1")

    clock.now = 1000
    link.execute(Flaky(ConnectionError("unreachable")), "dev-1")

    assert link.get_circuit_breaker_status("dev-1")["dev-1"].state == CircuitState.OPEN
    assert link.execute(Flaky(), "dev-1").error.code == CIRCUIT_OPEN_CODE


def test_half_open_admits_exactly_one_call():
    clock = FakeClock()
    breaker = CircuitBreaker(CircuitBreakerConfig(failure_threshold=2, recovery_timeout_ms=500), clock_ms=clock)
    breaker.record_failure()
    breaker.record_failure()
    assert breaker.state == CircuitState.OPEN
    assert breaker.is_operation_allowed() is False

    clock.now = 500
    assert breaker.is_operation_allowed() is True
    assert breaker.state == CircuitState.HALF_OPEN
    assert breaker.is_operation_allowed() is False

    breaker.record_success()
    assert breaker.state == CircuitState.CLOSED
    assert breaker.is_operation_allowed() is True


def test_critical_errors_notify_once_per_cooldown():
    clock = FakeClock()
    sink = RecordingSink()
    link, _ = make_link(clock, sink=sink, threshold=100)

    link.execute(Flaky(PermissionError("forbidden")), "dev-1")
    link.execute(Flaky(PermissionError("forbidden")), "dev-1")
    assert len(sink.events) == 1
    assert sink.events[0][0] == NotificationEvent.DEVICE_CRITICAL_ERROR
    assert sink.events[0][1]["device_id"] == "dev-1"

    clock.now = 60000
    link.execute(Flaky(PermissionError("forbidden")), "dev-1")
    assert len(sink.events) == 2


def test_failing_sink_does_not_break_execute():
    class BrokenSink:
        def notify(self, event, payload):
            raise RuntimeError("smtp down")

    link, _ = make_link(FakeClock(), sink=BrokenSink())
    result = link.execute(Flaky(PermissionError("forbidden")), "dev-1")

    assert result.success is False
    assert result.error.category == ErrorCategory.AUTHENTICATION


def test_operation_timeout_is_reported_as_timeout():
    link, _ = make_link(FakeClock(), max_attempts=1)
    release = threading.Event()
    try:
        result = link.execute(lambda: release.wait(2.0), "dev-1", timeout_ms=50)
    finally:
        release.set()
        link.shutdown()

    assert result.success is False
    assert result.error.category == ErrorCategory.TIMEOUT


def test_reset_circuit_breaker_closes_it():
    link, _ = make_link(FakeClock(), max_attempts=1, threshold=1)
    link.execute(Flaky(ConnectionError("unreachable")), "dev-1")
    assert link.get_circuit_breaker_status()["dev-1"].state == CircuitState.OPEN

    link.reset_circuit_breaker()

    status = link.get_circuit_breaker_status("dev-1")["dev-1"]
    assert status.state == CircuitState.CLOSED
    assert status.failure_count == 0


def test_timed_out_call_finishes_before_retry_starts():
    link, sleeps = make_link(FakeClock(), max_attempts=3)
    lock = threading.Lock()
    state = {"running": 0, "peak": 0, "calls": 0}

    def slow_download():
        with lock:
            state["calls"] += 1
            state["running"] += 1
            state["peak"] = max(state["peak"], state["running"])
        time.sleep(0.3)
        with lock:
            state["running"] -= 1
        return "done"

    try:
        result = link.execute(slow_download, "dev-1", operation_name="get_punches", timeout_ms=100)
    finally:
        link.shutdown()

    assert result.success is False
    assert result.error.category == ErrorCategory.TIMEOUT
    assert state["calls"] == 3
    assert state["peak"] == 1
    assert len(sleeps) == 2
