from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Optional, Sequence

from ..attendance.model import RawPunch
from ..common.datetime_utils import monotonic_ms
from ..core.enums import CircuitState, DeviceOperation, ErrorCategory, ErrorSeverity
from ..core.result import Result
from .circuit_breaker import CircuitBreakerStatus
from .errors import DeviceError
from .link import DeviceLink
from .transport import DeviceInfo, TerminalTransport, TerminalUser

logger = logging.getLogger(__name__)

NOT_CONNECTED_CODE = "NOT_CONNECTED"


@dataclass(frozen=True)
class DeviceMetrics:
    total_operations: int = 0
    successful_operations: int = 0
    failed_operations: int = 0
    average_response_time_ms: float = 0.0
    circuit_breaker_trips: int = 0
    last_operation_time: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_operations": self.total_operations,
            "successful_operations": self.successful_operations,
            "failed_operations": self.failed_operations,
            "average_response_time_ms": round(self.average_response_time_ms, 2),
            "circuit_breaker_trips": self.circuit_breaker_trips,
            "last_operation_time": self.last_operation_time.isoformat() if self.last_operation_time else None,
        }


@dataclass(frozen=True)
class ConnectionTest:
    device_id: str
    success: bool
    message: str
    response_time_ms: float
    device_info: Optional[DeviceInfo] = None
    error: Optional[DeviceError] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "success": self.success,
            "message": self.message,
            "response_time_ms": round(self.response_time_ms, 2),
            "device_info": self.device_info.to_dict() if self.device_info else None,
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass(frozen=True)
class HealthCheck:
    device_id: str
    status: str
    response_time_ms: float
    last_check: datetime = field(default_factory=datetime.now)
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "status": self.status,
            "response_time_ms": round(self.response_time_ms, 2),
            "last_check": self.last_check.isoformat(),
            "error": self.error,
        }


class TerminalClient:
    """One terminal behind the device link, with connection state and metrics."""

    def __init__(
        self,
        transport: TerminalTransport,
        link: DeviceLink,
        *,
        clock_ms: Callable[[], float] = monotonic_ms,
    ):
        self._transport = transport
        self._link = link
        self._clock_ms = clock_ms
        self._lock = threading.Lock()
        self._connected = False
        self._metrics = DeviceMetrics()

    @property
    def device_id(self) -> str:
        return self._transport.device.device_id

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _timeout_ms(self) -> int:
        return self._transport.device.timeout_ms

    def _run(self, operation: DeviceOperation, fn: Callable[[], Any]) -> Result:
        started = self._clock_ms()
        result = self._link.execute(
            fn,
            self.device_id,
            operation_name=operation.value,
            timeout_ms=self._timeout_ms(),
            context={"ip": self._transport.device.ip, "port": self._transport.device.port},
        )
        self._record(started, result.success)
        return result

    def _record(self, started_ms: float, success: bool) -> None:
        elapsed = self._clock_ms() - started_ms
        status = self._link.get_circuit_breaker_status(self.device_id)[self.device_id]
        with self._lock:
            m = self._metrics
            average = elapsed if m.average_response_time_ms == 0 else m.average_response_time_ms * 0.7 + elapsed * 0.3
            self._metrics = replace(
                m,
                total_operations=m.total_operations + 1,
                successful_operations=m.successful_operations + (1 if success else 0),
                failed_operations=m.failed_operations + (0 if success else 1),
                circuit_breaker_trips=m.circuit_breaker_trips
                + (1 if not success and status.state == CircuitState.OPEN else 0),
                average_response_time_ms=average,
                last_operation_time=datetime.now(),
            )

    def _not_connected(self, operation: DeviceOperation) -> Result:
        return Result.fail(
            DeviceError(
                code=NOT_CONNECTED_CODE,
                message="Device not connected",
                category=ErrorCategory.DEVICE_UNAVAILABLE,
                severity=ErrorSeverity.MEDIUM,
                is_retryable=False,
                device_id=self.device_id,
                operation=operation.value,
            )
        )

    def _safe_disconnect(self) -> None:
        try:
            self._transport.disconnect()
        except Exception as exc:
            logger.debug("Ignoring disconnect failure on %s: %s", self.device_id, exc)

    def connect(self) -> Result[DeviceInfo, DeviceError]:
        def op() -> DeviceInfo:
            self._transport.connect()
            try:
                return self._transport.get_info()
            except Exception:
                self._safe_disconnect()
                raise

        result = self._run(DeviceOperation.CONNECT, op)
        self._connected = result.success
        return result

    def disconnect(self) -> Result[bool, DeviceError]:
        if not self._connected:
            return Result.ok(True)
        result = self._run(DeviceOperation.DISCONNECT, self._transport.disconnect)
        self._connected = False
        return Result.ok(True) if result.success else result

    def get_device_info(self) -> Result[DeviceInfo, DeviceError]:
        if not self._connected:
            return self._not_connected(DeviceOperation.GET_INFO)
        return self._run(DeviceOperation.GET_INFO, self._transport.get_info)

    def read_device_info(self) -> Result[DeviceInfo, DeviceError]:
        """Read terminal info, opening a short-lived connection when none is held."""

        if self._connected:
            return self.get_device_info()
        connected = self.connect()
        if not connected.success:
            return connected
        try:
            return self.get_device_info()
        finally:
            self.disconnect()

    def get_users(self) -> Result[Sequence[TerminalUser], DeviceError]:
        if not self._connected:
            return self._not_connected(DeviceOperation.GET_USERS)
        return self._run(DeviceOperation.GET_USERS, self._transport.get_users)

    def get_punches(self) -> Result[Sequence[RawPunch], DeviceError]:
        if not self._connected:
            return self._not_connected(DeviceOperation.GET_PUNCHES)
        return self._run(DeviceOperation.GET_PUNCHES, self._transport.get_punches)

    def fetch_punches(self) -> Result[Sequence[RawPunch], DeviceError]:
        """Connect, download the punch log and disconnect."""

        connected = self.connect()
        if not connected.success:
            return connected
        try:
            return self.get_punches()
        finally:
            self.disconnect()

    def test_connection(self) -> ConnectionTest:
        started = self._clock_ms()
        result = self.connect()
        elapsed = self._clock_ms() - started
        if not result.success:
            return ConnectionTest(
                device_id=self.device_id,
                success=False,
                message=result.error.message if result.error else "Connection failed",
                response_time_ms=elapsed,
                error=result.error,
            )
        self.disconnect()
        return ConnectionTest(
            device_id=self.device_id,
            success=True,
            message="Connection successful",
            response_time_ms=elapsed,
            device_info=result.data,
        )

    def health_check(self) -> HealthCheck:
        test = self.test_connection()
        return HealthCheck(
            device_id=self.device_id,
            status="connected" if test.success else "error",
            response_time_ms=test.response_time_ms,
            error=None if test.success else test.message,
        )

    def get_metrics(self) -> DeviceMetrics:
        with self._lock:
            return self._metrics

    def get_circuit_breaker_status(self) -> CircuitBreakerStatus:
        return self._link.get_circuit_breaker_status(self.device_id)[self.device_id]

    def reset(self) -> None:
        self._link.reset_circuit_breaker(self.device_id)
        with self._lock:
            self._metrics = DeviceMetrics()
