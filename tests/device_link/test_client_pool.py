from __future__ import annotations

from datetime import datetime

from src.attendance_payroll.attendance_payroll.attendance.model import RawPunch
from src.attendance_payroll.attendance_payroll.core.enums import CircuitState, ErrorCategory
from src.attendance_payroll.attendance_payroll.core.settings import (
    CircuitBreakerConfig,
    DeviceConfig,
    DevicePoolConfig,
    RetryConfig,
)
from src.attendance_payroll.attendance_payroll.device_link.client import NOT_CONNECTED_CODE, TerminalClient
from src.attendance_payroll.attendance_payroll.device_link.link import DeviceLink
from src.attendance_payroll.attendance_payroll.device_link.pool import DevicePool
from src.attendance_payroll.attendance_payroll.device_link.transport import DeviceInfo


class FakeTransport:
    def __init__(self, device: DeviceConfig, punches=(), connect_error=None):
        self.device = device
        self.punches = list(punches)
        self.connect_error = connect_error
        self.connected = False
        self.disconnects = 0

    def connect(self):
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    def disconnect(self):
        self.connected = False
        self.disconnects += 1

    def get_info(self):
        return DeviceInfo(device_id=self.device.device_id, serial_number="SN-1", record_count=len(self.punches))

    def get_users(self):
        return []

    def get_punches(self):
        return list(self.punches)


def make_link():
    return DeviceLink(
        RetryConfig(max_attempts=2, base_delay_ms=0, max_delay_ms=0),
        CircuitBreakerConfig(failure_threshold=5, recovery_timeout_ms=30000),
        sleeper=lambda ms: None,
    )


def punch(user_id: str, device: DeviceConfig, hh: int, mm: int) -> RawPunch:
    ts = datetime(2025, 3, 3, hh, mm)
    return RawPunch(
        terminal_user_id=user_id,
        timestamp=ts,
        device_id=device.device_id,
        transaction_id=f"{device.device_id}:{user_id}:{ts:%Y%m%d%H%M%S}",
    )


PRIMARY = DeviceConfig(ip="10.0.0.1", timeout_ms=1000)
SECONDARY = DeviceConfig(ip="10.0.0.2", timeout_ms=1000)


def test_get_punches_requires_connection():
    client = TerminalClient(FakeTransport(PRIMARY), make_link())

    result = client.get_punches()

    assert result.success is False
    assert result.error.code == NOT_CONNECTED_CODE


def test_fetch_punches_connects_reads_and_disconnects():
    transport = FakeTransport(PRIMARY, punches=[punch("john.doe", PRIMARY, 8, 58), punch("john.doe", PRIMARY, 17, 5)])
    client = TerminalClient(transport, make_link())

    result = client.fetch_punches()

    assert result.success is True
    assert len(result.data) == 2
    assert client.is_connected is False
    assert transport.disconnects == 1
    metrics = client.get_metrics()
    assert metrics.total_operations == 3
    assert metrics.failed_operations == 0


def test_connection_test_reports_device_info_and_failures():
    ok = TerminalClient(FakeTransport(PRIMARY), make_link()).test_connection()
    assert ok.success is True
    assert ok.device_info.serial_number == "SN-1"

    bad = TerminalClient(FakeTransport(SECONDARY, connect_error=ConnectionRefusedError("connection refused")), make_link())
    test = bad.test_connection()
    assert test.success is False
    assert test.error.category == ErrorCategory.NETWORK
    assert bad.health_check().status == "error"


def test_pool_collects_from_healthy_devices_and_reports_failures():
    transports = {
        PRIMARY.device_id: FakeTransport(PRIMARY, punches=[punch("a", PRIMARY, 9, 0)]),
        SECONDARY.device_id: FakeTransport(SECONDARY, connect_error=ConnectionRefusedError("connection refused")),
    }
    pool = DevicePool.from_config(
        DevicePoolConfig(primary=PRIMARY, secondary=(SECONDARY,)),
        make_link(),
        transport_factory=lambda device: transports[device.device_id],
    )

    collection = pool.fetch_all_punches()

    assert collection.punch_counts == {PRIMARY.device_id: 1}
    assert set(collection.failed_devices) == {SECONDARY.device_id}
    assert collection.failed_devices[SECONDARY.device_id].category == ErrorCategory.NETWORK

    tested = pool.test_all()
    assert (tested.total_devices, tested.connected_devices, tested.failed_devices) == (2, 1, 1)


def test_reset_clears_metrics_and_breaker():
    client = TerminalClient(FakeTransport(PRIMARY, connect_error=ConnectionRefusedError("refused")), make_link())
    client.connect()
    assert client.get_metrics().failed_operations == 1
    assert client.get_circuit_breaker_status().failure_count == 1

    client.reset()

    assert client.get_metrics().total_operations == 0
    assert client.get_circuit_breaker_status().state == CircuitState.CLOSED
    assert client.get_circuit_breaker_status().failure_count == 0


def test_read_device_info_opens_and_closes_a_connection():
    transport = FakeTransport(PRIMARY, punches=[punch("a", PRIMARY, 9, 0)])
    client = TerminalClient(transport, make_link())

    result = client.read_device_info()

    assert result.success is True
    assert result.data.record_count == 1
    assert client.is_connected is False
    assert transport.disconnects == 1


def test_read_device_info_reports_connection_failure():
    client = TerminalClient(FakeTransport(PRIMARY, connect_error=ConnectionRefusedError("connection refused")), make_link())

    result = client.read_device_info()

    assert result.success is False
    assert result.error.category == ErrorCategory.NETWORK
