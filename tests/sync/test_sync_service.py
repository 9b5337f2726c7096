from __future__ import annotations

from datetime import datetime

from src.attendance_payroll.attendance_payroll.attendance.model import RawPunch
from src.attendance_payroll.attendance_payroll.attendance.reconciler import PunchReconciler
from src.attendance_payroll.attendance_payroll.core.enums import MappingStrategyName
from src.attendance_payroll.attendance_payroll.core.settings import (
    CircuitBreakerConfig,
    DeviceConfig,
    IdentityMappingConfig,
    ReconciliationConfig,
    RetryConfig,
)
from src.attendance_payroll.attendance_payroll.database.in_memory import InMemoryUnitOfWork
from src.attendance_payroll.attendance_payroll.device_link.client import TerminalClient
from src.attendance_payroll.attendance_payroll.device_link.link import DeviceLink
from src.attendance_payroll.attendance_payroll.device_link.pool import DevicePool
from src.attendance_payroll.attendance_payroll.device_link.transport import DeviceInfo
from src.attendance_payroll.attendance_payroll.employees.model import Employee
from src.attendance_payroll.attendance_payroll.identity.resolver import IdentityResolver
from src.attendance_payroll.attendance_payroll.sync.service import SyncService

PRIMARY = DeviceConfig(ip="10.0.0.1", timeout_ms=1000)


class FakeTransport:
    def __init__(self, device, punches=(), connect_error=None):
        self.device = device
        self.punches = list(punches)
        self.connect_error = connect_error

    def connect(self):
        if self.connect_error is not None:
            raise self.connect_error

    def disconnect(self):
        pass

    def get_info(self):
        return DeviceInfo(device_id=self.device.device_id)

    def get_users(self):
        return []

    def get_punches(self):
        return list(self.punches)


def raw(user_id: str, hh: int, mm: int) -> RawPunch:
    ts = datetime(2025, 3, 3, hh, mm)
    return RawPunch(
        terminal_user_id=user_id,
        timestamp=ts,
        device_id=PRIMARY.device_id,
        transaction_id=f"{PRIMARY.device_id}:{user_id}:{ts:%Y%m%d%H%M%S}",
    )


def make_service(transport):
    uow = InMemoryUnitOfWork()
    uow.store.employees["E1"] = Employee(employee_id="E1", full_name="John Doe", email="john.doe@co.com")
    link = DeviceLink(
        RetryConfig(max_attempts=1, base_delay_ms=0, max_delay_ms=0),
        CircuitBreakerConfig(failure_threshold=3, recovery_timeout_ms=30000),
        sleeper=lambda ms: None,
    )
    pool = DevicePool([TerminalClient(transport, link)])
    resolver = IdentityResolver(
        uow, IdentityMappingConfig(strategy=MappingStrategyName.EMAIL_PREFIX, email_domain="@co.com")
    )
    return uow, SyncService(pool, resolver, PunchReconciler(uow, ReconciliationConfig()))


def test_sync_resolves_and_reconciles_known_users():
    uow, service = make_service(FakeTransport(PRIMARY, punches=[raw("john.doe", 8, 58), raw("john.doe", 17, 5), raw("ghost", 9, 0)]))

    report = service.sync("admin-1")

    assert report.success is True
    assert report.punches_fetched == 3
    assert report.punches_reconciled == 2
    assert [u.terminal_user_id for u in report.unresolved] == ["ghost"]
    assert report.reconciliation.created == 1
    (stored,) = uow.store.attendance.values()
    assert stored.employee_id == "E1"
    assert stored.total_hours == 8.12

    data = report.to_dict()
    assert data["reconciliation"]["created"] == 1
    assert data["unresolved_terminal_users"][0]["terminal_user_id"] == "ghost"


def test_sync_reports_when_every_device_fails():
    _, service = make_service(FakeTransport(PRIMARY, connect_error=ConnectionRefusedError("connection refused")))

    report = service.sync("admin-1")

    assert report.success is False
    assert report.errors == ["No attendance device could be read"]
    assert report.failed_devices[PRIMARY.device_id]["category"] == "NETWORK"


def test_device_status_and_reset():
    _, service = make_service(FakeTransport(PRIMARY, connect_error=ConnectionRefusedError("connection refused")))
    service.test_devices()

    status = service.get_device_status()[PRIMARY.device_id]
    assert status["circuit_breaker"]["failure_count"] == 1
    assert status["metrics"]["failed_operations"] == 1

    assert service.reset_device(PRIMARY.device_id) == [PRIMARY.device_id]
    assert service.reset_device("10.9.9.9:4370") == []
    assert service.get_device_status()[PRIMARY.device_id]["circuit_breaker"]["failure_count"] == 0


def test_validate_employee_ids_batch():
    _, service = make_service(FakeTransport(PRIMARY))

    batch = service.validate_employee_ids_batch(["john.doe", "ghost"])

    assert (batch.valid_count, batch.invalid_count) == (1, 1)
