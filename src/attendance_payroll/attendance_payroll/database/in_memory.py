"""Process-local persistence adapter.

Used by the test-suite and for running the API without MySQL. A single lock
serialises transactions; a snapshot taken at ``begin`` is restored when the
work raises, which gives the same all-or-nothing behaviour as the MySQL
adapter.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable, Optional, Sequence, TypeVar

from ..attendance.model import AttendanceRecord
from ..audit.model import AuditEntry
from ..employees.model import Employee
from ..payroll.model import PayrollPeriod, PayrollRecord
from ..periods.model import AttendancePeriod

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class InMemoryStore:
    employees: dict[str, Employee] = field(default_factory=dict)
    attendance: dict[str, AttendanceRecord] = field(default_factory=dict)
    periods: dict[str, AttendancePeriod] = field(default_factory=dict)
    payroll_periods: dict[str, PayrollPeriod] = field(default_factory=dict)
    payroll_records: dict[str, PayrollRecord] = field(default_factory=dict)
    audit: list[AuditEntry] = field(default_factory=list)

    def snapshot(self) -> "InMemoryStore":
        # Entities are frozen dataclasses, so copying the containers is enough.
        return InMemoryStore(
            employees=dict(self.employees),
            attendance=dict(self.attendance),
            periods=dict(self.periods),
            payroll_periods=dict(self.payroll_periods),
            payroll_records=dict(self.payroll_records),
            audit=list(self.audit),
        )

    def restore(self, snapshot: "InMemoryStore") -> None:
        self.employees = snapshot.employees
        self.attendance = snapshot.attendance
        self.periods = snapshot.periods
        self.payroll_periods = snapshot.payroll_periods
        self.payroll_records = snapshot.payroll_records
        self.audit = snapshot.audit


class InMemoryEmployeeRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_active_by_email(self, email: str) -> Optional[Employee]:
        for e in self._store.employees.values():
            if e.email == email and e.is_active:
                return e
        return None

    def get_active_by_id(self, employee_id: str) -> Optional[Employee]:
        e = self._store.employees.get(employee_id)
        return e if e and e.is_active else None

    def get_by_ids(self, employee_ids: Sequence[str]) -> Sequence[Employee]:
        return [self._store.employees[i] for i in employee_ids if i in self._store.employees]


class InMemoryAttendanceRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_by_id(self, record_id: str) -> Optional[AttendanceRecord]:
        return self._store.attendance.get(record_id)

    def find(self, *, employee_id: str, work_date: date, transaction_id: str) -> Optional[AttendanceRecord]:
        for r in self._store.attendance.values():
            if r.employee_id == employee_id and r.work_date == work_date and r.transaction_id == transaction_id:
                return r
        return None

    def find_for_day(self, *, employee_id: str, work_date: date) -> Sequence[AttendanceRecord]:
        return [
            r for r in self._store.attendance.values() if r.employee_id == employee_id and r.work_date == work_date
        ]

    def add(self, record: AttendanceRecord) -> AttendanceRecord:
        if self.find(employee_id=record.employee_id, work_date=record.work_date, transaction_id=record.transaction_id):
            raise ValueError("Attendance record already exists for this employee, date, and transaction ID")
        self._store.attendance[record.record_id] = record
        return record

    def update(self, record: AttendanceRecord) -> AttendanceRecord:
        if record.record_id not in self._store.attendance:
            raise KeyError(record.record_id)
        self._store.attendance[record.record_id] = record
        return record

    def list_in_range(
        self,
        *,
        start_date: date,
        end_date: date,
        employee_ids: Optional[Sequence[str]] = None,
    ) -> Sequence[AttendanceRecord]:
        wanted = set(employee_ids) if employee_ids is not None else None
        rows = [
            r
            for r in self._store.attendance.values()
            if start_date <= r.work_date <= end_date and (wanted is None or r.employee_id in wanted)
        ]
        rows.sort(key=lambda r: (r.employee_id, r.work_date))
        return rows

    def count_unresolved_conflicts(self, *, start_date: date, end_date: date) -> int:
        return sum(1 for r in self.list_in_range(start_date=start_date, end_date=end_date) if r.has_unresolved_conflict)

    def set_locked_in_range(self, *, start_date: date, end_date: date, locked: bool) -> int:
        count = 0
        for r in self.list_in_range(start_date=start_date, end_date=end_date):
            self._store.attendance[r.record_id] = replace(r, is_locked=locked)
            count += 1
        return count


class InMemoryPeriodRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get(self, period_id: str, *, for_update: bool = False) -> Optional[AttendancePeriod]:
        return self._store.periods.get(period_id)

    def add(self, period: AttendancePeriod) -> AttendancePeriod:
        self._store.periods[period.period_id] = period
        return period

    def update(self, period: AttendancePeriod) -> AttendancePeriod:
        if period.period_id not in self._store.periods:
            raise KeyError(period.period_id)
        self._store.periods[period.period_id] = period
        return period

    def find_overlapping(self, *, start_date: date, end_date: date) -> Optional[AttendancePeriod]:
        for p in self._store.periods.values():
            if p.start_date <= end_date and p.end_date >= start_date:
                return p
        return None

    def find_containing(self, day: date) -> Optional[AttendancePeriod]:
        for p in self._store.periods.values():
            if p.contains(day):
                return p
        return None

    def list_all(self) -> Sequence[AttendancePeriod]:
        return sorted(self._store.periods.values(), key=lambda p: p.start_date, reverse=True)


class InMemoryPayrollRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_period(self, payroll_period_id: str, *, for_update: bool = False) -> Optional[PayrollPeriod]:
        return self._store.payroll_periods.get(payroll_period_id)

    def get_period_for_attendance(
        self, attendance_period_id: str, *, for_update: bool = False
    ) -> Optional[PayrollPeriod]:
        for p in self._store.payroll_periods.values():
            if p.attendance_period_id == attendance_period_id:
                return p
        return None

    def add_period(self, period: PayrollPeriod) -> PayrollPeriod:
        self._store.payroll_periods[period.payroll_period_id] = period
        return period

    def update_period(self, period: PayrollPeriod) -> PayrollPeriod:
        if period.payroll_period_id not in self._store.payroll_periods:
            raise KeyError(period.payroll_period_id)
        self._store.payroll_periods[period.payroll_period_id] = period
        return period

    def list_periods(self) -> Sequence[PayrollPeriod]:
        return sorted(self._store.payroll_periods.values(), key=lambda p: p.start_date, reverse=True)

    def delete_records(self, payroll_period_id: str) -> int:
        doomed = [k for k, r in self._store.payroll_records.items() if r.payroll_period_id == payroll_period_id]
        for k in doomed:
            del self._store.payroll_records[k]
        return len(doomed)

    def add_records(self, records: Sequence[PayrollRecord]) -> int:
        for r in records:
            self._store.payroll_records[r.payroll_record_id] = r
        return len(records)

    def list_records(self, payroll_period_id: str) -> Sequence[PayrollRecord]:
        rows = [r for r in self._store.payroll_records.values() if r.payroll_period_id == payroll_period_id]
        rows.sort(key=lambda r: r.employee_id)
        return rows


class InMemoryAuditRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def append(self, entry: AuditEntry) -> None:
        self._store.audit.append(entry)

    def list_for_record(self, *, table_name: str, record_id: str) -> Sequence[AuditEntry]:
        return [e for e in self._store.audit if e.table_name == table_name and e.record_id == record_id]


class InMemoryTransaction:
    def __init__(self, store: InMemoryStore):
        self.employees = InMemoryEmployeeRepository(store)
        self.attendance = InMemoryAttendanceRepository(store)
        self.periods = InMemoryPeriodRepository(store)
        self.payroll = InMemoryPayrollRepository(store)
        self.audit = InMemoryAuditRepository(store)


class InMemoryUnitOfWork:
    def __init__(self, store: Optional[InMemoryStore] = None):
        self.store = store or InMemoryStore()
        self._lock = threading.RLock()

    def run(self, work: Callable[[InMemoryTransaction], T]) -> T:
        with self._lock:
            snapshot = self.store.snapshot()
            try:
                return work(InMemoryTransaction(self.store))
            except Exception:
                logger.warning("Transaction rolled back")
                self.store.restore(snapshot)
                raise
