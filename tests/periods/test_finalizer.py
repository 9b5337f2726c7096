from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime

import pytest

from src.attendance_payroll.attendance_payroll.attendance.model import AttendanceRecord
from src.attendance_payroll.attendance_payroll.core.enums import AuditAction, PeriodStatus
from src.attendance_payroll.attendance_payroll.core.exceptions import StateConflictError, ValidationError
from src.attendance_payroll.attendance_payroll.database.in_memory import InMemoryUnitOfWork
from src.attendance_payroll.attendance_payroll.periods.finalizer import PeriodFinalizer

START = date(2025, 3, 1)
END = date(2025, 3, 15)


def record(record_id: str, employee_id: str, day: int, *, conflict: bool = False) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=record_id,
        employee_id=employee_id,
        work_date=date(2025, 3, day),
        clock_in=datetime(2025, 3, day, 9, 0),
        clock_out=datetime(2025, 3, day, 17, 0),
        total_hours=8.0,
        transaction_id=f"tx-{record_id}",
        has_conflict=conflict,
    )


def setup(*records: AttendanceRecord):
    uow = InMemoryUnitOfWork()
    for r in records:
        uow.store.attendance[r.record_id] = r
    finalizer = PeriodFinalizer(uow, clock=lambda: datetime(2025, 3, 16, 10, 0))
    period = finalizer.create_period(START, END, "admin-1")
    return uow, finalizer, period


def test_create_period_rejects_inverted_and_overlapping_ranges():
    _, finalizer, _ = setup()

    with pytest.raises(ValidationError):
        finalizer.create_period(END, START, "admin-1")
    with pytest.raises(StateConflictError, match="overlaps with existing period 2025-03-01 to 2025-03-15"):
        finalizer.create_period(date(2025, 3, 10), date(2025, 3, 20), "admin-1")


def test_finalize_locks_records_and_writes_audit():
    uow, finalizer, period = setup(record("r1", "E1", 3), record("r2", "E1", 4), record("r3", "E2", 3))

    result = finalizer.finalize(period.period_id, "admin-1")

    assert result.success is True
    assert result.affected_record_count == 3
    assert result.employee_count == 2
    assert result.period.status == PeriodStatus.FINALIZED
    assert result.period.finalized_by == "admin-1"
    assert all(r.is_locked for r in uow.store.attendance.values())
    assert uow.store.audit[-1].action == AuditAction.FINALIZE_ATTENDANCE_PERIOD


def test_second_finalize_is_rejected():
    _, finalizer, period = setup(record("r1", "E1", 3))
    finalizer.finalize(period.period_id, "admin-1")

    again = finalizer.finalize(period.period_id, "admin-2")

    assert again.success is False
    assert again.errors == ("Period is already finalized or locked",)
    assert again.error_kind == "conflict"


def test_unresolved_conflicts_block_finalization():
    uow, finalizer, period = setup(record("r1", "E1", 3, conflict=True), record("r2", "E2", 3, conflict=True))

    result = finalizer.finalize(period.period_id, "admin-1")

    assert result.success is False
    assert result.errors == ("2 attendance records have unresolved conflicts",)
    assert not any(r.is_locked for r in uow.store.attendance.values())
    assert uow.store.periods[period.period_id].status == PeriodStatus.PENDING


def test_resolved_conflicts_do_not_block():
    resolved = replace(record("r1", "E1", 3, conflict=True), conflict_resolved=True)
    _, finalizer, period = setup(resolved)

    assert finalizer.finalize(period.period_id, "admin-1").success is True


def test_unknown_period():
    _, finalizer, _ = setup()

    result = finalizer.finalize("missing", "admin-1")

    assert result.errors == ("Attendance period not found",)
    assert result.error_kind == "not_found"


def test_unlock_requires_reason_and_finalized_state():
    uow, finalizer, period = setup(record("r1", "E1", 3))

    assert finalizer.unlock(period.period_id, "admin-1", " ").errors == ("Unlock reason is required",)
    assert finalizer.unlock(period.period_id, "admin-1", "fix").errors == ("Only finalized periods can be unlocked",)

    finalizer.finalize(period.period_id, "admin-1")
    result = finalizer.unlock(period.period_id, "admin-2", "Late punch correction")

    assert result.success is True
    assert result.affected_record_count == 1
    assert result.period.status == PeriodStatus.PENDING
    assert result.period.unlock_reason == "Late punch correction"
    assert not uow.store.attendance["r1"].is_locked
    assert uow.store.audit[-1].action == AuditAction.UNLOCK_ATTENDANCE_PERIOD


def test_failed_write_rolls_back_everything():
    uow, finalizer, period = setup(record("r1", "E1", 3))

    class ExplodingAudit:
        def append(self, entry):
            raise RuntimeError("disk full")

    original_run = uow.run

    def run_with_broken_audit(work):
        def wrapped(tx):
            tx.audit = ExplodingAudit()
            return work(tx)

        return original_run(wrapped)

    uow.run = run_with_broken_audit
    result = finalizer.finalize(period.period_id, "admin-1")

    assert result.success is False
    assert result.errors == ("Failed to finalize period: disk full",)
    assert uow.store.periods[period.period_id].status == PeriodStatus.PENDING
    assert uow.store.attendance["r1"].is_locked is False


def test_period_summary():
    _, finalizer, period = setup(record("r1", "E1", 3, conflict=True), record("r2", "E2", 4))

    summary = finalizer.get_period_summary(period.period_id)

    assert summary.total_records == 2
    assert summary.employee_count == 2
    assert summary.unresolved_conflicts == 1
    assert summary.can_finalize is False


def test_concurrent_finalize_has_a_single_winner():
    uow, finalizer, period = setup(record("r1", "E1", 3), record("r2", "E2", 4))
    barrier = threading.Barrier(2)
    results = []

    def finalize():
        barrier.wait()
        results.append(finalizer.finalize(period.period_id, "admin-1"))

    threads = [threading.Thread(target=finalize) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(r.success for r in results) == [False, True]
    loser = next(r for r in results if not r.success)
    assert loser.errors == ("Period is already finalized or locked",)
    finalize_entries = [e for e in uow.store.audit if e.action == AuditAction.FINALIZE_ATTENDANCE_PERIOD]
    assert len(finalize_entries) == 1
