"""Attendance period lifecycle.

PENDING -> FINALIZED locks every record in the period's date range so it can
feed payroll; FINALIZED -> PENDING happens only through an explicit, audited
unlock. Each transition runs as one unit of work with the period row locked,
so concurrent callers serialise and only one of them wins.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Sequence

from ..audit.model import AuditEntry
from ..common.datetime_utils import now_local
from ..core.enums import AuditAction, PeriodStatus
from ..core.exceptions import DomainError, NotFoundError, StateConflictError, ValidationError, error_kind
from ..database.unit_of_work import Transaction, UnitOfWork
from .model import AttendancePeriod, FinalizationResult, PeriodSummary

logger = logging.getLogger(__name__)

TABLE_NAME = "attendance_periods"


class PeriodFinalizer:
    def __init__(self, uow: UnitOfWork, *, clock: Callable[[], datetime] = now_local):
        self._uow = uow
        self._clock = clock

    @staticmethod
    def _load(tx: Transaction, period_id: str) -> AttendancePeriod:
        period = tx.periods.get(period_id, for_update=True)
        if period is None:
            raise NotFoundError("Attendance period not found")
        return period

    def create_period(self, start_date: date, end_date: date, actor_id: str) -> AttendancePeriod:
        if start_date > end_date:
            raise ValidationError("Start date must be on or before end date")

        def work(tx: Transaction) -> AttendancePeriod:
            clash = tx.periods.find_overlapping(start_date=start_date, end_date=end_date)
            if clash is not None:
                raise StateConflictError(
                    f"Period overlaps with existing period {clash.start_date.isoformat()} to {clash.end_date.isoformat()}"
                )
            period = tx.periods.add(
                AttendancePeriod(
                    period_id=str(uuid.uuid4()),
                    start_date=start_date,
                    end_date=end_date,
                    created_at=self._clock(),
                )
            )
            tx.audit.append(
                AuditEntry(
                    actor_id=actor_id,
                    action=AuditAction.CREATE_ATTENDANCE_PERIOD,
                    table_name=TABLE_NAME,
                    record_id=period.period_id,
                    new_values={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
                    created_at=self._clock(),
                )
            )
            return period

        period = self._uow.run(work)
        logger.info("Attendance period %s created (%s to %s)", period.period_id, start_date, end_date)
        return period

    def finalize(self, period_id: str, actor_id: str) -> FinalizationResult:
        def work(tx: Transaction) -> FinalizationResult:
            period = self._load(tx, period_id)
            if period.status != PeriodStatus.PENDING:
                raise StateConflictError("Period is already finalized or locked")

            unresolved = tx.attendance.count_unresolved_conflicts(
                start_date=period.start_date, end_date=period.end_date
            )
            if unresolved:
                raise StateConflictError(f"{unresolved} attendance records have unresolved conflicts")

            records = tx.attendance.list_in_range(start_date=period.start_date, end_date=period.end_date)
            tx.attendance.set_locked_in_range(start_date=period.start_date, end_date=period.end_date, locked=True)
            employee_count = len({r.employee_id for r in records})
            now = self._clock()

            finalized = tx.periods.update(
                replace(
                    period,
                    status=PeriodStatus.FINALIZED,
                    total_records=len(records),
                    employee_count=employee_count,
                    finalized_by=actor_id,
                    finalized_at=now,
                )
            )
            tx.audit.append(
                AuditEntry(
                    actor_id=actor_id,
                    action=AuditAction.FINALIZE_ATTENDANCE_PERIOD,
                    table_name=TABLE_NAME,
                    record_id=period_id,
                    new_values={
                        "status": PeriodStatus.FINALIZED.value,
                        "total_records": len(records),
                        "employee_count": employee_count,
                    },
                    created_at=now,
                )
            )
            return FinalizationResult(
                success=True,
                period=finalized,
                affected_record_count=len(records),
                employee_count=employee_count,
            )

        result = self._guarded("finalize", period_id, work)
        if result.success:
            logger.info(
                "Period %s finalized by %s: %d record(s), %d employee(s)",
                period_id,
                actor_id,
                result.affected_record_count,
                result.employee_count,
                extra={"period_id": period_id, "actor_id": actor_id},
            )
        return result

    def unlock(self, period_id: str, actor_id: str, reason: str) -> FinalizationResult:
        if not reason or not reason.strip():
            return FinalizationResult(success=False, errors=("Unlock reason is required",), error_kind="invalid")
        reason = reason.strip()

        def work(tx: Transaction) -> FinalizationResult:
            period = self._load(tx, period_id)
            if period.status != PeriodStatus.FINALIZED:
                raise StateConflictError("Only finalized periods can be unlocked")

            affected = len(tx.attendance.list_in_range(start_date=period.start_date, end_date=period.end_date))
            tx.attendance.set_locked_in_range(start_date=period.start_date, end_date=period.end_date, locked=False)
            now = self._clock()

            reopened = tx.periods.update(
                replace(
                    period,
                    status=PeriodStatus.PENDING,
                    unlocked_by=actor_id,
                    unlocked_at=now,
                    unlock_reason=reason,
                )
            )
            tx.audit.append(
                AuditEntry(
                    actor_id=actor_id,
                    action=AuditAction.UNLOCK_ATTENDANCE_PERIOD,
                    table_name=TABLE_NAME,
                    record_id=period_id,
                    new_values={"status": PeriodStatus.PENDING.value, "unlock_reason": reason},
                    created_at=now,
                )
            )
            return FinalizationResult(
                success=True,
                period=reopened,
                affected_record_count=affected,
                employee_count=period.employee_count,
            )

        result = self._guarded("unlock", period_id, work)
        if result.success:
            logger.info(
                "Period %s unlocked by %s: %s",
                period_id,
                actor_id,
                reason,
                extra={"period_id": period_id, "actor_id": actor_id},
            )
        return result

    def _guarded(self, action: str, period_id: str, work: Callable[[Transaction], FinalizationResult]) -> FinalizationResult:
        try:
            return self._uow.run(work)
        except DomainError as exc:
            logger.warning("Cannot %s period %s: %s", action, period_id, exc)
            return FinalizationResult(success=False, errors=(str(exc),), error_kind=error_kind(exc))
        except Exception as exc:
            logger.exception("Period %s failed for %s", action, period_id)
            return FinalizationResult(success=False, errors=(f"Failed to {action} period: {exc}",), error_kind="error")

    def get_period_summary(self, period_id: str) -> PeriodSummary:
        def work(tx: Transaction) -> PeriodSummary:
            period = tx.periods.get(period_id)
            if period is None:
                raise NotFoundError("Attendance period not found")
            records = tx.attendance.list_in_range(start_date=period.start_date, end_date=period.end_date)
            return PeriodSummary(
                period=period,
                total_records=len(records),
                employee_count=len({r.employee_id for r in records}),
                incomplete_records=sum(1 for r in records if not r.is_complete),
                unresolved_conflicts=sum(1 for r in records if r.has_unresolved_conflict),
            )

        return self._uow.run(work)

    def list_periods(self) -> Sequence[AttendancePeriod]:
        return self._uow.run(lambda tx: list(tx.periods.list_all()))

    def get_audit_trail(self, period_id: str) -> Sequence[AuditEntry]:
        def work(tx: Transaction) -> Sequence[AuditEntry]:
            if tx.periods.get(period_id) is None:
                raise NotFoundError("Attendance period not found")
            return list(tx.audit.list_for_record(table_name=TABLE_NAME, record_id=period_id))

        return self._uow.run(work)
