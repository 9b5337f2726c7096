"""Punch reconciliation.

Raw punches carry no reliable direction, so a day's record is inferred: the
earliest punch is the clock-in and the latest the clock-out. Punches within
the duplicate window of the previous one are treated as the same event.

A day is flagged (``has_conflict``) when it still has more punches than
expected after duplicates are collapsed, or when a re-sync disagrees with a
stored, non-null timestamp. Flags stay until an operator resolves them and
block finalization of the surrounding period.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..audit.model import AuditEntry
from ..common.datetime_utils import hours_between, now_local
from ..common.validators import require_non_empty
from ..core.enums import AuditAction, PeriodStatus, SyncStatus, ValidationStatus
from ..core.exceptions import NotFoundError, StateConflictError
from ..core.settings import ReconciliationConfig
from ..database.unit_of_work import Transaction, UnitOfWork
from .model import AttendanceRecord, Punch, ReconciliationResult

logger = logging.getLogger(__name__)

TABLE_NAME = "attendance_records"


@dataclass(frozen=True)
class EditCheck:
    editable: bool
    reason: Optional[str] = None


@dataclass
class _DayDraft:
    employee_id: str
    work_date: date
    clock_in: datetime
    clock_out: Optional[datetime]
    transaction_id: str
    punch_count: int
    notes: List[str] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)

    @property
    def total_hours(self) -> Optional[float]:
        if self.clock_out is None:
            return None
        return round(hours_between(self.clock_in, self.clock_out), 2)


def _fmt(ts: Optional[datetime]) -> str:
    return ts.strftime("%H:%M:%S") if ts else "-"


class PunchReconciler:
    def __init__(
        self,
        uow: UnitOfWork,
        config: ReconciliationConfig,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._uow = uow
        self._config = config
        self._clock = clock

    # -- grouping -----------------------------------------------------------------

    def _group(self, punches: Iterable[Punch]) -> Dict[Tuple[str, date], List[Punch]]:
        groups: Dict[Tuple[str, date], List[Punch]] = defaultdict(list)
        for p in punches:
            groups[(p.employee_id, p.timestamp.date())].append(p)
        return groups

    def _draft(self, employee_id: str, work_date: date, punches: List[Punch]) -> _DayDraft:
        ordered = sorted(punches, key=lambda p: (p.timestamp, p.transaction_id))
        kept: List[Punch] = [ordered[0]]
        duplicates = 0
        for p in ordered[1:]:
            if (p.timestamp - kept[-1].timestamp).total_seconds() <= self._config.duplicate_window_seconds:
                duplicates += 1
                continue
            kept.append(p)

        draft = _DayDraft(
            employee_id=employee_id,
            work_date=work_date,
            clock_in=kept[0].timestamp,
            clock_out=kept[-1].timestamp if len(kept) > 1 else None,
            transaction_id=kept[0].transaction_id,
            punch_count=len(kept),
        )
        if duplicates:
            draft.notes.append(
                f"{duplicates} duplicate punch(es) within {self._config.duplicate_window_seconds}s ignored"
            )
        if draft.clock_out is None:
            draft.notes.append("Missing clock-out punch")
        if len(kept) > self._config.expected_punches_per_day:
            draft.conflicts.append(
                f"{len(kept)} punches recorded (expected {self._config.expected_punches_per_day}); "
                f"clock-in/out pairing is ambiguous"
            )
        return draft

    # -- statuses -------------------------------------------------------------------

    @staticmethod
    def _statuses(record: AttendanceRecord) -> Tuple[SyncStatus, ValidationStatus]:
        if record.has_unresolved_conflict:
            return SyncStatus.PARTIAL, ValidationStatus.FAILED
        if not record.is_complete:
            return SyncStatus.PARTIAL, ValidationStatus.PENDING
        return SyncStatus.SUCCESS, ValidationStatus.VALIDATED

    def _with_statuses(self, record: AttendanceRecord) -> AttendanceRecord:
        sync_status, validation_status = self._statuses(record)
        return replace(record, sync_status=sync_status, validation_status=validation_status)

    @staticmethod
    def _flag(record: AttendanceRecord, conflicts: Sequence[str]) -> AttendanceRecord:
        detail = "; ".join(conflicts)
        if record.has_conflict and record.conflict_detail == detail:
            # Same conflict as before: keep its resolution state.
            return record
        return replace(
            record,
            has_conflict=True,
            conflict_detail=detail,
            conflict_resolved=False,
            conflict_resolved_by=None,
            conflict_notes=None,
        )

    # -- reconcile -------------------------------------------------------------------

    def reconcile(self, punches: Sequence[Punch]) -> ReconciliationResult:
        groups = self._group(punches)
        if not groups:
            return ReconciliationResult()

        def work(tx: Transaction) -> ReconciliationResult:
            result = ReconciliationResult()
            for (employee_id, work_date), day_punches in sorted(groups.items()):
                draft = self._draft(employee_id, work_date, day_punches)
                self._apply(tx, draft, result)
            return result

        result = self._uow.run(work)
        logger.info(
            "Reconciled %d day(s): %d created, %d updated, %d unchanged, %d conflict(s), %d locked",
            len(groups),
            result.created,
            result.updated,
            result.unchanged,
            result.conflicts,
            result.skipped_locked,
        )
        return result

    def _is_locked(self, tx: Transaction, work_date: date, existing: Optional[AttendanceRecord]) -> bool:
        if existing is not None and existing.is_locked:
            return True
        period = tx.periods.find_containing(work_date)
        return period is not None and period.status == PeriodStatus.FINALIZED

    def _apply(self, tx: Transaction, draft: _DayDraft, result: ReconciliationResult) -> None:
        now = self._clock()
        existing = tx.attendance.find(
            employee_id=draft.employee_id, work_date=draft.work_date, transaction_id=draft.transaction_id
        )
        same_day = (
            tx.attendance.find_for_day(employee_id=draft.employee_id, work_date=draft.work_date)
            if existing is None
            else []
        )
        target = existing or (same_day[0] if same_day else None)

        if self._is_locked(tx, draft.work_date, target):
            result.skipped_locked += 1
            logger.debug("Skipping locked day %s for %s", draft.work_date, draft.employee_id)
            return

        if target is None:
            record = AttendanceRecord(
                record_id=str(uuid.uuid4()),
                employee_id=draft.employee_id,
                work_date=draft.work_date,
                clock_in=draft.clock_in,
                clock_out=draft.clock_out,
                total_hours=draft.total_hours,
                transaction_id=draft.transaction_id,
                validation_errors=tuple(draft.notes),
                punch_count=draft.punch_count,
                synced_at=now,
            )
            if draft.conflicts:
                record = self._flag(record, draft.conflicts)
            record = self._with_statuses(record)
            tx.attendance.add(record)
            result.created += 1
            result.conflicts += int(record.has_unresolved_conflict)
            result.records.append(record)
            return

        conflicts = list(draft.conflicts)
        if existing is None:
            conflicts.append(
                f"Stored record for {draft.work_date} came from transaction {target.transaction_id}, "
                f"re-sync reported {draft.transaction_id}"
            )
            clock_in, clock_out = target.clock_in, target.clock_out
        else:
            clock_in, clock_out = self._merge_timestamps(target, draft, conflicts)

        updated = replace(
            target,
            clock_in=clock_in,
            clock_out=clock_out,
            total_hours=(round(hours_between(clock_in, clock_out), 2) if clock_in and clock_out else None),
            validation_errors=tuple(draft.notes) if existing is not None else target.validation_errors,
            punch_count=max(target.punch_count, draft.punch_count),
        )
        if conflicts:
            updated = self._flag(updated, conflicts)
        updated = self._with_statuses(updated)

        if updated == target:
            result.unchanged += 1
            result.conflicts += int(updated.has_unresolved_conflict)
            result.records.append(target)
            return

        updated = replace(updated, synced_at=now)
        tx.attendance.update(updated)
        result.updated += 1
        result.conflicts += int(updated.has_unresolved_conflict)
        result.records.append(updated)

    @staticmethod
    def _merge_timestamps(
        stored: AttendanceRecord, draft: _DayDraft, conflicts: List[str]
    ) -> Tuple[Optional[datetime], Optional[datetime]]:
        """Keep stored values on disagreement; fill stored gaps from the re-sync."""

        clock_in = stored.clock_in
        if stored.clock_in is None:
            clock_in = draft.clock_in
        elif stored.clock_in != draft.clock_in:
            conflicts.append(f"Clock-in mismatch: stored {_fmt(stored.clock_in)}, re-sync {_fmt(draft.clock_in)}")

        clock_out = stored.clock_out
        if stored.clock_out is None:
            clock_out = draft.clock_out
        elif draft.clock_out is not None and stored.clock_out != draft.clock_out:
            conflicts.append(
                f"Clock-out mismatch: stored {_fmt(stored.clock_out)}, re-sync {_fmt(draft.clock_out)}"
            )
        return clock_in, clock_out

    # -- operator actions -------------------------------------------------------------

    def resolve_conflict(self, record_id: str, actor_id: str, notes: str) -> AttendanceRecord:
        notes = require_non_empty(notes, "Resolution notes")

        def work(tx: Transaction) -> AttendanceRecord:
            record = tx.attendance.get_by_id(record_id)
            if record is None:
                raise NotFoundError("Attendance record not found")
            if record.is_locked:
                raise StateConflictError("Record is locked because its attendance period is finalized")
            if not record.has_unresolved_conflict:
                raise StateConflictError("Attendance record has no unresolved conflict")

            resolved = self._with_statuses(
                replace(record, conflict_resolved=True, conflict_resolved_by=actor_id, conflict_notes=notes)
            )
            tx.attendance.update(resolved)
            tx.audit.append(
                AuditEntry(
                    actor_id=actor_id,
                    action=AuditAction.RESOLVE_ATTENDANCE_CONFLICT,
                    table_name=TABLE_NAME,
                    record_id=record_id,
                    new_values={"conflict_detail": record.conflict_detail, "notes": notes},
                    created_at=self._clock(),
                )
            )
            return resolved

        resolved = self._uow.run(work)
        logger.info("Conflict on attendance record %s resolved by %s", record_id, actor_id)
        return resolved

    def is_record_editable(self, record_id: str) -> EditCheck:
        def work(tx: Transaction) -> EditCheck:
            record = tx.attendance.get_by_id(record_id)
            if record is None:
                return EditCheck(editable=False, reason="Record not found")
            if self._is_locked(tx, record.work_date, record):
                return EditCheck(editable=False, reason="Record is locked because its attendance period is finalized")
            return EditCheck(editable=True)

        return self._uow.run(work)
