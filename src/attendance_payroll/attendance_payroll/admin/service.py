from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..audit.model import AuditEntry
from ..attendance.reconciler import EditCheck, PunchReconciler
from ..common.validators import require_confirmation
from ..core.enums import NotificationEvent
from ..notifications.sink import LoggingNotificationSink, NotificationSink, notify_safely
from ..periods.finalizer import PeriodFinalizer
from ..periods.model import AttendancePeriod, FinalizationResult, PeriodSummary


class FinanceAdminService:
    """Finance/admin actions on attendance periods and flagged records."""

    def __init__(
        self,
        finalizer: PeriodFinalizer,
        reconciler: PunchReconciler,
        *,
        notification_sink: Optional[NotificationSink] = None,
    ):
        self._finalizer = finalizer
        self._reconciler = reconciler
        self._sink = notification_sink or LoggingNotificationSink()

    def create_period(self, start_date: date, end_date: date, actor_id: str) -> AttendancePeriod:
        return self._finalizer.create_period(start_date, end_date, actor_id)

    def list_periods(self) -> Sequence[AttendancePeriod]:
        return self._finalizer.list_periods()

    def get_period_summary(self, period_id: str) -> PeriodSummary:
        return self._finalizer.get_period_summary(period_id)

    def get_period_audit_trail(self, period_id: str) -> Sequence[AuditEntry]:
        return self._finalizer.get_audit_trail(period_id)

    def finalize_period(self, period_id: str, actor_id: str, *, confirm: bool = False) -> FinalizationResult:
        require_confirmation(confirm, "finalize the period")
        result = self._finalizer.finalize(period_id, actor_id)
        if result.success and result.period is not None:
            notify_safely(
                self._sink,
                NotificationEvent.PERIOD_FINALIZED,
                {
                    "period_id": period_id,
                    "start_date": result.period.start_date.isoformat(),
                    "end_date": result.period.end_date.isoformat(),
                    "affected_record_count": result.affected_record_count,
                    "employee_count": result.employee_count,
                    "actor_id": actor_id,
                },
            )
        return result

    def unlock_period(
        self, period_id: str, actor_id: str, reason: str, *, confirm: bool = False
    ) -> FinalizationResult:
        require_confirmation(confirm, "unlock the period")
        result = self._finalizer.unlock(period_id, actor_id, reason)
        if result.success and result.period is not None:
            notify_safely(
                self._sink,
                NotificationEvent.PERIOD_UNLOCKED,
                {
                    "period_id": period_id,
                    "start_date": result.period.start_date.isoformat(),
                    "end_date": result.period.end_date.isoformat(),
                    "affected_record_count": result.affected_record_count,
                    "reason": result.period.unlock_reason,
                    "actor_id": actor_id,
                },
            )
        return result

    def resolve_conflict(self, record_id: str, actor_id: str, notes: str) -> AttendanceRecord:
        return self._reconciler.resolve_conflict(record_id, actor_id, notes)

    def is_record_editable(self, record_id: str) -> EditCheck:
        return self._reconciler.is_record_editable(record_id)
