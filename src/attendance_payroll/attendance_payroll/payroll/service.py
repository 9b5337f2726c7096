from __future__ import annotations

from typing import List, Optional, Sequence

from ..common.validators import require_confirmation
from ..core.enums import NotificationEvent
from ..notifications.sink import LoggingNotificationSink, NotificationSink, notify_safely
from .engine import PayrollEngine
from .model import (
    EligibilityResult,
    PayrollApprovalResult,
    PayrollCalculationResult,
    PayrollPeriod,
    PayrollRecord,
    PayrollSummary,
    PreviewRow,
)


class PayrollService:
    """Operator-facing payroll actions.

    Calculation and approval must be confirmed explicitly; a notification is
    sent after each successful transition. Sink failures are logged only.
    """

    def __init__(self, engine: PayrollEngine, *, notification_sink: Optional[NotificationSink] = None):
        self._engine = engine
        self._sink = notification_sink or LoggingNotificationSink()

    def validate_eligibility(self, attendance_period_id: str) -> EligibilityResult:
        return self._engine.validate_eligibility(attendance_period_id)

    def preview(self, attendance_period_id: str, employee_ids: Optional[Sequence[str]] = None) -> List[PreviewRow]:
        return self._engine.preview(attendance_period_id, employee_ids)

    def calculate(
        self,
        attendance_period_id: str,
        actor_id: str,
        *,
        confirm: bool = False,
        employee_ids: Optional[Sequence[str]] = None,
    ) -> PayrollCalculationResult:
        require_confirmation(confirm, "calculate payroll")
        result = self._engine.calculate(attendance_period_id, actor_id, employee_ids)
        if result.success and result.period is not None:
            notify_safely(
                self._sink,
                NotificationEvent.PAYROLL_CALCULATED,
                {
                    "payroll_period_id": result.period.payroll_period_id,
                    "attendance_period_id": attendance_period_id,
                    "records_processed": result.records_processed,
                    "total_amount": str(result.total_amount),
                    "actor_id": actor_id,
                },
            )
        return result

    def approve(
        self,
        payroll_period_id: str,
        actor_id: str,
        *,
        confirm: bool = False,
        notes: Optional[str] = None,
    ) -> PayrollApprovalResult:
        require_confirmation(confirm, "approve payroll")
        result = self._engine.approve(payroll_period_id, actor_id, notes)
        if result.success and result.period is not None:
            notify_safely(
                self._sink,
                NotificationEvent.PAYROLL_APPROVED,
                {
                    "payroll_period_id": payroll_period_id,
                    "total_amount": str(result.period.total_amount),
                    "actor_id": actor_id,
                    "notes": notes,
                },
            )
        return result

    def get_summary(self, payroll_period_id: str) -> PayrollSummary:
        return self._engine.get_summary(payroll_period_id)

    def list_periods(self) -> Sequence[PayrollPeriod]:
        return self._engine.list_payroll_periods()

    def list_records(self, payroll_period_id: str) -> Sequence[PayrollRecord]:
        return self._engine.list_records(payroll_period_id)
