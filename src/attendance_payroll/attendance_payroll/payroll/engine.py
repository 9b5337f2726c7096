"""Payroll over finalized attendance periods.

Calculation and approval each run as one unit of work. A payroll period is
derived 1:1 from an attendance period; recalculation replaces its records
until the period is approved, after which it is frozen.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..audit.model import AuditEntry
from ..common.datetime_utils import now_local
from ..core.enums import AuditAction, PayrollStatus, PeriodStatus
from ..core.exceptions import DomainError, NotFoundError, StateConflictError, error_kind
from ..core.settings import PayrollRules
from ..database.unit_of_work import Transaction, UnitOfWork
from ..employees.model import Employee
from ..periods.model import AttendancePeriod
from .calculator.base import PayrollCalculator
from .calculator.overtime_calculator import ZERO, OvertimePayrollCalculator, money
from .model import (
    EligibilityResult,
    EmployeePayrollCalculation,
    PayrollApprovalResult,
    PayrollCalculationResult,
    PayrollPeriod,
    PayrollRecord,
    PayrollSummary,
    PreviewRow,
)

logger = logging.getLogger(__name__)

TABLE_NAME = "payroll_periods"


class PayrollEngine:
    def __init__(
        self,
        uow: UnitOfWork,
        rules: PayrollRules,
        *,
        calculator: Optional[PayrollCalculator] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._uow = uow
        self._rules = rules
        self._calculator = calculator or OvertimePayrollCalculator(rules)
        self._clock = clock

    # -- eligibility ------------------------------------------------------------------

    @staticmethod
    def _require_eligible(tx: Transaction, attendance_period_id: str, *, for_update: bool = False) -> AttendancePeriod:
        period = tx.periods.get(attendance_period_id, for_update=for_update)
        if period is None:
            raise NotFoundError("Attendance period not found")
        if period.status != PeriodStatus.FINALIZED:
            raise StateConflictError("Attendance period must be finalized before payroll calculation")
        payroll = tx.payroll.get_period_for_attendance(attendance_period_id, for_update=for_update)
        if payroll is not None and payroll.status == PayrollStatus.APPROVED:
            raise StateConflictError("Payroll already approved for this period")
        return period

    def validate_eligibility(self, attendance_period_id: str) -> EligibilityResult:
        try:
            self._uow.run(lambda tx: self._require_eligible(tx, attendance_period_id))
        except DomainError as exc:
            return EligibilityResult(eligible=False, reason=str(exc))
        return EligibilityResult(eligible=True)

    # -- shared calculation -------------------------------------------------------------

    def _rate_for(self, employee: Optional[Employee]) -> Decimal:
        if employee is not None and employee.hourly_rate is not None:
            return Decimal(str(employee.hourly_rate))
        return self._rules.default_rate

    def _calculate_all(
        self,
        tx: Transaction,
        period: AttendancePeriod,
        employee_ids: Optional[Sequence[str]],
    ) -> Dict[str, tuple[EmployeePayrollCalculation, List[AttendanceRecord], Optional[Employee]]]:
        records = tx.attendance.list_in_range(
            start_date=period.start_date, end_date=period.end_date, employee_ids=employee_ids
        )
        by_employee: Dict[str, List[AttendanceRecord]] = defaultdict(list)
        for r in records:
            by_employee[r.employee_id].append(r)

        employees = {e.employee_id: e for e in tx.employees.get_by_ids(sorted(by_employee))}
        out = {}
        for employee_id in sorted(by_employee):
            employee = employees.get(employee_id)
            calc = self._calculator.calculate(employee_id, by_employee[employee_id], self._rate_for(employee))
            out[employee_id] = (calc, by_employee[employee_id], employee)
        return out

    def _breakdown(self, calc: EmployeePayrollCalculation, records: Sequence[AttendanceRecord]) -> dict:
        return {
            "attendance_record_ids": [r.record_id for r in records],
            "daily_hours": [
                {
                    "date": d.work_date.isoformat(),
                    "regular_hours": str(d.regular_hours),
                    "overtime_hours": str(d.overtime_hours),
                    "total_hours": str(d.total_hours),
                }
                for d in calc.daily_hours
            ],
            "calculations": {
                "standard_pay": str(calc.standard_pay),
                "overtime_pay": str(calc.overtime_pay),
                "reallocated_hours": str(calc.reallocated_hours),
            },
            "overtime_rules": {
                "daily_threshold": str(self._rules.daily_threshold),
                "weekly_threshold": str(self._rules.weekly_threshold),
                "overtime_multiplier": str(self._rules.overtime_multiplier),
            },
        }

    # -- calculate ------------------------------------------------------------------------

    def calculate(
        self,
        attendance_period_id: str,
        actor_id: str,
        employee_ids: Optional[Sequence[str]] = None,
    ) -> PayrollCalculationResult:
        def work(tx: Transaction) -> PayrollCalculationResult:
            period = self._require_eligible(tx, attendance_period_id, for_update=True)
            now = self._clock()
            payroll = tx.payroll.get_period_for_attendance(attendance_period_id, for_update=True)
            if payroll is None:
                payroll = tx.payroll.add_period(
                    PayrollPeriod(
                        payroll_period_id=str(uuid.uuid4()),
                        attendance_period_id=attendance_period_id,
                        start_date=period.start_date,
                        end_date=period.end_date,
                    )
                )
            else:
                payroll = tx.payroll.update_period(replace(payroll, status=PayrollStatus.CALCULATING))

            tx.payroll.delete_records(payroll.payroll_period_id)

            calculations = self._calculate_all(tx, period, employee_ids)
            records = [
                PayrollRecord(
                    payroll_record_id=str(uuid.uuid4()),
                    payroll_period_id=payroll.payroll_period_id,
                    employee_id=employee_id,
                    standard_hours=calc.standard_hours,
                    overtime_hours=calc.overtime_hours,
                    standard_rate=calc.standard_rate,
                    overtime_rate=calc.overtime_rate,
                    gross_pay=calc.gross_pay,
                    breakdown=self._breakdown(calc, source),
                )
                for employee_id, (calc, source, _) in calculations.items()
            ]
            if records:
                tx.payroll.add_records(records)

            total_standard = sum((r.standard_hours for r in records), ZERO)
            total_overtime = sum((r.overtime_hours for r in records), ZERO)
            total_amount = sum((r.gross_pay for r in records), ZERO)

            calculated = tx.payroll.update_period(
                replace(
                    payroll,
                    status=PayrollStatus.CALCULATED,
                    total_standard_hours=money(total_standard),
                    total_overtime_hours=money(total_overtime),
                    total_amount=money(total_amount),
                    calculated_by=actor_id,
                    calculated_at=now,
                )
            )
            tx.audit.append(
                AuditEntry(
                    actor_id=actor_id,
                    action=AuditAction.CALCULATE_PAYROLL_PERIOD,
                    table_name=TABLE_NAME,
                    record_id=calculated.payroll_period_id,
                    new_values={
                        "attendance_period_id": attendance_period_id,
                        "records_processed": len(records),
                        "total_amount": str(calculated.total_amount),
                    },
                    created_at=now,
                )
            )
            return PayrollCalculationResult(
                success=True,
                period=calculated,
                records_processed=len(records),
                total_amount=calculated.total_amount,
            )

        try:
            result = self._uow.run(work)
        except DomainError as exc:
            logger.warning("Cannot calculate payroll for period %s: %s", attendance_period_id, exc)
            return PayrollCalculationResult(success=False, errors=(str(exc),), error_kind=error_kind(exc))
        except Exception as exc:
            logger.exception("Payroll calculation failed for period %s", attendance_period_id)
            return PayrollCalculationResult(
                success=False, errors=(f"Payroll calculation failed: {exc}",), error_kind="error"
            )

        logger.info(
            "Payroll calculated for period %s: %d employee(s), total %s",
            attendance_period_id,
            result.records_processed,
            result.total_amount,
            extra={"period_id": attendance_period_id, "actor_id": actor_id},
        )
        return result

    # -- approve ----------------------------------------------------------------------------

    def approve(self, payroll_period_id: str, actor_id: str, notes: Optional[str] = None) -> PayrollApprovalResult:
        def work(tx: Transaction) -> PayrollApprovalResult:
            payroll = tx.payroll.get_period(payroll_period_id, for_update=True)
            if payroll is None:
                raise NotFoundError("Payroll period not found")
            if payroll.status != PayrollStatus.CALCULATED:
                raise StateConflictError("Payroll must be calculated before approval")

            now = self._clock()
            approved = tx.payroll.update_period(
                replace(
                    payroll,
                    status=PayrollStatus.APPROVED,
                    approved_by=actor_id,
                    approved_at=now,
                    approval_notes=notes,
                )
            )
            tx.audit.append(
                AuditEntry(
                    actor_id=actor_id,
                    action=AuditAction.APPROVE_PAYROLL_PERIOD,
                    table_name=TABLE_NAME,
                    record_id=payroll_period_id,
                    new_values={
                        "status": PayrollStatus.APPROVED.value,
                        "total_amount": str(approved.total_amount),
                        "notes": notes,
                    },
                    created_at=now,
                )
            )
            return PayrollApprovalResult(success=True, period=approved)

        try:
            result = self._uow.run(work)
        except DomainError as exc:
            logger.warning("Cannot approve payroll period %s: %s", payroll_period_id, exc)
            return PayrollApprovalResult(success=False, errors=(str(exc),), error_kind=error_kind(exc))
        except Exception as exc:
            logger.exception("Payroll approval failed for %s", payroll_period_id)
            return PayrollApprovalResult(success=False, errors=(f"Payroll approval failed: {exc}",), error_kind="error")

        logger.info(
            "Payroll period %s approved by %s",
            payroll_period_id,
            actor_id,
            extra={"period_id": payroll_period_id, "actor_id": actor_id},
        )
        return result

    # -- read-only ----------------------------------------------------------------------------

    def preview(self, attendance_period_id: str, employee_ids: Optional[Sequence[str]] = None) -> List[PreviewRow]:
        """Same arithmetic as ``calculate`` without persisting anything."""

        def work(tx: Transaction) -> List[PreviewRow]:
            period = tx.periods.get(attendance_period_id)
            if period is None:
                raise NotFoundError("Attendance period not found")
            rows = []
            for employee_id, (calc, records, employee) in self._calculate_all(tx, period, employee_ids).items():
                rows.append(
                    PreviewRow(
                        employee_id=employee_id,
                        employee_name=employee.full_name if employee else employee_id,
                        department=employee.department if employee else None,
                        standard_hours=calc.standard_hours,
                        overtime_hours=calc.overtime_hours,
                        standard_rate=calc.standard_rate,
                        overtime_rate=calc.overtime_rate,
                        gross_pay=calc.gross_pay,
                        attendance_records=len(records),
                    )
                )
            return rows

        return self._uow.run(work)

    def get_summary(self, payroll_period_id: str) -> PayrollSummary:
        def work(tx: Transaction) -> PayrollSummary:
            if tx.payroll.get_period(payroll_period_id) is None:
                raise NotFoundError("Payroll period not found")
            return self.summarize(tx.payroll.list_records(payroll_period_id))

        return self._uow.run(work)

    @staticmethod
    def summarize(records: Sequence[PayrollRecord]) -> PayrollSummary:
        standard = sum((r.standard_hours for r in records), ZERO)
        overtime = sum((r.overtime_hours for r in records), ZERO)
        gross = sum((r.gross_pay for r in records), ZERO)
        total_hours = standard + overtime
        count = len(records)
        return PayrollSummary(
            total_employees=count,
            total_standard_hours=money(standard),
            total_overtime_hours=money(overtime),
            total_gross_pay=money(gross),
            average_hours_per_employee=money(total_hours / count) if count else Decimal("0.00"),
            overtime_percentage=money(overtime / total_hours * 100) if total_hours else Decimal("0.00"),
        )

    def list_payroll_periods(self) -> Sequence[PayrollPeriod]:
        return self._uow.run(lambda tx: list(tx.payroll.list_periods()))

    def list_records(self, payroll_period_id: str) -> Sequence[PayrollRecord]:
        def work(tx: Transaction) -> Sequence[PayrollRecord]:
            if tx.payroll.get_period(payroll_period_id) is None:
                raise NotFoundError("Payroll period not found")
            return list(tx.payroll.list_records(payroll_period_id))

        return self._uow.run(work)
