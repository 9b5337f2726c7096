from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from ..core.enums import PayrollStatus


@dataclass(frozen=True)
class PayrollPeriod:
    """Derived 1:1 from a finalized attendance period."""

    payroll_period_id: str
    attendance_period_id: str
    start_date: date
    end_date: date
    status: PayrollStatus = PayrollStatus.CALCULATING
    total_standard_hours: Decimal = Decimal("0.00")
    total_overtime_hours: Decimal = Decimal("0.00")
    total_amount: Decimal = Decimal("0.00")
    calculated_by: Optional[str] = None
    calculated_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    approval_notes: Optional[str] = None


@dataclass(frozen=True)
class PayrollRecord:
    payroll_record_id: str
    payroll_period_id: str
    employee_id: str
    standard_hours: Decimal
    overtime_hours: Decimal
    standard_rate: Decimal
    overtime_rate: Decimal
    gross_pay: Decimal
    breakdown: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DailyHours:
    work_date: date
    regular_hours: Decimal
    overtime_hours: Decimal
    total_hours: Decimal


@dataclass(frozen=True)
class EmployeePayrollCalculation:
    """Calculator output for one employee (before anything is persisted)."""

    employee_id: str
    standard_hours: Decimal
    overtime_hours: Decimal
    standard_rate: Decimal
    overtime_rate: Decimal
    standard_pay: Decimal
    overtime_pay: Decimal
    gross_pay: Decimal
    daily_hours: tuple[DailyHours, ...] = ()
    reallocated_hours: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class PreviewRow:
    employee_id: str
    employee_name: str
    department: Optional[str]
    standard_hours: Decimal
    overtime_hours: Decimal
    standard_rate: Decimal
    overtime_rate: Decimal
    gross_pay: Decimal
    attendance_records: int


@dataclass(frozen=True)
class PayrollCalculationResult:
    success: bool
    period: Optional[PayrollPeriod] = None
    records_processed: int = 0
    total_amount: Decimal = Decimal("0.00")
    errors: tuple[str, ...] = ()
    error_kind: Optional[str] = None


@dataclass(frozen=True)
class PayrollApprovalResult:
    success: bool
    period: Optional[PayrollPeriod] = None
    errors: tuple[str, ...] = ()
    error_kind: Optional[str] = None


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class PayrollSummary:
    total_employees: int
    total_standard_hours: Decimal
    total_overtime_hours: Decimal
    total_gross_pay: Decimal
    average_hours_per_employee: Decimal
    overtime_percentage: Decimal
