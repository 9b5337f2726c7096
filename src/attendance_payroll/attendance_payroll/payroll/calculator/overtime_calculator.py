from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Sequence, Tuple

from ...attendance.model import AttendanceRecord
from ...core.constants import TWO_PLACES
from ...core.settings import PayrollRules
from ..model import DailyHours, EmployeePayrollCalculation
from .base import PayrollCalculator

ZERO = Decimal("0")


def money(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class OvertimePayrollCalculator(PayrollCalculator):
    """Daily threshold split, then a period-wide weekly cap.

    Per day: regular = min(hours, daily threshold), overtime = the rest.
    If the period total then exceeds the weekly threshold, the excess moves
    from regular into overtime (never more than the regular hours left).
    Weeks are not tracked across period boundaries.
    """

    def __init__(self, rules: PayrollRules):
        self._rules = rules

    @property
    def rules(self) -> PayrollRules:
        return self._rules

    def overtime_rate(self, rate: Decimal) -> Decimal:
        return money(rate * self._rules.overtime_multiplier)

    def split_day(self, work_date: date, hours: Decimal) -> DailyHours:
        regular = min(hours, self._rules.daily_threshold)
        overtime = max(ZERO, hours - self._rules.daily_threshold)
        return DailyHours(
            work_date=work_date,
            regular_hours=money(regular),
            overtime_hours=money(overtime),
            total_hours=money(hours),
        )

    def apply_weekly_cap(self, regular: Decimal, overtime: Decimal) -> Tuple[Decimal, Decimal, Decimal]:
        total = regular + overtime
        if total <= self._rules.weekly_threshold:
            return regular, overtime, ZERO
        moved = min(regular, total - self._rules.weekly_threshold)
        return regular - moved, overtime + moved, moved

    def gross_pay(self, standard_hours: Decimal, overtime_hours: Decimal, rate: Decimal) -> Tuple[Decimal, Decimal, Decimal]:
        standard_pay = money(standard_hours * rate)
        # Unrounded rate: the displayed overtime_rate is rounded, the pay is not.
        overtime_pay = money(overtime_hours * rate * self._rules.overtime_multiplier)
        return standard_pay, overtime_pay, standard_pay + overtime_pay

    def calculate(
        self,
        employee_id: str,
        records: Sequence[AttendanceRecord],
        rate: Decimal,
    ) -> EmployeePayrollCalculation:
        per_day: Dict[date, Decimal] = defaultdict(lambda: ZERO)
        for r in records:
            if r.total_hours:
                per_day[r.work_date] += Decimal(str(r.total_hours))

        days = [self.split_day(d, per_day[d]) for d in sorted(per_day)]
        regular = sum((d.regular_hours for d in days), ZERO)
        overtime = sum((d.overtime_hours for d in days), ZERO)
        regular, overtime, moved = self.apply_weekly_cap(regular, overtime)

        standard_hours = money(regular)
        overtime_hours = money(overtime)
        standard_pay, overtime_pay, gross = self.gross_pay(standard_hours, overtime_hours, rate)

        return EmployeePayrollCalculation(
            employee_id=employee_id,
            standard_hours=standard_hours,
            overtime_hours=overtime_hours,
            standard_rate=money(rate),
            overtime_rate=self.overtime_rate(rate),
            standard_pay=standard_pay,
            overtime_pay=overtime_pay,
            gross_pay=gross,
            daily_hours=tuple(days),
            reallocated_hours=money(moved),
        )
