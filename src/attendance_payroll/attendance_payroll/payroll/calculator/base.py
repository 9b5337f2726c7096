from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Sequence

from ...attendance.model import AttendanceRecord
from ..model import EmployeePayrollCalculation


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def calculate(
        self,
        employee_id: str,
        records: Sequence[AttendanceRecord],
        rate: Decimal,
    ) -> EmployeePayrollCalculation:
        raise NotImplementedError
