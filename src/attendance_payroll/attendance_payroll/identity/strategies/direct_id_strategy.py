from __future__ import annotations

from ...employees.repository import EmployeeRepository
from ..model import ValidationResult
from .base import MappingStrategy


class DirectIdStrategy(MappingStrategy):
    """Terminal user id is the employee id."""

    name = "direct_id"

    def lookup(self, employees: EmployeeRepository, terminal_user_id: str) -> ValidationResult:
        employee = employees.get_active_by_id(terminal_user_id)
        if employee is None:
            return ValidationResult.invalid(f"No active employee found with ID: {terminal_user_id}")
        return ValidationResult.valid(employee)
