from __future__ import annotations

from ...employees.repository import EmployeeRepository
from ..model import ValidationResult
from .base import MappingStrategy


class CustomFieldStrategy(MappingStrategy):
    name = "custom_field"

    def lookup(self, employees: EmployeeRepository, terminal_user_id: str) -> ValidationResult:
        return ValidationResult.invalid("Custom field mapping not yet implemented")
