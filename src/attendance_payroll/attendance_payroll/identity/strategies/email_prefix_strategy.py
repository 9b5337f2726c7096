from __future__ import annotations

from typing import Optional

from ...employees.repository import EmployeeRepository
from ..model import ValidationResult
from .base import MappingStrategy


class EmailPrefixStrategy(MappingStrategy):
    """``<terminal id><domain>`` must equal an active employee's email exactly."""

    name = "email_prefix"

    def __init__(self, email_domain: Optional[str]):
        self._email_domain = email_domain

    def lookup(self, employees: EmployeeRepository, terminal_user_id: str) -> ValidationResult:
        if not self._email_domain:
            return ValidationResult.invalid("Email domain not configured for email_prefix strategy")

        email = f"{terminal_user_id}{self._email_domain}"
        employee = employees.get_active_by_email(email)
        if employee is None:
            return ValidationResult.invalid(f"No active employee found with email: {email}")
        return ValidationResult.valid(employee)
