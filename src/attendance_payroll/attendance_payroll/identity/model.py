from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..employees.model import Employee


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of mapping one terminal user id to an employee."""

    is_valid: bool
    employee_id: Optional[str] = None
    employee_name: Optional[str] = None
    employee_email: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def valid(cls, employee: Employee) -> "ValidationResult":
        return cls(
            is_valid=True,
            employee_id=employee.employee_id,
            employee_name=employee.full_name,
            employee_email=employee.email,
        )

    @classmethod
    def invalid(cls, message: str) -> "ValidationResult":
        return cls(is_valid=False, error_message=message)


@dataclass(frozen=True)
class ValidEmployee:
    terminal_user_id: str
    employee_id: str
    name: str
    email: str


@dataclass(frozen=True)
class InvalidEmployee:
    terminal_user_id: str
    error_message: str


@dataclass
class BatchValidationResult:
    valid_employees: list[ValidEmployee] = field(default_factory=list)
    invalid_employees: list[InvalidEmployee] = field(default_factory=list)
    total_processed: int = 0

    @property
    def valid_count(self) -> int:
        return len(self.valid_employees)

    @property
    def invalid_count(self) -> int:
        return len(self.invalid_employees)

    def employee_for(self, terminal_user_id: str) -> Optional[str]:
        for v in self.valid_employees:
            if v.terminal_user_id == terminal_user_id:
                return v.employee_id
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid_employees": [
                {"terminal_user_id": v.terminal_user_id, "employee_id": v.employee_id, "name": v.name, "email": v.email}
                for v in self.valid_employees
            ],
            "invalid_employees": [
                {"terminal_user_id": i.terminal_user_id, "error_message": i.error_message}
                for i in self.invalid_employees
            ],
            "total_processed": self.total_processed,
            "valid_count": self.valid_count,
            "invalid_count": self.invalid_count,
        }


@dataclass(frozen=True)
class CacheStats:
    size: int
    oldest_entry_age_seconds: Optional[float] = None
