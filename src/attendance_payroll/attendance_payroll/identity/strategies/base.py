from __future__ import annotations

from abc import ABC, abstractmethod

from ...employees.repository import EmployeeRepository
from ..model import ValidationResult


class MappingStrategy(ABC):
    """Strategy Pattern: how a terminal user id maps to an internal employee."""

    name: str

    @abstractmethod
    def lookup(self, employees: EmployeeRepository, terminal_user_id: str) -> ValidationResult:
        raise NotImplementedError
