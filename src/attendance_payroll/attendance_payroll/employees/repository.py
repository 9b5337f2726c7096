from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Employee


class EmployeeRepository(Protocol):
    """Repository interface for Employee.

    Note (DIP): services depend on this interface, never on a concrete DB.
    """

    def get_active_by_email(self, email: str) -> Optional[Employee]:
        raise NotImplementedError

    def get_active_by_id(self, employee_id: str) -> Optional[Employee]:
        raise NotImplementedError

    def get_by_ids(self, employee_ids: Sequence[str]) -> Sequence[Employee]:
        raise NotImplementedError
