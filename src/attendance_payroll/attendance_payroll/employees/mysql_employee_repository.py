from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from ..database.mysql_base import fetchall, fetchone
from .model import Employee
from .repository import EmployeeRepository

_COLUMNS = "employee_id, full_name, email, department, hourly_rate, is_active"


def _row_to_employee(r: Dict[str, Any]) -> Employee:
    rate = r.get("hourly_rate")
    return Employee(
        employee_id=str(r["employee_id"]),
        full_name=r["full_name"],
        email=r["email"],
        is_active=bool(r["is_active"]),
        department=r.get("department"),
        hourly_rate=Decimal(str(rate)) if rate is not None else None,
    )


class MySQLEmployeeRepository(EmployeeRepository):
    """Read-only access to the employee directory (bound to a transaction cursor)."""

    def __init__(self, cur):
        self._cur = cur

    def get_active_by_email(self, email: str) -> Optional[Employee]:
        # utf8mb4_bin comparison keeps the lookup case-sensitive as stored.
        self._cur.execute(
            f"SELECT {_COLUMNS} FROM employees WHERE email COLLATE utf8mb4_bin=%s AND is_active=1",
            (email,),
        )
        r = fetchone(self._cur)
        return _row_to_employee(r) if r else None

    def get_active_by_id(self, employee_id: str) -> Optional[Employee]:
        self._cur.execute(
            f"SELECT {_COLUMNS} FROM employees WHERE employee_id=%s AND is_active=1",
            (employee_id,),
        )
        r = fetchone(self._cur)
        return _row_to_employee(r) if r else None

    def get_by_ids(self, employee_ids: Sequence[str]) -> Sequence[Employee]:
        if not employee_ids:
            return []
        placeholders = ",".join(["%s"] * len(employee_ids))
        self._cur.execute(
            f"SELECT {_COLUMNS} FROM employees WHERE employee_id IN ({placeholders})",
            tuple(employee_ids),
        )
        return [_row_to_employee(r) for r in fetchall(self._cur)]
