from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class Employee:
    """Domain entity: an employee that attendance terminals can punch for.

    Note: plain data object (no DB access code).
    """

    employee_id: str
    full_name: str
    email: str
    is_active: bool = True
    department: Optional[str] = None
    hourly_rate: Optional[Decimal] = None
