"""Unit of work: explicit transactional boundary for multi-write operations.

A unit of work runs ``work(tx)`` where ``tx`` exposes repositories bound to a
single transaction. Returning commits; raising rolls every write back and
re-raises, so callers never observe a partial state.
"""

from __future__ import annotations

from typing import Callable, Protocol, TypeVar

from ..attendance.repository import AttendanceRepository
from ..audit.repository import AuditRepository
from ..employees.repository import EmployeeRepository
from ..payroll.repository import PayrollRepository
from ..periods.repository import PeriodRepository

T = TypeVar("T")


class Transaction(Protocol):
    employees: EmployeeRepository
    attendance: AttendanceRepository
    periods: PeriodRepository
    payroll: PayrollRepository
    audit: AuditRepository


class UnitOfWork(Protocol):
    def run(self, work: Callable[[Transaction], T]) -> T:
        raise NotImplementedError
