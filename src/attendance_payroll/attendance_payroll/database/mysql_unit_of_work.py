from __future__ import annotations

from typing import Callable, TypeVar

from ..attendance.mysql_attendance_repository import MySQLAttendanceRepository
from ..audit.mysql_audit_repository import MySQLAuditRepository
from ..employees.mysql_employee_repository import MySQLEmployeeRepository
from ..payroll.mysql_payroll_repository import MySQLPayrollRepository
from ..periods.mysql_period_repository import MySQLPeriodRepository
from .connection import DatabaseConnection
from .mysql_base import db_transaction

T = TypeVar("T")


class MySQLTransaction:
    """Repositories sharing one cursor, hence one database transaction."""

    def __init__(self, cur):
        self.employees = MySQLEmployeeRepository(cur)
        self.attendance = MySQLAttendanceRepository(cur)
        self.periods = MySQLPeriodRepository(cur)
        self.payroll = MySQLPayrollRepository(cur)
        self.audit = MySQLAuditRepository(cur)


class MySQLUnitOfWork:
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def run(self, work: Callable[[MySQLTransaction], T]) -> T:
        with db_transaction(self._conn_factory) as (_, cur):
            return work(MySQLTransaction(cur))
