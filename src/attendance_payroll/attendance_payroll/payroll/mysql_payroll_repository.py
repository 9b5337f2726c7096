from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from ..core.enums import PayrollStatus
from ..database.mysql_base import fetchall, fetchone, from_json, to_json
from .model import PayrollPeriod, PayrollRecord
from .repository import PayrollRepository

_PERIOD_COLUMNS = """
    payroll_period_id, attendance_period_id, start_date, end_date, status,
    total_standard_hours, total_overtime_hours, total_amount, calculated_by, calculated_at,
    approved_by, approved_at, approval_notes
"""

_RECORD_COLUMNS = """
    payroll_record_id, payroll_period_id, employee_id, standard_hours, overtime_hours,
    standard_rate, overtime_rate, gross_pay, breakdown
"""


def _dec(value: Any) -> Decimal:
    return Decimal(str(value if value is not None else "0"))


def _row_to_period(r: Dict[str, Any]) -> PayrollPeriod:
    return PayrollPeriod(
        payroll_period_id=r["payroll_period_id"],
        attendance_period_id=r["attendance_period_id"],
        start_date=r["start_date"],
        end_date=r["end_date"],
        status=PayrollStatus(r["status"]),
        total_standard_hours=_dec(r.get("total_standard_hours")),
        total_overtime_hours=_dec(r.get("total_overtime_hours")),
        total_amount=_dec(r.get("total_amount")),
        calculated_by=r.get("calculated_by"),
        calculated_at=r.get("calculated_at"),
        approved_by=r.get("approved_by"),
        approved_at=r.get("approved_at"),
        approval_notes=r.get("approval_notes"),
    )


def _row_to_record(r: Dict[str, Any]) -> PayrollRecord:
    return PayrollRecord(
        payroll_record_id=r["payroll_record_id"],
        payroll_period_id=r["payroll_period_id"],
        employee_id=str(r["employee_id"]),
        standard_hours=_dec(r["standard_hours"]),
        overtime_hours=_dec(r["overtime_hours"]),
        standard_rate=_dec(r["standard_rate"]),
        overtime_rate=_dec(r["overtime_rate"]),
        gross_pay=_dec(r["gross_pay"]),
        breakdown=from_json(r.get("breakdown")) or {},
    )


class MySQLPayrollRepository(PayrollRepository):
    def __init__(self, cur):
        self._cur = cur

    def get_period(self, payroll_period_id: str, *, for_update: bool = False) -> Optional[PayrollPeriod]:
        sql = f"SELECT {_PERIOD_COLUMNS} FROM payroll_periods WHERE payroll_period_id=%s"
        if for_update:
            sql += " FOR UPDATE"
        self._cur.execute(sql, (payroll_period_id,))
        r = fetchone(self._cur)
        return _row_to_period(r) if r else None

    def get_period_for_attendance(
        self, attendance_period_id: str, *, for_update: bool = False
    ) -> Optional[PayrollPeriod]:
        sql = f"SELECT {_PERIOD_COLUMNS} FROM payroll_periods WHERE attendance_period_id=%s"
        if for_update:
            sql += " FOR UPDATE"
        self._cur.execute(sql, (attendance_period_id,))
        r = fetchone(self._cur)
        return _row_to_period(r) if r else None

    def add_period(self, period: PayrollPeriod) -> PayrollPeriod:
        self._cur.execute(
            """
            INSERT INTO payroll_periods(payroll_period_id, attendance_period_id, start_date, end_date, status)
            VALUES(%s,%s,%s,%s,%s)
            """,
            (
                period.payroll_period_id,
                period.attendance_period_id,
                period.start_date,
                period.end_date,
                period.status.value,
            ),
        )
        return period

    def update_period(self, period: PayrollPeriod) -> PayrollPeriod:
        self._cur.execute(
            """
            UPDATE payroll_periods
            SET status=%s, total_standard_hours=%s, total_overtime_hours=%s, total_amount=%s,
                calculated_by=%s, calculated_at=%s, approved_by=%s, approved_at=%s, approval_notes=%s
            WHERE payroll_period_id=%s
            """,
            (
                period.status.value,
                period.total_standard_hours,
                period.total_overtime_hours,
                period.total_amount,
                period.calculated_by,
                period.calculated_at,
                period.approved_by,
                period.approved_at,
                period.approval_notes,
                period.payroll_period_id,
            ),
        )
        return period

    def list_periods(self) -> Sequence[PayrollPeriod]:
        self._cur.execute(f"SELECT {_PERIOD_COLUMNS} FROM payroll_periods ORDER BY start_date DESC")
        return [_row_to_period(r) for r in fetchall(self._cur)]

    def delete_records(self, payroll_period_id: str) -> int:
        self._cur.execute("DELETE FROM payroll_records WHERE payroll_period_id=%s", (payroll_period_id,))
        return int(self._cur.rowcount)

    def add_records(self, records: Sequence[PayrollRecord]) -> int:
        if not records:
            return 0
        self._cur.executemany(
            """
            INSERT INTO payroll_records(
                payroll_record_id, payroll_period_id, employee_id, standard_hours, overtime_hours,
                standard_rate, overtime_rate, gross_pay, breakdown
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            [
                (
                    r.payroll_record_id,
                    r.payroll_period_id,
                    r.employee_id,
                    r.standard_hours,
                    r.overtime_hours,
                    r.standard_rate,
                    r.overtime_rate,
                    r.gross_pay,
                    to_json(r.breakdown),
                )
                for r in records
            ],
        )
        return len(records)

    def list_records(self, payroll_period_id: str) -> Sequence[PayrollRecord]:
        self._cur.execute(
            f"SELECT {_RECORD_COLUMNS} FROM payroll_records WHERE payroll_period_id=%s ORDER BY employee_id",
            (payroll_period_id,),
        )
        return [_row_to_record(r) for r in fetchall(self._cur)]
