from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional, Sequence

from ..core.enums import PeriodStatus
from ..database.mysql_base import fetchall, fetchone
from .model import AttendancePeriod
from .repository import PeriodRepository

_COLUMNS = """
    period_id, start_date, end_date, status, total_records, employee_count,
    finalized_by, finalized_at, unlocked_by, unlocked_at, unlock_reason, created_at
"""


def _row_to_period(r: Dict[str, Any]) -> AttendancePeriod:
    return AttendancePeriod(
        period_id=r["period_id"],
        start_date=r["start_date"],
        end_date=r["end_date"],
        status=PeriodStatus(r["status"]),
        total_records=int(r.get("total_records") or 0),
        employee_count=int(r.get("employee_count") or 0),
        finalized_by=r.get("finalized_by"),
        finalized_at=r.get("finalized_at"),
        unlocked_by=r.get("unlocked_by"),
        unlocked_at=r.get("unlocked_at"),
        unlock_reason=r.get("unlock_reason"),
        created_at=r["created_at"],
    )


class MySQLPeriodRepository(PeriodRepository):
    def __init__(self, cur):
        self._cur = cur

    def get(self, period_id: str, *, for_update: bool = False) -> Optional[AttendancePeriod]:
        sql = f"SELECT {_COLUMNS} FROM attendance_periods WHERE period_id=%s"
        if for_update:
            sql += " FOR UPDATE"
        self._cur.execute(sql, (period_id,))
        r = fetchone(self._cur)
        return _row_to_period(r) if r else None

    def add(self, period: AttendancePeriod) -> AttendancePeriod:
        self._cur.execute(
            """
            INSERT INTO attendance_periods(period_id, start_date, end_date, status, created_at)
            VALUES(%s,%s,%s,%s,%s)
            """,
            (period.period_id, period.start_date, period.end_date, period.status.value, period.created_at),
        )
        return period

    def update(self, period: AttendancePeriod) -> AttendancePeriod:
        self._cur.execute(
            """
            UPDATE attendance_periods
            SET status=%s, total_records=%s, employee_count=%s, finalized_by=%s, finalized_at=%s,
                unlocked_by=%s, unlocked_at=%s, unlock_reason=%s
            WHERE period_id=%s
            """,
            (
                period.status.value,
                period.total_records,
                period.employee_count,
                period.finalized_by,
                period.finalized_at,
                period.unlocked_by,
                period.unlocked_at,
                period.unlock_reason,
                period.period_id,
            ),
        )
        return period

    def find_overlapping(self, *, start_date: date, end_date: date) -> Optional[AttendancePeriod]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS} FROM attendance_periods
            WHERE start_date <= %s AND end_date >= %s
            LIMIT 1
            """,
            (end_date, start_date),
        )
        r = fetchone(self._cur)
        return _row_to_period(r) if r else None

    def find_containing(self, day: date) -> Optional[AttendancePeriod]:
        self._cur.execute(
            f"SELECT {_COLUMNS} FROM attendance_periods WHERE start_date <= %s AND end_date >= %s LIMIT 1",
            (day, day),
        )
        r = fetchone(self._cur)
        return _row_to_period(r) if r else None

    def list_all(self) -> Sequence[AttendancePeriod]:
        self._cur.execute(f"SELECT {_COLUMNS} FROM attendance_periods ORDER BY start_date DESC")
        return [_row_to_period(r) for r in fetchall(self._cur)]
