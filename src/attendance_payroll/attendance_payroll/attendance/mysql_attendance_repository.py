from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional, Sequence

from ..core.enums import SyncStatus, ValidationStatus
from ..database.mysql_base import fetchall, fetchone, from_json, to_json
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    record_id, employee_id, work_date, clock_in, clock_out, total_hours, transaction_id,
    sync_status, validation_status, has_conflict, conflict_detail, conflict_resolved,
    conflict_resolved_by, conflict_notes, validation_errors, is_locked, punch_count, synced_at
"""


def _row_to_record(r: Dict[str, Any]) -> AttendanceRecord:
    hours = r.get("total_hours")
    return AttendanceRecord(
        record_id=r["record_id"],
        employee_id=str(r["employee_id"]),
        work_date=r["work_date"],
        clock_in=r.get("clock_in"),
        clock_out=r.get("clock_out"),
        total_hours=float(hours) if hours is not None else None,
        transaction_id=r["transaction_id"],
        sync_status=SyncStatus(r["sync_status"]),
        validation_status=ValidationStatus(r["validation_status"]),
        has_conflict=bool(r["has_conflict"]),
        conflict_detail=r.get("conflict_detail"),
        conflict_resolved=bool(r["conflict_resolved"]),
        conflict_resolved_by=r.get("conflict_resolved_by"),
        conflict_notes=r.get("conflict_notes"),
        validation_errors=tuple(from_json(r.get("validation_errors")) or ()),
        is_locked=bool(r["is_locked"]),
        punch_count=int(r.get("punch_count") or 0),
        synced_at=r.get("synced_at"),
    )


def _params(record: AttendanceRecord) -> tuple:
    return (
        record.employee_id,
        record.work_date,
        record.clock_in,
        record.clock_out,
        record.total_hours,
        record.transaction_id,
        record.sync_status.value,
        record.validation_status.value,
        int(record.has_conflict),
        record.conflict_detail,
        int(record.conflict_resolved),
        record.conflict_resolved_by,
        record.conflict_notes,
        to_json(list(record.validation_errors)),
        int(record.is_locked),
        record.punch_count,
        record.synced_at,
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, cur):
        self._cur = cur

    def get_by_id(self, record_id: str) -> Optional[AttendanceRecord]:
        self._cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE record_id=%s", (record_id,))
        r = fetchone(self._cur)
        return _row_to_record(r) if r else None

    def find(self, *, employee_id: str, work_date: date, transaction_id: str) -> Optional[AttendanceRecord]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS} FROM attendance_records
            WHERE employee_id=%s AND work_date=%s AND transaction_id=%s
            """,
            (employee_id, work_date, transaction_id),
        )
        r = fetchone(self._cur)
        return _row_to_record(r) if r else None

    def find_for_day(self, *, employee_id: str, work_date: date) -> Sequence[AttendanceRecord]:
        self._cur.execute(
            f"SELECT {_COLUMNS} FROM attendance_records WHERE employee_id=%s AND work_date=%s",
            (employee_id, work_date),
        )
        return [_row_to_record(r) for r in fetchall(self._cur)]

    def add(self, record: AttendanceRecord) -> AttendanceRecord:
        self._cur.execute(
            """
            INSERT INTO attendance_records(
                record_id, employee_id, work_date, clock_in, clock_out, total_hours, transaction_id,
                sync_status, validation_status, has_conflict, conflict_detail, conflict_resolved,
                conflict_resolved_by, conflict_notes, validation_errors, is_locked, punch_count, synced_at
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (record.record_id, *_params(record)),
        )
        return record

    def update(self, record: AttendanceRecord) -> AttendanceRecord:
        self._cur.execute(
            """
            UPDATE attendance_records
            SET employee_id=%s, work_date=%s, clock_in=%s, clock_out=%s, total_hours=%s,
                transaction_id=%s, sync_status=%s, validation_status=%s, has_conflict=%s,
                conflict_detail=%s, conflict_resolved=%s, conflict_resolved_by=%s,
                conflict_notes=%s, validation_errors=%s, is_locked=%s, punch_count=%s, synced_at=%s
            WHERE record_id=%s
            """,
            (*_params(record), record.record_id),
        )
        return record

    def list_in_range(
        self,
        *,
        start_date: date,
        end_date: date,
        employee_ids: Optional[Sequence[str]] = None,
    ) -> Sequence[AttendanceRecord]:
        sql = f"SELECT {_COLUMNS} FROM attendance_records WHERE work_date BETWEEN %s AND %s"
        params: list[Any] = [start_date, end_date]
        if employee_ids is not None:
            if not employee_ids:
                return []
            sql += " AND employee_id IN (" + ",".join(["%s"] * len(employee_ids)) + ")"
            params.extend(employee_ids)
        sql += " ORDER BY employee_id, work_date"
        self._cur.execute(sql, tuple(params))
        return [_row_to_record(r) for r in fetchall(self._cur)]

    def count_unresolved_conflicts(self, *, start_date: date, end_date: date) -> int:
        self._cur.execute(
            """
            SELECT COUNT(*) AS cnt FROM attendance_records
            WHERE work_date BETWEEN %s AND %s AND has_conflict=1 AND conflict_resolved=0
            """,
            (start_date, end_date),
        )
        r = fetchone(self._cur)
        return int(r["cnt"]) if r else 0

    def set_locked_in_range(self, *, start_date: date, end_date: date, locked: bool) -> int:
        self._cur.execute(
            "UPDATE attendance_records SET is_locked=%s WHERE work_date BETWEEN %s AND %s",
            (int(locked), start_date, end_date),
        )
        return int(self._cur.rowcount)
