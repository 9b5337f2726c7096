from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, record_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def find(self, *, employee_id: str, work_date: date, transaction_id: str) -> Optional[AttendanceRecord]:
        """Lookup by the unique key (employee, date, device transaction id)."""

        raise NotImplementedError

    def find_for_day(self, *, employee_id: str, work_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def add(self, record: AttendanceRecord) -> AttendanceRecord:
        raise NotImplementedError

    def update(self, record: AttendanceRecord) -> AttendanceRecord:
        raise NotImplementedError

    def list_in_range(
        self,
        *,
        start_date: date,
        end_date: date,
        employee_ids: Optional[Sequence[str]] = None,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def count_unresolved_conflicts(self, *, start_date: date, end_date: date) -> int:
        raise NotImplementedError

    def set_locked_in_range(self, *, start_date: date, end_date: date, locked: bool) -> int:
        """Lock/unlock every record in the range; returns the affected row count."""

        raise NotImplementedError
