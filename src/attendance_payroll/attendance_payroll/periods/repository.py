from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendancePeriod


class PeriodRepository(Protocol):
    def get(self, period_id: str, *, for_update: bool = False) -> Optional[AttendancePeriod]:
        """Load a period; for_update locks the row until the transaction ends."""

        raise NotImplementedError

    def add(self, period: AttendancePeriod) -> AttendancePeriod:
        raise NotImplementedError

    def update(self, period: AttendancePeriod) -> AttendancePeriod:
        raise NotImplementedError

    def find_overlapping(self, *, start_date: date, end_date: date) -> Optional[AttendancePeriod]:
        raise NotImplementedError

    def find_containing(self, day: date) -> Optional[AttendancePeriod]:
        raise NotImplementedError

    def list_all(self) -> Sequence[AttendancePeriod]:
        raise NotImplementedError
