from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import PayrollPeriod, PayrollRecord


class PayrollRepository(Protocol):
    def get_period(self, payroll_period_id: str, *, for_update: bool = False) -> Optional[PayrollPeriod]:
        raise NotImplementedError

    def get_period_for_attendance(
        self, attendance_period_id: str, *, for_update: bool = False
    ) -> Optional[PayrollPeriod]:
        raise NotImplementedError

    def add_period(self, period: PayrollPeriod) -> PayrollPeriod:
        raise NotImplementedError

    def update_period(self, period: PayrollPeriod) -> PayrollPeriod:
        raise NotImplementedError

    def list_periods(self) -> Sequence[PayrollPeriod]:
        raise NotImplementedError

    def delete_records(self, payroll_period_id: str) -> int:
        raise NotImplementedError

    def add_records(self, records: Sequence[PayrollRecord]) -> int:
        raise NotImplementedError

    def list_records(self, payroll_period_id: str) -> Sequence[PayrollRecord]:
        raise NotImplementedError
