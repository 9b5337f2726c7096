from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import PeriodStatus


@dataclass(frozen=True)
class AttendancePeriod:
    """A contiguous date range whose attendance records are finalized together."""

    period_id: str
    start_date: date
    end_date: date
    status: PeriodStatus = PeriodStatus.PENDING
    total_records: int = 0
    employee_count: int = 0
    finalized_by: Optional[str] = None
    finalized_at: Optional[datetime] = None
    unlocked_by: Optional[str] = None
    unlocked_at: Optional[datetime] = None
    unlock_reason: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class FinalizationResult:
    success: bool
    period: Optional[AttendancePeriod] = None
    affected_record_count: int = 0
    employee_count: int = 0
    errors: tuple[str, ...] = ()
    error_kind: Optional[str] = None


@dataclass(frozen=True)
class PeriodSummary:
    period: AttendancePeriod
    total_records: int
    employee_count: int
    incomplete_records: int
    unresolved_conflicts: int

    @property
    def can_finalize(self) -> bool:
        return self.period.status == PeriodStatus.PENDING and self.unresolved_conflicts == 0
