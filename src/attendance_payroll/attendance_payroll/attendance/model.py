from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import SyncStatus, ValidationStatus


@dataclass(frozen=True)
class RawPunch:
    """A clock event exactly as a terminal reported it (direction not trusted)."""

    terminal_user_id: str
    timestamp: datetime
    device_id: str
    transaction_id: str
    state: Optional[int] = None


@dataclass(frozen=True)
class Punch:
    """A raw punch whose terminal user id has been resolved to an employee."""

    employee_id: str
    timestamp: datetime
    device_id: str
    transaction_id: str


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance record per (employee, calendar date)."""

    record_id: str
    employee_id: str
    work_date: date
    clock_in: Optional[datetime]
    clock_out: Optional[datetime]
    total_hours: Optional[float]
    transaction_id: str
    sync_status: SyncStatus = SyncStatus.PENDING
    validation_status: ValidationStatus = ValidationStatus.PENDING
    has_conflict: bool = False
    conflict_detail: Optional[str] = None
    conflict_resolved: bool = False
    conflict_resolved_by: Optional[str] = None
    conflict_notes: Optional[str] = None
    validation_errors: tuple[str, ...] = ()
    is_locked: bool = False
    punch_count: int = 0
    synced_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.clock_in is not None and self.clock_out is not None

    @property
    def has_unresolved_conflict(self) -> bool:
        return self.has_conflict and not self.conflict_resolved


@dataclass
class ReconciliationResult:
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    conflicts: int = 0
    skipped_locked: int = 0
    records: list[AttendanceRecord] = field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return self.created + self.updated + self.unchanged + self.skipped_locked
