from __future__ import annotations

from typing import Protocol, Sequence

from .model import AuditEntry


class AuditRepository(Protocol):
    def append(self, entry: AuditEntry) -> None:
        raise NotImplementedError

    def list_for_record(self, *, table_name: str, record_id: str) -> Sequence[AuditEntry]:
        raise NotImplementedError
