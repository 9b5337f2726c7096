from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..core.enums import AuditAction


@dataclass(frozen=True)
class AuditEntry:
    actor_id: str
    action: AuditAction
    table_name: str
    record_id: str
    new_values: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)
