from __future__ import annotations

from typing import Sequence

from ..core.enums import AuditAction
from ..database.mysql_base import fetchall, from_json, to_json
from .model import AuditEntry
from .repository import AuditRepository


class MySQLAuditRepository(AuditRepository):
    def __init__(self, cur):
        self._cur = cur

    def append(self, entry: AuditEntry) -> None:
        self._cur.execute(
            """
            INSERT INTO audit_logs(actor_id, action, table_name, record_id, new_values, created_at)
            VALUES(%s,%s,%s,%s,%s,%s)
            """,
            (
                entry.actor_id,
                entry.action.value,
                entry.table_name,
                entry.record_id,
                to_json(entry.new_values),
                entry.created_at,
            ),
        )

    def list_for_record(self, *, table_name: str, record_id: str) -> Sequence[AuditEntry]:
        self._cur.execute(
            """
            SELECT actor_id, action, table_name, record_id, new_values, created_at
            FROM audit_logs
            WHERE table_name=%s AND record_id=%s
            ORDER BY audit_id
            """,
            (table_name, record_id),
        )
        return [
            AuditEntry(
                actor_id=r["actor_id"],
                action=AuditAction(r["action"]),
                table_name=r["table_name"],
                record_id=r["record_id"],
                new_values=from_json(r.get("new_values")) or {},
                created_at=r["created_at"],
            )
            for r in fetchall(self._cur)
        ]
