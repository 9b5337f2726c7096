"""Device sync: fetch punches, resolve identities, reconcile."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..attendance.model import Punch, RawPunch, ReconciliationResult
from ..attendance.reconciler import PunchReconciler
from ..core.exceptions import NotFoundError
from ..core.result import Result
from ..device_link.circuit_breaker import CircuitBreakerStatus
from ..device_link.errors import DeviceError
from ..device_link.pool import DevicePool, PoolTestResult
from ..device_link.transport import DeviceInfo
from ..identity.model import BatchValidationResult, InvalidEmployee
from ..identity.resolver import IdentityResolver

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    success: bool = True
    punches_fetched: int = 0
    punches_reconciled: int = 0
    punch_counts: Dict[str, int] = field(default_factory=dict)
    failed_devices: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    unresolved: List[InvalidEmployee] = field(default_factory=list)
    reconciliation: Optional[ReconciliationResult] = None
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        rec = self.reconciliation
        return {
            "success": self.success,
            "punches_fetched": self.punches_fetched,
            "punches_reconciled": self.punches_reconciled,
            "punch_counts": dict(self.punch_counts),
            "failed_devices": dict(self.failed_devices),
            "unresolved_terminal_users": [
                {"terminal_user_id": u.terminal_user_id, "error_message": u.error_message} for u in self.unresolved
            ],
            "reconciliation": None
            if rec is None
            else {
                "created": rec.created,
                "updated": rec.updated,
                "unchanged": rec.unchanged,
                "conflicts": rec.conflicts,
                "skipped_locked": rec.skipped_locked,
            },
            "errors": list(self.errors),
        }


class SyncService:
    def __init__(self, pool: DevicePool, resolver: IdentityResolver, reconciler: PunchReconciler):
        self._pool = pool
        self._resolver = resolver
        self._reconciler = reconciler

    def validate_employee_ids_batch(self, terminal_user_ids: Sequence[str]) -> BatchValidationResult:
        return self._resolver.resolve_batch(list(terminal_user_ids))

    @staticmethod
    def _to_punches(raw: Sequence[RawPunch], batch: BatchValidationResult) -> List[Punch]:
        mapping = {v.terminal_user_id: v.employee_id for v in batch.valid_employees}
        return [
            Punch(
                employee_id=mapping[p.terminal_user_id],
                timestamp=p.timestamp,
                device_id=p.device_id,
                transaction_id=p.transaction_id,
            )
            for p in raw
            if p.terminal_user_id in mapping
        ]

    def sync(self, actor_id: str) -> SyncReport:
        report = SyncReport()
        collection = self._pool.fetch_all_punches()
        report.punches_fetched = len(collection.punches)
        report.punch_counts = dict(collection.punch_counts)
        report.failed_devices = {device_id: err.to_dict() for device_id, err in collection.failed_devices.items()}

        if not collection.punch_counts:
            report.success = False
            report.errors.append("No attendance device could be read")
            logger.warning("Sync by %s aborted: every device failed", actor_id)
            return report

        terminal_ids = sorted({p.terminal_user_id for p in collection.punches})
        batch = self._resolver.resolve_batch(terminal_ids)
        report.unresolved = list(batch.invalid_employees)

        punches = self._to_punches(collection.punches, batch)
        report.punches_reconciled = len(punches)
        try:
            report.reconciliation = self._reconciler.reconcile(punches)
        except Exception as exc:
            logger.exception("Reconciliation failed during sync by %s", actor_id)
            report.success = False
            report.errors.append(f"Reconciliation failed: {exc}")
            return report

        logger.info(
            "Sync by %s: %d punch(es) fetched, %d reconciled, %d unresolved user(s), %d failed device(s)",
            actor_id,
            report.punches_fetched,
            report.punches_reconciled,
            len(report.unresolved),
            len(report.failed_devices),
            extra={"actor_id": actor_id},
        )
        return report

    def test_devices(self) -> PoolTestResult:
        return self._pool.test_all()

    def get_device_status(self) -> Dict[str, Dict[str, Any]]:
        status: Dict[str, Dict[str, Any]] = {}
        for client in self._pool.clients:
            breaker: CircuitBreakerStatus = client.get_circuit_breaker_status()
            status[client.device_id] = {
                "connected": client.is_connected,
                "circuit_breaker": breaker.to_dict(),
                "metrics": client.get_metrics().to_dict(),
            }
        return status

    def get_device_info(self, device_id: str) -> Result[DeviceInfo, DeviceError]:
        client = self._pool.get(device_id)
        if client is None:
            raise NotFoundError(f"Unknown device: {device_id}")
        return client.read_device_info()

    def reset_device(self, device_id: Optional[str] = None) -> List[str]:
        """Reset breaker and metrics for one device, or all when no id is given."""

        if device_id is None:
            targets = list(self._pool.clients)
        else:
            client = self._pool.get(device_id)
            targets = [client] if client is not None else []
        for client in targets:
            client.reset()
        return [c.device_id for c in targets]

    def clear_identity_cache(self) -> None:
        self._resolver.clear_cache()
