from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence

from ..attendance.model import RawPunch
from ..core.settings import DeviceConfig, DevicePoolConfig
from .client import ConnectionTest, TerminalClient
from .errors import DeviceError
from .link import DeviceLink
from .transport import TerminalTransport, ZKTerminalTransport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolTestResult:
    results: tuple[ConnectionTest, ...]

    @property
    def total_devices(self) -> int:
        return len(self.results)

    @property
    def connected_devices(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed_devices(self) -> int:
        return self.total_devices - self.connected_devices

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_devices": self.total_devices,
            "connected_devices": self.connected_devices,
            "failed_devices": self.failed_devices,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class PunchCollection:
    punches: list[RawPunch] = field(default_factory=list)
    punch_counts: Dict[str, int] = field(default_factory=dict)
    failed_devices: Dict[str, DeviceError] = field(default_factory=dict)


class DevicePool:
    """Primary terminal plus any secondaries, each behind the shared device link."""

    def __init__(self, clients: Sequence[TerminalClient]):
        if not clients:
            raise ValueError("A device pool needs at least one terminal")
        self._clients = list(clients)

    @classmethod
    def from_config(
        cls,
        config: DevicePoolConfig,
        link: DeviceLink,
        *,
        transport_factory: Callable[[DeviceConfig], TerminalTransport] = ZKTerminalTransport,
    ) -> "DevicePool":
        return cls([TerminalClient(transport_factory(device), link) for device in config.all_devices()])

    @property
    def clients(self) -> Sequence[TerminalClient]:
        return tuple(self._clients)

    @property
    def primary(self) -> TerminalClient:
        return self._clients[0]

    def get(self, device_id: str) -> Optional[TerminalClient]:
        for client in self._clients:
            if client.device_id == device_id:
                return client
        return None

    def test_all(self) -> PoolTestResult:
        results = tuple(client.test_connection() for client in self._clients)
        outcome = PoolTestResult(results=results)
        logger.info(
            "Device test: %d/%d terminal(s) reachable", outcome.connected_devices, outcome.total_devices
        )
        return outcome

    def fetch_all_punches(self) -> PunchCollection:
        collection = PunchCollection()
        for client in self._clients:
            result = client.fetch_punches()
            if result.success:
                punches = list(result.data or [])
                collection.punches.extend(punches)
                collection.punch_counts[client.device_id] = len(punches)
            else:
                collection.failed_devices[client.device_id] = result.error
        logger.info(
            "Fetched %d punch(es) from %d device(s); %d device(s) failed",
            len(collection.punches),
            len(collection.punch_counts),
            len(collection.failed_devices),
        )
        return collection
