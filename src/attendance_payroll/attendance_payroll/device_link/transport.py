from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

from zk import ZK
from zk.exception import ZKErrorConnection, ZKErrorResponse, ZKNetworkError

from ..attendance.model import RawPunch
from ..core.settings import DeviceConfig
from .errors import TerminalSDKError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceInfo:
    device_id: str
    serial_number: Optional[str] = None
    firmware_version: Optional[str] = None
    device_name: Optional[str] = None
    platform: Optional[str] = None
    user_count: Optional[int] = None
    record_count: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "serial_number": self.serial_number,
            "firmware_version": self.firmware_version,
            "device_name": self.device_name,
            "platform": self.platform,
            "user_count": self.user_count,
            "record_count": self.record_count,
        }


@dataclass(frozen=True)
class TerminalUser:
    uid: int
    user_id: str
    name: str
    privilege: Optional[int] = None


class TerminalTransport(Protocol):
    """Blocking connection to one physical terminal."""

    device: DeviceConfig

    def connect(self) -> None:
        raise NotImplementedError

    def disconnect(self) -> None:
        raise NotImplementedError

    def get_info(self) -> DeviceInfo:
        raise NotImplementedError

    def get_users(self) -> Sequence[TerminalUser]:
        raise NotImplementedError

    def get_punches(self) -> Sequence[RawPunch]:
        raise NotImplementedError


def _punch_transaction_id(device_id: str, user_id: str, timestamp) -> str:
    # The SDK exposes no log sequence number; the device, user and timestamp identify a punch.
    return f"{device_id}:{user_id}:{timestamp:%Y%m%d%H%M%S}"


class ZKTerminalTransport(TerminalTransport):
    """ZKTeco terminals through ``pyzk``.

    Driver exceptions are re-raised as built-in/terminal errors so the device
    link can categorise them.
    """

    def __init__(self, device: DeviceConfig, *, password: int = 0, force_udp: bool = False):
        self.device = device
        self._zk = ZK(
            device.ip,
            port=device.port,
            timeout=max(1, device.timeout_ms // 1000),
            password=password,
            force_udp=force_udp,
            ommit_ping=False,
        )
        self._conn = None

    def _require_conn(self, operation: str):
        if self._conn is None:
            raise TerminalSDKError(f"Device {self.device.device_id} is not connected", operation=operation)
        return self._conn

    def connect(self) -> None:
        try:
            self._conn = self._zk.connect()
        except ZKNetworkError as exc:
            raise ConnectionError(str(exc)) from exc
        except ZKErrorResponse as exc:
            raise TerminalSDKError(str(exc), operation="connect") from exc
        except ZKErrorConnection as exc:
            raise ConnectionError(str(exc)) from exc
        logger.info("Connected to terminal %s", self.device.device_id)

    def disconnect(self) -> None:
        if self._conn is None:
            return
        try:
            self._conn.disconnect()
        except (ZKErrorResponse, ZKErrorConnection) as exc:
            raise TerminalSDKError(str(exc), operation="disconnect") from exc
        finally:
            self._conn = None

    def get_info(self) -> DeviceInfo:
        conn = self._require_conn("get_info")
        try:
            conn.read_sizes()
            return DeviceInfo(
                device_id=self.device.device_id,
                serial_number=conn.get_serialnumber(),
                firmware_version=conn.get_firmware_version(),
                device_name=conn.get_device_name(),
                platform=conn.get_platform(),
                user_count=getattr(conn, "users", None),
                record_count=getattr(conn, "records", None),
            )
        except ZKNetworkError as exc:
            raise ConnectionError(str(exc)) from exc
        except ZKErrorResponse as exc:
            raise TerminalSDKError(str(exc), operation="get_info") from exc

    def get_users(self) -> Sequence[TerminalUser]:
        conn = self._require_conn("get_users")
        try:
            users = conn.get_users()
        except ZKNetworkError as exc:
            raise ConnectionError(str(exc)) from exc
        except ZKErrorResponse as exc:
            raise TerminalSDKError(str(exc), operation="get_users") from exc
        return [
            TerminalUser(uid=int(u.uid), user_id=str(u.user_id), name=u.name or "", privilege=u.privilege)
            for u in users
        ]

    def get_punches(self) -> Sequence[RawPunch]:
        conn = self._require_conn("get_punches")
        try:
            conn.disable_device()
            try:
                logs = conn.get_attendance()
            finally:
                conn.enable_device()
        except ZKNetworkError as exc:
            raise ConnectionError(str(exc)) from exc
        except ZKErrorResponse as exc:
            raise TerminalSDKError(str(exc), operation="get_punches") from exc

        punches = []
        for log in logs:
            if log.timestamp is None:
                raise ValueError(f"Malformed attendance log from {self.device.device_id}: missing timestamp")
            user_id = str(log.user_id).strip()
            punches.append(
                RawPunch(
                    terminal_user_id=user_id,
                    timestamp=log.timestamp,
                    device_id=self.device.device_id,
                    transaction_id=_punch_transaction_id(self.device.device_id, user_id, log.timestamp),
                    state=getattr(log, "punch", None),
                )
            )
        return punches
