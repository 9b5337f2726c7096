"""Terminal failure classification.

Every exception raised while talking to a terminal is turned into a
``DeviceError`` value: a category (drives retry and breaker decisions), a
severity (drives operator notification) and the context it happened in.
"""

from __future__ import annotations

import socket
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..core.enums import ErrorCategory, ErrorSeverity

CIRCUIT_OPEN_CODE = "CIRCUIT_OPEN"

_NETWORK_HINTS = (
    "connection refused",
    "can't reach",
    "can't connect",
    "unable to connect",
    "connection reset",
    "connection aborted",
    "unreachable",
    "host not found",
    "name or service not known",
    "getaddrinfo",
    "network",
    "socket",
    "econnrefused",
    "enotfound",
    "enetunreach",
)
_TIMEOUT_HINTS = ("timeout", "timed out", "etimedout")
_AUTH_HINTS = ("unauthorized", "unauthenticated", "forbidden", "invalid credentials", "authentication", "password")
_UNAVAILABLE_HINTS = ("not found", "offline", "unavailable", "no response", "busy")
_CORRUPTION_HINTS = ("malformed", "corrupt", "invalid data", "unparsable", "cannot parse", "parse error", "checksum")


class TerminalSDKError(Exception):
    """Failure reported by the terminal driver itself, tagged with the operation it was running."""

    def __init__(self, message: str, *, operation: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
        self.code = code


@dataclass(frozen=True)
class DeviceError:
    code: str
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    is_retryable: bool
    retry_count: int = 0
    device_id: Optional[str] = None
    operation: Optional[str] = None
    context: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
            "retry_count": self.retry_count,
            "device_id": self.device_id,
            "operation": self.operation,
            "timestamp": self.timestamp.isoformat(),
        }


def _contains(text: str, hints: tuple[str, ...]) -> bool:
    return any(h in text for h in hints)


def categorize_error(error: BaseException | str | None) -> ErrorCategory:
    """Map an exception (or message) to a category. First match wins."""

    if error is None:
        return ErrorCategory.UNKNOWN

    if isinstance(error, BaseException):
        message = str(error).lower()
        code = str(getattr(error, "code", "") or "").lower()
    else:
        message = str(error).lower()
        code = ""
    text = f"{message} {code}"

    if isinstance(error, (ConnectionError, socket.gaierror)) or _contains(text, _NETWORK_HINTS):
        return ErrorCategory.NETWORK
    if isinstance(error, (TimeoutError, socket.timeout)) or _contains(text, _TIMEOUT_HINTS):
        return ErrorCategory.TIMEOUT
    if isinstance(error, PermissionError) or _contains(text, _AUTH_HINTS):
        return ErrorCategory.AUTHENTICATION
    if _contains(text, _UNAVAILABLE_HINTS):
        return ErrorCategory.DEVICE_UNAVAILABLE
    if isinstance(error, UnicodeDecodeError) or _contains(text, _CORRUPTION_HINTS):
        return ErrorCategory.DATA_CORRUPTION
    if isinstance(error, TerminalSDKError):
        return ErrorCategory.SDK_ERROR
    return ErrorCategory.UNKNOWN


def determine_severity(category: ErrorCategory, retry_count: int, max_attempts: int) -> ErrorSeverity:
    if category == ErrorCategory.AUTHENTICATION or retry_count >= max_attempts:
        return ErrorSeverity.CRITICAL
    if retry_count >= max(1, max_attempts // 2):
        return ErrorSeverity.HIGH
    if category == ErrorCategory.DEVICE_UNAVAILABLE:
        return ErrorSeverity.MEDIUM
    return ErrorSeverity.LOW


def format_error_for_logging(error: DeviceError) -> str:
    return (
        f"[{error.category.value}] {error.severity.value}: {error.message} "
        f"(Device: {error.device_id or 'unknown'}, Operation: {error.operation or 'unknown'})"
    )
