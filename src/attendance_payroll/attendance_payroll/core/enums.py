from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    """Category of a terminal failure; drives retry and breaker decisions."""

    NETWORK = "NETWORK"
    TIMEOUT = "TIMEOUT"
    AUTHENTICATION = "AUTHENTICATION"
    DEVICE_UNAVAILABLE = "DEVICE_UNAVAILABLE"
    DATA_CORRUPTION = "DATA_CORRUPTION"
    SDK_ERROR = "SDK_ERROR"
    UNKNOWN = "UNKNOWN"


class ErrorSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class DeviceOperation(str, Enum):
    CONNECT = "connect"
    GET_INFO = "get_info"
    GET_USERS = "get_users"
    GET_PUNCHES = "get_punches"
    DISCONNECT = "disconnect"


class MappingStrategyName(str, Enum):
    EMAIL_PREFIX = "email_prefix"
    DIRECT_ID = "direct_id"
    CUSTOM_FIELD = "custom_field"


class SyncStatus(str, Enum):
    """Trạng thái đồng bộ của bản ghi chấm công."""

    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


class ValidationStatus(str, Enum):
    PENDING = "PENDING"
    VALIDATED = "VALIDATED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class PeriodStatus(str, Enum):
    """Attendance period lifecycle: PENDING -> FINALIZED (-> PENDING on unlock)."""

    PENDING = "PENDING"
    FINALIZED = "FINALIZED"


class PayrollStatus(str, Enum):
    CALCULATING = "CALCULATING"
    CALCULATED = "CALCULATED"
    APPROVED = "APPROVED"


class NotificationEvent(str, Enum):
    PERIOD_FINALIZED = "PERIOD_FINALIZED"
    PERIOD_UNLOCKED = "PERIOD_UNLOCKED"
    PAYROLL_CALCULATED = "PAYROLL_CALCULATED"
    PAYROLL_APPROVED = "PAYROLL_APPROVED"
    DEVICE_CRITICAL_ERROR = "DEVICE_CRITICAL_ERROR"


class AuditAction(str, Enum):
    CREATE_ATTENDANCE_PERIOD = "CREATE_ATTENDANCE_PERIOD"
    FINALIZE_ATTENDANCE_PERIOD = "FINALIZE_ATTENDANCE_PERIOD"
    UNLOCK_ATTENDANCE_PERIOD = "UNLOCK_ATTENDANCE_PERIOD"
    RESOLVE_ATTENDANCE_CONFLICT = "RESOLVE_ATTENDANCE_CONFLICT"
    CALCULATE_PAYROLL_PERIOD = "CALCULATE_PAYROLL_PERIOD"
    APPROVE_PAYROLL_PERIOD = "APPROVE_PAYROLL_PERIOD"
