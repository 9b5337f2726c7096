"""Typed settings built from a settings module (see the root ``config`` package).

Settings modules expose plain dicts so they can be overridden from the
environment; everything below validates those dicts once at startup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from ..common.validators import is_valid_ipv4, is_valid_port
from . import constants
from .enums import ErrorCategory, MappingStrategyName
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceConfig:
    ip: str
    port: int = constants.DEFAULT_DEVICE_PORT
    timeout_ms: int = constants.DEFAULT_DEVICE_TIMEOUT_MS

    @property
    def device_id(self) -> str:
        return f"{self.ip}:{self.port}"


@dataclass(frozen=True)
class DevicePoolConfig:
    primary: DeviceConfig
    secondary: tuple[DeviceConfig, ...] = ()

    def all_devices(self) -> tuple[DeviceConfig, ...]:
        return (self.primary, *self.secondary)


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = constants.DEFAULT_MAX_ATTEMPTS
    base_delay_ms: int = constants.DEFAULT_BASE_DELAY_MS
    max_delay_ms: int = constants.DEFAULT_MAX_DELAY_MS
    backoff_multiplier: float = constants.DEFAULT_BACKOFF_MULTIPLIER
    retryable_categories: frozenset[ErrorCategory] = frozenset(
        {ErrorCategory.NETWORK, ErrorCategory.TIMEOUT, ErrorCategory.DEVICE_UNAVAILABLE}
    )


@dataclass(frozen=True)
class CircuitBreakerConfig:
    failure_threshold: int = constants.DEFAULT_FAILURE_THRESHOLD
    recovery_timeout_ms: int = constants.DEFAULT_RECOVERY_TIMEOUT_MS


@dataclass(frozen=True)
class IdentityMappingConfig:
    strategy: MappingStrategyName = MappingStrategyName.EMAIL_PREFIX
    email_domain: Optional[str] = constants.DEFAULT_EMAIL_DOMAIN
    cache_results: bool = True
    cache_ttl_minutes: int = constants.DEFAULT_CACHE_TTL_MINUTES
    batch_size: int = constants.DEFAULT_VALIDATION_BATCH_SIZE


@dataclass(frozen=True)
class PayrollRules:
    daily_threshold: Decimal = constants.DAILY_THRESHOLD
    weekly_threshold: Decimal = constants.WEEKLY_THRESHOLD
    overtime_multiplier: Decimal = constants.OVERTIME_MULTIPLIER
    default_rate: Decimal = constants.DEFAULT_STANDARD_RATE


@dataclass(frozen=True)
class ReconciliationConfig:
    expected_punches_per_day: int = constants.DEFAULT_EXPECTED_PUNCHES_PER_DAY
    duplicate_window_seconds: int = constants.DEFAULT_DUPLICATE_WINDOW_SECONDS


@dataclass(frozen=True)
class AppSettings:
    device_pool: DevicePoolConfig
    retry: RetryConfig = field(default_factory=RetryConfig)
    circuit_breaker: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    identity: IdentityMappingConfig = field(default_factory=IdentityMappingConfig)
    payroll: PayrollRules = field(default_factory=PayrollRules)
    reconciliation: ReconciliationConfig = field(default_factory=ReconciliationConfig)
    notification_cooldown_ms: int = constants.DEFAULT_NOTIFICATION_COOLDOWN_MS


def _positive_int(raw: Mapping[str, Any], key: str, default: int, *, minimum: int = 1) -> int:
    try:
        value = int(raw.get(key, default))
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be an integer")
    if value < minimum:
        raise ConfigurationError(f"{key} must be >= {minimum}")
    return value


def _positive_decimal(raw: Mapping[str, Any], key: str, default: Decimal) -> Decimal:
    try:
        value = Decimal(str(raw.get(key, default)))
    except InvalidOperation:
        raise ConfigurationError(f"{key} must be a number")
    if value <= 0:
        raise ConfigurationError(f"{key} must be positive")
    return value


def parse_device(raw: Mapping[str, Any]) -> DeviceConfig:
    ip = str(raw.get("ip") or "").strip()
    if not is_valid_ipv4(ip):
        raise ConfigurationError(
            f"Invalid device IP: {ip!r}. Please provide a valid IPv4 address (e.g., 192.168.1.100)."
        )
    port = int(raw.get("port", constants.DEFAULT_DEVICE_PORT))
    if not is_valid_port(port):
        raise ConfigurationError(f"Invalid device port: {port}. Port must be between 1 and 65535.")
    timeout_ms = _positive_int(raw, "timeout", constants.DEFAULT_DEVICE_TIMEOUT_MS)
    return DeviceConfig(ip=ip, port=port, timeout_ms=timeout_ms)


def parse_device_pool(raw: Mapping[str, Any]) -> DevicePoolConfig:
    primary_raw = raw.get("primary")
    if not primary_raw:
        raise ConfigurationError("A primary attendance device must be configured (ZKT_PRIMARY_IP)")
    primary = parse_device(primary_raw)

    secondary: list[DeviceConfig] = []
    for item in raw.get("secondary") or []:
        try:
            secondary.append(parse_device(item))
        except ConfigurationError as exc:
            logger.warning("Skipping secondary device: %s", exc)
    return DevicePoolConfig(primary=primary, secondary=tuple(secondary))


def parse_retry(raw: Mapping[str, Any]) -> RetryConfig:
    base = _positive_int(raw, "base_delay_ms", constants.DEFAULT_BASE_DELAY_MS, minimum=0)
    maximum = _positive_int(raw, "max_delay_ms", constants.DEFAULT_MAX_DELAY_MS, minimum=0)
    if maximum < base:
        raise ConfigurationError("max_delay_ms must be >= base_delay_ms")
    return RetryConfig(
        max_attempts=_positive_int(raw, "max_attempts", constants.DEFAULT_MAX_ATTEMPTS),
        base_delay_ms=base,
        max_delay_ms=maximum,
        backoff_multiplier=float(raw.get("backoff_multiplier", constants.DEFAULT_BACKOFF_MULTIPLIER)),
    )


def parse_circuit_breaker(raw: Mapping[str, Any]) -> CircuitBreakerConfig:
    return CircuitBreakerConfig(
        failure_threshold=_positive_int(raw, "failure_threshold", constants.DEFAULT_FAILURE_THRESHOLD),
        recovery_timeout_ms=_positive_int(
            raw, "recovery_timeout_ms", constants.DEFAULT_RECOVERY_TIMEOUT_MS, minimum=0
        ),
    )


def parse_identity(raw: Mapping[str, Any]) -> IdentityMappingConfig:
    try:
        strategy = MappingStrategyName(str(raw.get("strategy", constants.DEFAULT_MAPPING_STRATEGY)))
    except ValueError:
        raise ConfigurationError(f"Unknown identity mapping strategy: {raw.get('strategy')!r}")

    ttl = _positive_int(raw, "cache_ttl_minutes", constants.DEFAULT_CACHE_TTL_MINUTES)
    if ttl > 1440:
        raise ConfigurationError("cache_ttl_minutes must be <= 1440")

    return IdentityMappingConfig(
        strategy=strategy,
        email_domain=raw.get("email_domain", constants.DEFAULT_EMAIL_DOMAIN),
        cache_results=bool(raw.get("cache_results", True)),
        cache_ttl_minutes=ttl,
        batch_size=_positive_int(raw, "batch_size", constants.DEFAULT_VALIDATION_BATCH_SIZE),
    )


def parse_payroll_rules(raw: Mapping[str, Any]) -> PayrollRules:
    return PayrollRules(
        daily_threshold=_positive_decimal(raw, "daily_threshold", constants.DAILY_THRESHOLD),
        weekly_threshold=_positive_decimal(raw, "weekly_threshold", constants.WEEKLY_THRESHOLD),
        overtime_multiplier=_positive_decimal(raw, "overtime_multiplier", constants.OVERTIME_MULTIPLIER),
        default_rate=_positive_decimal(raw, "default_rate", constants.DEFAULT_STANDARD_RATE),
    )


def parse_reconciliation(raw: Mapping[str, Any]) -> ReconciliationConfig:
    return ReconciliationConfig(
        expected_punches_per_day=_positive_int(
            raw, "expected_punches_per_day", constants.DEFAULT_EXPECTED_PUNCHES_PER_DAY
        ),
        duplicate_window_seconds=_positive_int(
            raw, "duplicate_window_seconds", constants.DEFAULT_DUPLICATE_WINDOW_SECONDS, minimum=0
        ),
    )


def load_settings(settings_module: Any) -> AppSettings:
    """Build AppSettings from a settings module imported by name."""

    notifications = getattr(settings_module, "NOTIFICATIONS", {}) or {}
    settings = AppSettings(
        device_pool=parse_device_pool(getattr(settings_module, "DEVICE_POOL", {}) or {}),
        retry=parse_retry(getattr(settings_module, "RETRY", {}) or {}),
        circuit_breaker=parse_circuit_breaker(getattr(settings_module, "CIRCUIT_BREAKER", {}) or {}),
        identity=parse_identity(getattr(settings_module, "IDENTITY_MAPPING", {}) or {}),
        payroll=parse_payroll_rules(getattr(settings_module, "PAYROLL_RULES", {}) or {}),
        reconciliation=parse_reconciliation(getattr(settings_module, "RECONCILIATION", {}) or {}),
        notification_cooldown_ms=_positive_int(
            notifications, "critical_cooldown_ms", constants.DEFAULT_NOTIFICATION_COOLDOWN_MS, minimum=0
        ),
    )

    if settings.retry.max_attempts > 10:
        logger.warning("max_attempts is very high (> 10); failing devices will cause long delays")
    logger.info(
        "Device pool loaded: primary %s, %d secondary device(s)",
        settings.device_pool.primary.device_id,
        len(settings.device_pool.secondary),
    )
    return settings
