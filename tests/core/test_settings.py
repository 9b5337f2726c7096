from __future__ import annotations

import types
from decimal import Decimal

import pytest

from config import get_settings_module
from config.config import device_pool
from src.attendance_payroll.attendance_payroll.core.enums import MappingStrategyName
from src.attendance_payroll.attendance_payroll.core.exceptions import ConfigurationError
from src.attendance_payroll.attendance_payroll.core.logging_config import build_logging_config
from src.attendance_payroll.attendance_payroll.core.settings import load_settings


def settings_module(**attrs):
    base = {"DEVICE_POOL": {"primary": {"ip": "192.168.1.201", "port": 4370}}}
    base.update(attrs)
    return types.SimpleNamespace(**base)


def test_defaults():
    settings = load_settings(settings_module())

    assert settings.device_pool.primary.device_id == "192.168.1.201:4370"
    assert settings.retry.max_attempts == 3
    assert settings.circuit_breaker.failure_threshold == 5
    assert settings.identity.strategy == MappingStrategyName.EMAIL_PREFIX
    assert settings.payroll.overtime_multiplier == Decimal("1.5")
    assert settings.reconciliation.duplicate_window_seconds == 60


@pytest.mark.parametrize(
    "attrs",
    [
        {"DEVICE_POOL": {"primary": {"ip": "999.1.1.1"}}},
        {"DEVICE_POOL": {}},
        {"RETRY": {"max_attempts": 0}},
        {"CIRCUIT_BREAKER": {"failure_threshold": 0}},
        {"IDENTITY_MAPPING": {"strategy": "ldap"}},
        {"IDENTITY_MAPPING": {"cache_ttl_minutes": 2000}},
        {"PAYROLL_RULES": {"default_rate": "-1"}},
    ],
)
def test_invalid_settings_are_rejected(attrs):
    with pytest.raises(ConfigurationError):
        load_settings(settings_module(**attrs))


def test_invalid_secondary_device_is_skipped():
    settings = load_settings(
        settings_module(
            DEVICE_POOL={
                "primary": {"ip": "192.168.1.201"},
                "secondary": [{"ip": "bogus"}, {"ip": "192.168.1.202", "port": 4371}],
            }
        )
    )

    assert [d.device_id for d in settings.device_pool.secondary] == ["192.168.1.202:4371"]


def test_secondary_devices_read_from_environment_until_gap(monkeypatch):
    monkeypatch.setenv("ZKT_PRIMARY_IP", "10.0.0.1")
    monkeypatch.setenv("ZKT_SECONDARY_2_IP", "10.0.0.2")
    monkeypatch.setenv("ZKT_SECONDARY_3_IP", "10.0.0.3")
    monkeypatch.setenv("ZKT_SECONDARY_3_PORT", "5000")
    monkeypatch.setenv("ZKT_SECONDARY_5_IP", "10.0.0.5")

    pool = device_pool()

    assert pool["primary"]["ip"] == "10.0.0.1"
    assert [(d["ip"], d["port"]) for d in pool["secondary"]] == [("10.0.0.2", 4370), ("10.0.0.3", 5000)]


def test_settings_module_selection(monkeypatch):
    monkeypatch.setenv("APP_ENV", "prod")
    assert get_settings_module() == "config.production"
    monkeypatch.setenv("APP_ENV", "Testing")
    assert get_settings_module() == "config.testing"
    monkeypatch.setenv("APP_ENV", "staging")
    assert get_settings_module() == "config.development"


def test_logging_config_adds_json_file_handler_only_when_configured(tmp_path):
    console_only = build_logging_config("DEBUG")
    with_file = build_logging_config("INFO", str(tmp_path / "sync.json"))

    assert list(console_only["handlers"]) == ["console"]
    assert console_only["root"]["level"] == "DEBUG"
    assert list(with_file["handlers"]) == ["console", "json_file"]
    assert with_file["handlers"]["json_file"]["filename"].endswith("sync.json")
