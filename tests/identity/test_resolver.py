from __future__ import annotations

import pytest

from src.attendance_payroll.attendance_payroll.core.enums import MappingStrategyName
from src.attendance_payroll.attendance_payroll.core.exceptions import ConfigurationError
from src.attendance_payroll.attendance_payroll.core.settings import IdentityMappingConfig
from src.attendance_payroll.attendance_payroll.database.in_memory import InMemoryStore, InMemoryUnitOfWork
from src.attendance_payroll.attendance_payroll.employees.model import Employee
from src.attendance_payroll.attendance_payroll.identity.factory import MappingStrategyFactory
from src.attendance_payroll.attendance_payroll.identity.resolver import IdentityResolver
from src.attendance_payroll.attendance_payroll.identity.model import ValidationResult
from src.attendance_payroll.attendance_payroll.identity.strategies.base import MappingStrategy


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class CountingUnitOfWork(InMemoryUnitOfWork):
    def __init__(self, store):
        super().__init__(store)
        self.runs = 0

    def run(self, work):
        self.runs += 1
        return super().run(work)


class BrokenUnitOfWork:
    def run(self, work):
        raise RuntimeError("connection lost")


def make_store() -> InMemoryStore:
    store = InMemoryStore()
    for e in (
        Employee(employee_id="E1", full_name="John Doe", email="john.doe@co.com"),
        Employee(employee_id="E2", full_name="Jane Roe", email="jane@co.com", is_active=False),
    ):
        store.employees[e.employee_id] = e
    return store


def config(**kwargs) -> IdentityMappingConfig:
    base = dict(strategy=MappingStrategyName.EMAIL_PREFIX, email_domain="@co.com", cache_ttl_minutes=30, batch_size=2)
    base.update(kwargs)
    return IdentityMappingConfig(**base)


def test_email_prefix_maps_terminal_id_to_employee():
    resolver = IdentityResolver(InMemoryUnitOfWork(make_store()), config())

    result = resolver.resolve("john.doe")

    assert result.is_valid is True
    assert result.employee_id == "E1"
    assert result.employee_email == "john.doe@co.com"


def test_inactive_and_unknown_employees_are_invalid():
    resolver = IdentityResolver(InMemoryUnitOfWork(make_store()), config())

    inactive = resolver.resolve("jane")
    missing = resolver.resolve("nobody")

    assert inactive.is_valid is False
    assert inactive.error_message == "No active employee found with email: jane@co.com"
    assert missing.error_message == "No active employee found with email: nobody@co.com"


def test_email_domain_must_be_configured():
    resolver = IdentityResolver(InMemoryUnitOfWork(make_store()), config(email_domain=None))

    result = resolver.resolve("john.doe")

    assert result.error_message == "Email domain not configured for email_prefix strategy"


def test_direct_id_and_custom_field_strategies():
    uow = InMemoryUnitOfWork(make_store())

    direct = IdentityResolver(uow, config(strategy=MappingStrategyName.DIRECT_ID))
    assert direct.resolve("E1").employee_id == "E1"
    assert direct.resolve("E2").error_message == "No active employee found with ID: E2"

    custom = IdentityResolver(uow, config(strategy=MappingStrategyName.CUSTOM_FIELD))
    assert custom.resolve("E1").error_message == "Custom field mapping not yet implemented"


def test_unknown_strategy_name_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="Invalid mapping strategy configured: ldap"):
        MappingStrategyFactory().create(config(), name="ldap")


def test_blank_terminal_id_is_invalid():
    resolver = IdentityResolver(InMemoryUnitOfWork(make_store()), config())

    assert resolver.resolve("  ").error_message == "Terminal user id is required"


def test_results_are_cached_until_ttl_expires():
    clock = FakeClock()
    uow = CountingUnitOfWork(make_store())
    resolver = IdentityResolver(uow, config(cache_ttl_minutes=1), clock=clock)

    resolver.resolve("john.doe")
    resolver.resolve("john.doe")
    resolver.resolve("nobody")
    resolver.resolve("nobody")
    assert uow.runs == 2

    stats = resolver.get_cache_stats()
    assert stats.size == 2

    clock.now = 61
    resolver.resolve("john.doe")
    assert uow.runs == 3

    resolver.clear_cache()
    assert resolver.get_cache_stats().size == 0


def test_lookup_failures_are_reported_and_not_cached():
    resolver = IdentityResolver(BrokenUnitOfWork(), config())

    result = resolver.resolve("john.doe")

    assert result.is_valid is False
    assert result.error_message == "Database lookup failed: connection lost"
    assert resolver.get_cache_stats().size == 0


def test_batch_splits_valid_and_invalid_ids():
    resolver = IdentityResolver(InMemoryUnitOfWork(make_store()), config(batch_size=2))

    batch = resolver.resolve_batch(["john.doe", "jane", "nobody"])

    assert batch.total_processed == 3
    assert batch.valid_count == 1
    assert batch.invalid_count == 2
    assert batch.employee_for("john.doe") == "E1"
    assert [i.terminal_user_id for i in batch.invalid_employees] == ["jane", "nobody"]


class LowercaseIdStrategy(MappingStrategy):
    name = "lowercase_id"

    def lookup(self, employees, terminal_user_id):
        employee = employees.get_active_by_id(terminal_user_id.upper())
        if employee is None:
            return ValidationResult.invalid("not found")
        return ValidationResult.valid(employee)


def test_factory_builds_registered_strategy():
    factory = MappingStrategyFactory()
    factory.register("lowercase_id", lambda cfg: LowercaseIdStrategy())
    strategy = factory.create(config(), name="lowercase_id")
    resolver = IdentityResolver(InMemoryUnitOfWork(make_store()), config(), strategy=strategy)

    assert resolver.strategy_name == "lowercase_id"
    assert resolver.resolve("e1").employee_id == "E1"