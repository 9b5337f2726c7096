from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .admin.service import FinanceAdminService
from .attendance.reconciler import PunchReconciler
from .core.settings import AppSettings, DeviceConfig
from .database.connection import DBConfig, DatabaseConnection
from .database.in_memory import InMemoryUnitOfWork
from .database.mysql_unit_of_work import MySQLUnitOfWork
from .database.unit_of_work import UnitOfWork
from .device_link.link import DeviceLink
from .device_link.pool import DevicePool
from .device_link.transport import TerminalTransport, ZKTerminalTransport
from .identity.resolver import IdentityResolver
from .notifications.sink import LoggingNotificationSink, NotificationSink
from .payroll.engine import PayrollEngine
from .payroll.service import PayrollService
from .periods.finalizer import PeriodFinalizer
from .sync.service import SyncService


@dataclass(frozen=True)
class Container:
    settings: AppSettings
    uow: UnitOfWork
    notification_sink: NotificationSink

    device_link: DeviceLink
    device_pool: DevicePool
    identity_resolver: IdentityResolver
    reconciler: PunchReconciler
    finalizer: PeriodFinalizer
    payroll_engine: PayrollEngine

    sync_service: SyncService
    admin_service: FinanceAdminService
    payroll_service: PayrollService


def build_container(
    *,
    settings: AppSettings,
    db_config: Optional[dict] = None,
    uow: Optional[UnitOfWork] = None,
    notification_sink: Optional[NotificationSink] = None,
    transport_factory: Callable[[DeviceConfig], TerminalTransport] = ZKTerminalTransport,
) -> Container:
    """Wire the application.

    Without an explicit unit of work, MySQL is used when ``db_config`` is
    given and a process-local in-memory store otherwise.
    """

    if uow is None:
        uow = MySQLUnitOfWork(DatabaseConnection(DBConfig.from_mapping(db_config))) if db_config else InMemoryUnitOfWork()
    sink = notification_sink or LoggingNotificationSink()

    device_link = DeviceLink(
        settings.retry,
        settings.circuit_breaker,
        notification_sink=sink,
        notification_cooldown_ms=settings.notification_cooldown_ms,
    )
    device_pool = DevicePool.from_config(settings.device_pool, device_link, transport_factory=transport_factory)
    identity_resolver = IdentityResolver(uow, settings.identity)
    reconciler = PunchReconciler(uow, settings.reconciliation)
    finalizer = PeriodFinalizer(uow)
    payroll_engine = PayrollEngine(uow, settings.payroll)

    return Container(
        settings=settings,
        uow=uow,
        notification_sink=sink,
        device_link=device_link,
        device_pool=device_pool,
        identity_resolver=identity_resolver,
        reconciler=reconciler,
        finalizer=finalizer,
        payroll_engine=payroll_engine,
        sync_service=SyncService(device_pool, identity_resolver, reconciler),
        admin_service=FinanceAdminService(finalizer, reconciler, notification_sink=sink),
        payroll_service=PayrollService(payroll_engine, notification_sink=sink),
    )
