from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

from ..core.enums import NotificationEvent

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """Fire-and-forget delivery of business events (email/in-app live elsewhere)."""

    def notify(self, event: NotificationEvent, payload: Mapping[str, Any]) -> None:
        raise NotImplementedError


class LoggingNotificationSink(NotificationSink):
    def notify(self, event: NotificationEvent, payload: Mapping[str, Any]) -> None:
        logger.info("Notification %s: %s", event.value, dict(payload))


def notify_safely(sink: NotificationSink, event: NotificationEvent, payload: Mapping[str, Any]) -> bool:
    """Deliver an event; a failing sink is logged and never reaches the caller."""

    try:
        sink.notify(event, payload)
        return True
    except Exception:
        logger.exception("Failed to deliver %s notification", event.value)
        return False
