"""Notification sinks — where the core reports signals, orders and closes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import structlog

log = structlog.get_logger("notify")

# Events the core emits
SIGNAL = "signal"
ORDER_PLACED = "order_placed"
POSITION_CLOSED = "position_closed"
ERROR = "error"
BOT_STATUS = "bot_status"
ORDER_CANCELLED = "order_cancelled"


class NotificationSink(ABC):
    @abstractmethod
    async def notify(self, event: str, payload: dict[str, Any]) -> None:
        ...


class LogNotifier(NotificationSink):
    """Writes every event to the structured log and nothing else."""

    async def notify(self, event: str, payload: dict[str, Any]) -> None:
        log.info("notification", notify_event=event, **payload)


async def safe_notify(sink: NotificationSink, event: str, payload: dict[str, Any]) -> None:
    """Deliver an event, logging and swallowing any sink failure."""
    try:
        await sink.notify(event, payload)
    except Exception:
        log.exception("notification_failed", notify_event=event)
