"""Notification sinks."""

from futures_core.notify.base import LogNotifier, NotificationSink, safe_notify
from futures_core.notify.telegram import TelegramNotifier, build_notifier

__all__ = ["LogNotifier", "NotificationSink", "TelegramNotifier", "build_notifier", "safe_notify"]
