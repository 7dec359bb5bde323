"""Reminder scheduling and notification delivery."""

from .exceptions import (
    NotificationDeliveryError,
    NotificationError,
    NotificationPermissionError,
)
from .protocols import NotificationPermission, NotificationSink, SentStoreProtocol
from .scheduler import NotificationScheduler, PassReport, format_reminder
from .sent_store import SentStore, is_key_sent
from .sinks import BaseNotificationSink, ConsoleNotificationSink, WebhookNotificationSink

__all__ = [
    "BaseNotificationSink",
    "ConsoleNotificationSink",
    "NotificationDeliveryError",
    "NotificationError",
    "NotificationPermission",
    "NotificationPermissionError",
    "NotificationScheduler",
    "NotificationSink",
    "PassReport",
    "SentStore",
    "SentStoreProtocol",
    "WebhookNotificationSink",
    "format_reminder",
    "is_key_sent",
]
