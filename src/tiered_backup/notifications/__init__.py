"""
Tiered Backup Notifications Module.

Announces backup start, progress and outcome to operators through
pluggable channels.
"""

from tiered_backup.notifications.dispatcher import NotificationDispatcher, build_dispatcher
from tiered_backup.notifications.models import (
    DeliveryResult,
    Notification,
    NotificationEvent,
    NotificationSeverity,
)

__all__ = [
    "Notification",
    "NotificationEvent",
    "NotificationSeverity",
    "DeliveryResult",
    "NotificationDispatcher",
    "build_dispatcher",
]
