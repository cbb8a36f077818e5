"""
Notification channels.

Available channels:
- ConsoleChannel: rich-formatted terminal output
- WebhookChannel: JSON POST to an HTTP endpoint
"""

from tiered_backup.notifications.channels.base import BaseChannel, ChannelConfig
from tiered_backup.notifications.channels.console import ConsoleChannel, ConsoleChannelConfig
from tiered_backup.notifications.channels.webhook import WebhookChannel, WebhookChannelConfig

__all__ = [
    "BaseChannel",
    "ChannelConfig",
    "ConsoleChannel",
    "ConsoleChannelConfig",
    "WebhookChannel",
    "WebhookChannelConfig",
]
