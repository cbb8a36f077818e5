"""
Base channel class for notification delivery.

All notification channels must inherit from BaseChannel and implement
the deliver() method.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from tiered_backup.notifications.models import DeliveryResult, Notification


class ChannelConfig(BaseModel):
    """Base configuration for notification channels."""

    enabled: bool = True
    timeout_seconds: int = 10
    max_retries: int = 3


class BaseChannel(ABC):
    """
    Abstract base class for notification channels.

    All channels must implement:
    - deliver(): Send the notification
    - validate_config(): Check configuration validity
    """

    channel_type: str = "base"

    def __init__(self, config: ChannelConfig | None = None):
        self.config = config or ChannelConfig()

    @abstractmethod
    def validate_config(self) -> bool:
        """
        Validate channel configuration.

        Returns:
            True if configuration is valid
        """

    @abstractmethod
    def deliver(self, notification: Notification) -> DeliveryResult:
        """
        Deliver a notification through this channel.

        Args:
            notification: Notification to deliver

        Returns:
            DeliveryResult with delivery status
        """

    def is_enabled(self) -> bool:
        """Check if channel is enabled."""
        return self.config.enabled

    def prepare_payload(self, notification: Notification) -> dict[str, Any]:
        """Standardized payload shared by channels that send structured data."""
        return {
            "id": notification.notification_id,
            "event": notification.event.value,
            "message": notification.message,
            "severity": notification.severity.value,
            "timestamp": notification.created_at,
            "metadata": notification.metadata,
        }

    def close(self) -> None:
        """Release channel resources."""
