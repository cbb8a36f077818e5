"""
Notification dispatcher.

Fans backup notifications out to every enabled channel. Delivery
problems are logged and never propagate into the backup run.
notify() delivers on the calling thread; send() queues the delivery on
a single background worker so slow channels never hold up the caller.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Iterable

from tiered_backup.notifications.channels.base import BaseChannel
from tiered_backup.notifications.channels.console import ConsoleChannel
from tiered_backup.notifications.channels.webhook import WebhookChannel, WebhookChannelConfig
from tiered_backup.notifications.models import (
    DeliveryResult,
    Notification,
    NotificationEvent,
    NotificationSeverity,
)

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Delivers notifications to a fixed set of channels."""

    def __init__(self, channels: Iterable[BaseChannel] = (), enabled: bool = True):
        """
        Initialize the dispatcher.

        Args:
            channels: Channels to deliver to
            enabled: When False, notify() and send() are no-ops
        """
        self._channels = list(channels)
        self.enabled = enabled
        self._lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._closed = False

    @property
    def channels(self) -> list[BaseChannel]:
        return list(self._channels)

    def add_channel(self, channel: BaseChannel) -> None:
        self._channels.append(channel)

    def notify(
        self,
        event: NotificationEvent,
        message: str,
        severity: NotificationSeverity = NotificationSeverity.INFO,
        **metadata: Any,
    ) -> list[DeliveryResult]:
        """
        Send a message to all enabled channels.

        Returns:
            One DeliveryResult per channel attempted
        """
        if not self.enabled:
            return []

        notification = Notification(
            event=event,
            message=message,
            severity=severity,
            metadata=metadata,
        )
        results = []
        for channel in self._channels:
            if not channel.is_enabled():
                continue
            try:
                result = channel.deliver(notification)
            except Exception as e:
                result = DeliveryResult(
                    success=False,
                    channel=channel.channel_type,
                    notification_id=notification.notification_id,
                    error_message=f"Unexpected error: {e}",
                )
            if not result.success:
                logger.warning(
                    f"Notification delivery via {result.channel} failed: {result.error_message}"
                )
            results.append(result)
        return results

    def send(
        self,
        event: NotificationEvent,
        message: str,
        severity: NotificationSeverity = NotificationSeverity.INFO,
        **metadata: Any,
    ) -> "Future[list[DeliveryResult]]":
        """
        Queue a message for delivery on the background worker.

        Deliveries run one at a time in submission order. close() waits
        for everything already queued.

        Returns:
            Future resolving to the delivery results

        Raises:
            RuntimeError: If the dispatcher has been closed
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Notification dispatcher is closed")
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="backup-notify"
                )
            return self._executor.submit(self.notify, event, message, severity, **metadata)

    def close(self) -> None:
        """Finish queued deliveries, then close every channel."""
        with self._lock:
            self._closed = True
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
        for channel in self._channels:
            channel.close()


def build_dispatcher(
    enabled: bool = True,
    console: bool = True,
    webhook_url: str | None = None,
    webhook_timeout_seconds: int = 10,
) -> NotificationDispatcher:
    """Create a dispatcher from notification settings."""
    channels: list[BaseChannel] = []
    if console:
        channels.append(ConsoleChannel())
    if webhook_url:
        channels.append(
            WebhookChannel(
                WebhookChannelConfig(url=webhook_url, timeout_seconds=webhook_timeout_seconds)
            )
        )
    return NotificationDispatcher(channels, enabled=enabled)
