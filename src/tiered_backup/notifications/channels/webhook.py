"""
Webhook notification channel.

Delivers backup notifications as JSON over HTTP(S) with bounded retries.
"""

import json
import threading
import time

import requests

from tiered_backup.notifications.channels.base import BaseChannel, ChannelConfig
from tiered_backup.notifications.models import DeliveryResult, Notification


class WebhookChannelConfig(ChannelConfig):
    """Configuration for webhook channel."""

    url: str
    method: str = "POST"
    headers: dict[str, str] = {}
    bearer_token: str | None = None
    verify_ssl: bool = True
    retry_backoff_ms: int = 500


class WebhookChannel(BaseChannel):
    """
    Notification delivery via HTTP webhooks.

    Supports:
    - Optional bearer token authentication
    - Retry with exponential backoff on server and connection errors
    - Thread-safe session reuse
    """

    channel_type = "webhook"

    def __init__(self, config: WebhookChannelConfig, session: requests.Session | None = None):
        """
        Initialize webhook channel.

        Args:
            config: Webhook channel configuration
            session: Optional pre-built requests session
        """
        super().__init__(config)
        self.webhook_config: WebhookChannelConfig = config
        self._session_lock = threading.Lock()
        self._session: requests.Session | None = session

    def validate_config(self) -> bool:
        """Validate webhook configuration."""
        if not self.webhook_config.url.startswith(("http://", "https://")):
            return False
        return self.webhook_config.method in ("POST", "PUT", "PATCH")

    def _get_session(self) -> requests.Session:
        """Get or create the shared requests session."""
        if self._session is None:
            with self._session_lock:
                if self._session is None:
                    self._session = requests.Session()
        return self._session

    def _prepare_headers(self) -> dict[str, str]:
        headers = self.webhook_config.headers.copy()
        headers.setdefault("Content-Type", "application/json")
        if self.webhook_config.bearer_token:
            headers["Authorization"] = f"Bearer {self.webhook_config.bearer_token}"
        return headers

    def deliver(self, notification: Notification) -> DeliveryResult:
        """
        Deliver notification via webhook.

        Args:
            notification: Notification to deliver

        Returns:
            DeliveryResult with delivery status
        """
        if not self.validate_config():
            return DeliveryResult(
                success=False,
                channel=self.channel_type,
                notification_id=notification.notification_id,
                error_message="Invalid webhook configuration",
            )

        payload = json.dumps(self.prepare_payload(notification))
        headers = self._prepare_headers()
        timeout = self.webhook_config.timeout_seconds
        attempts = max(1, self.webhook_config.max_retries)
        last_error = None

        for attempt in range(attempts):
            try:
                response = self._get_session().request(
                    method=self.webhook_config.method,
                    url=self.webhook_config.url,
                    data=payload,
                    headers=headers,
                    verify=self.webhook_config.verify_ssl,
                    timeout=timeout,
                )

                if 200 <= response.status_code < 400:
                    return DeliveryResult(
                        success=True,
                        channel=self.channel_type,
                        notification_id=notification.notification_id,
                        status_code=response.status_code,
                    )

                last_error = f"HTTP {response.status_code}: {response.text[:200]}"

                # Don't retry on client errors (4xx)
                if 400 <= response.status_code < 500:
                    return DeliveryResult(
                        success=False,
                        channel=self.channel_type,
                        notification_id=notification.notification_id,
                        error_message=last_error,
                        status_code=response.status_code,
                    )

            except requests.exceptions.Timeout:
                last_error = f"Request timeout after {timeout}s"
            except requests.exceptions.SSLError as e:
                return DeliveryResult(
                    success=False,
                    channel=self.channel_type,
                    notification_id=notification.notification_id,
                    error_message=f"SSL error: {e}",
                )
            except requests.exceptions.RequestException as e:
                last_error = f"Request error: {e}"

            if attempt < attempts - 1:
                time.sleep(self.webhook_config.retry_backoff_ms * (2**attempt) / 1000)

        return DeliveryResult(
            success=False,
            channel=self.channel_type,
            notification_id=notification.notification_id,
            error_message=last_error or "Unknown error",
            retryable=True,
        )

    def close(self) -> None:
        """Close the requests session."""
        if self._session:
            self._session.close()
            self._session = None
