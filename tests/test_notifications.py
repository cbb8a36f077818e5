"""Tests for notification channels and the dispatcher."""

import io
import json
import threading
from unittest.mock import MagicMock, Mock

import pytest
import requests
from rich.console import Console

from tiered_backup.notifications.channels.base import BaseChannel
from tiered_backup.notifications.channels.console import ConsoleChannel, ConsoleChannelConfig
from tiered_backup.notifications.channels.webhook import WebhookChannel, WebhookChannelConfig
from tiered_backup.notifications.dispatcher import NotificationDispatcher, build_dispatcher
from tiered_backup.notifications.models import (
    DeliveryResult,
    Notification,
    NotificationEvent,
    NotificationSeverity,
)


def make_notification(message: str = "Backup complete.") -> Notification:
    return Notification(
        event=NotificationEvent.BACKUP_COMPLETED,
        message=message,
        severity=NotificationSeverity.SUCCESS,
        metadata={"files": 3},
    )


def make_response(status_code: int, text: str = "") -> Mock:
    response = Mock()
    response.status_code = status_code
    response.text = text
    return response


# =============================================================================
# Console channel
# =============================================================================


class TestConsoleChannel:
    """Tests for ConsoleChannel."""

    def test_prints_tag_and_message(self) -> None:
        buffer = io.StringIO()
        channel = ConsoleChannel(console=Console(file=buffer, width=120))

        result = channel.deliver(make_notification())

        assert result.success is True
        assert result.channel == "console"
        assert "[Backup] Backup complete." in buffer.getvalue()

    def test_markup_in_message_is_literal(self) -> None:
        buffer = io.StringIO()
        channel = ConsoleChannel(console=Console(file=buffer, width=120))

        channel.deliver(make_notification("copied [red]world[/red]"))

        assert "copied [red]world[/red]" in buffer.getvalue()

    def test_invalid_stream(self) -> None:
        channel = ConsoleChannel(
            ConsoleChannelConfig(output_stream="printer"), console=Console(file=io.StringIO())
        )

        result = channel.deliver(make_notification())

        assert result.success is False
        assert channel.validate_config() is False


# =============================================================================
# Webhook channel
# =============================================================================


class TestWebhookChannel:
    """Tests for WebhookChannel."""

    def make_channel(self, session: MagicMock, **overrides) -> WebhookChannel:
        config = WebhookChannelConfig(
            url="https://hooks.example.com/backup", retry_backoff_ms=0, **overrides
        )
        return WebhookChannel(config, session=session)

    def test_successful_post(self) -> None:
        session = MagicMock()
        session.request.return_value = make_response(204)
        channel = self.make_channel(session, bearer_token="secret")

        result = channel.deliver(make_notification())

        assert result.success is True
        assert result.status_code == 204
        kwargs = session.request.call_args.kwargs
        payload = json.loads(kwargs["data"])
        assert kwargs["method"] == "POST"
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert payload["event"] == "backup_completed"
        assert payload["severity"] == "success"
        assert payload["metadata"] == {"files": 3}

    def test_server_error_retried(self) -> None:
        session = MagicMock()
        session.request.side_effect = [make_response(503, "busy"), make_response(200)]
        channel = self.make_channel(session)

        result = channel.deliver(make_notification())

        assert result.success is True
        assert session.request.call_count == 2

    def test_client_error_not_retried(self) -> None:
        session = MagicMock()
        session.request.return_value = make_response(404, "not found")
        channel = self.make_channel(session)

        result = channel.deliver(make_notification())

        assert result.success is False
        assert result.status_code == 404
        assert session.request.call_count == 1

    def test_timeouts_exhaust_retries(self) -> None:
        session = MagicMock()
        session.request.side_effect = requests.exceptions.Timeout()
        channel = self.make_channel(session, max_retries=2)

        result = channel.deliver(make_notification())

        assert result.success is False
        assert result.retryable is True
        assert "timeout" in result.error_message
        assert session.request.call_count == 2

    def test_invalid_url(self) -> None:
        session = MagicMock()
        channel = WebhookChannel(WebhookChannelConfig(url="ftp://example.com"), session=session)

        result = channel.deliver(make_notification())

        assert result.success is False
        session.request.assert_not_called()

    def test_close_releases_session(self) -> None:
        session = MagicMock()
        channel = self.make_channel(session)

        channel.close()

        session.close.assert_called_once()


# =============================================================================
# Dispatcher
# =============================================================================


class FailingChannel(BaseChannel):
    channel_type = "failing"

    def validate_config(self) -> bool:
        return True

    def deliver(self, notification: Notification) -> DeliveryResult:
        raise RuntimeError("socket closed")


class BlockingChannel(BaseChannel):
    channel_type = "blocking"

    def __init__(self, release: threading.Event):
        super().__init__()
        self.release = release
        self.messages: list[str] = []

    def validate_config(self) -> bool:
        return True

    def deliver(self, notification: Notification) -> DeliveryResult:
        self.release.wait(timeout=5)
        self.messages.append(notification.message)
        return DeliveryResult(
            success=True,
            channel=self.channel_type,
            notification_id=notification.notification_id,
        )


class TestNotificationDispatcher:
    """Tests for NotificationDispatcher."""

    def test_delivers_to_all_channels(self) -> None:
        buffer = io.StringIO()
        dispatcher = NotificationDispatcher([ConsoleChannel(console=Console(file=buffer))])

        results = dispatcher.notify(NotificationEvent.BACKUP_STARTED, "Backing up...")

        assert [r.success for r in results] == [True]
        assert "Backing up..." in buffer.getvalue()

    def test_disabled_is_silent(self) -> None:
        buffer = io.StringIO()
        dispatcher = NotificationDispatcher(
            [ConsoleChannel(console=Console(file=buffer))], enabled=False
        )

        assert dispatcher.notify(NotificationEvent.BACKUP_STARTED, "Backing up...") == []
        assert buffer.getvalue() == ""

    def test_channel_exception_contained(self, caplog) -> None:
        """Test that a crashing channel yields a failed result instead of raising."""
        dispatcher = NotificationDispatcher([FailingChannel()])

        results = dispatcher.notify(NotificationEvent.BACKUP_FAILED, "Backup failed.")

        assert results[0].success is False
        assert "socket closed" in results[0].error_message
        assert "Notification delivery via failing failed" in caplog.text

    def test_send_returns_before_delivery(self) -> None:
        """Test that send() queues work and close() waits for it."""
        release = threading.Event()
        channel = BlockingChannel(release)
        dispatcher = NotificationDispatcher([channel])

        first = dispatcher.send(NotificationEvent.BACKUP_PROGRESS, "Backup progress: 1/2")
        second = dispatcher.send(NotificationEvent.BACKUP_PROGRESS, "Backup progress: 2/2")

        assert first.done() is False
        assert channel.messages == []

        release.set()
        dispatcher.close()

        assert second.done() is True
        assert [r.success for r in second.result()] == [True]
        assert channel.messages == ["Backup progress: 1/2", "Backup progress: 2/2"]

    def test_send_after_close_raises(self) -> None:
        dispatcher = NotificationDispatcher([])
        dispatcher.close()

        with pytest.raises(RuntimeError, match="closed"):
            dispatcher.send(NotificationEvent.BACKUP_STARTED, "Backing up...")

    def test_build_dispatcher(self) -> None:
        dispatcher = build_dispatcher(webhook_url="https://hooks.example.com/x")
        assert [c.channel_type for c in dispatcher.channels] == ["console", "webhook"]

        quiet = build_dispatcher(enabled=False, console=False)
        assert quiet.channels == []
        assert quiet.enabled is False
