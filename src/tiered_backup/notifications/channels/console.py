"""
Console notification channel.

Prints backup notifications to the terminal with rich styling.
"""

from rich.console import Console
from rich.markup import escape

from tiered_backup.notifications.channels.base import BaseChannel, ChannelConfig
from tiered_backup.notifications.models import (
    DeliveryResult,
    Notification,
    NotificationSeverity,
)


class ConsoleChannelConfig(ChannelConfig):
    """Configuration for console channel."""

    output_stream: str = "stdout"  # "stdout" or "stderr"
    include_timestamp: bool = False
    tag: str = "[Backup]"


class ConsoleChannel(BaseChannel):
    """Notification delivery to console output, color-coded by severity."""

    channel_type = "console"

    SEVERITY_STYLES = {
        NotificationSeverity.INFO: "cyan",
        NotificationSeverity.SUCCESS: "green",
        NotificationSeverity.WARNING: "yellow",
        NotificationSeverity.ERROR: "red",
    }

    def __init__(self, config: ConsoleChannelConfig | None = None, console: Console | None = None):
        """
        Initialize console channel.

        Args:
            config: Console channel configuration
            console: Rich console to print to (created from config if omitted)
        """
        config = config or ConsoleChannelConfig()
        super().__init__(config)
        self.console_config: ConsoleChannelConfig = config
        self._console = console or Console(stderr=config.output_stream == "stderr")

    def validate_config(self) -> bool:
        return self.console_config.output_stream in ("stdout", "stderr")

    def deliver(self, notification: Notification) -> DeliveryResult:
        """Print the notification; console delivery only fails on bad configuration."""
        if not self.validate_config():
            return DeliveryResult(
                success=False,
                channel=self.channel_type,
                notification_id=notification.notification_id,
                error_message="Invalid console configuration",
            )

        style = self.SEVERITY_STYLES.get(notification.severity, "white")
        prefix = f"[dim]{notification.created_at[:19]}[/dim] " if self.console_config.include_timestamp else ""
        self._console.print(
            f"{prefix}[green]{escape(self.console_config.tag)}[/green] [{style}]{escape(notification.message)}[/{style}]",
            highlight=False,
        )
        return DeliveryResult(
            success=True,
            channel=self.channel_type,
            notification_id=notification.notification_id,
        )
