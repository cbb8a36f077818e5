"""
Notification models.

Backup runs announce their start, progress and outcome as notifications
that channels deliver to operators.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class NotificationEvent(Enum):
    """Backup lifecycle events that produce notifications."""

    BACKUP_STARTED = "backup_started"
    BACKUP_PROGRESS = "backup_progress"
    BACKUP_COMPLETED = "backup_completed"
    BACKUP_FAILED = "backup_failed"
    BACKUP_REJECTED = "backup_rejected"


class NotificationSeverity(Enum):
    """Severity used for styling and filtering."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    """A message to deliver through the configured channels."""

    notification_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    event: NotificationEvent
    message: str
    severity: NotificationSeverity = NotificationSeverity.INFO
    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="ISO timestamp of creation",
    )
    metadata: dict[str, Any] = Field(default_factory=dict)


class DeliveryResult(BaseModel):
    """Outcome of delivering one notification through one channel."""

    success: bool
    channel: str
    notification_id: str
    error_message: str | None = None
    status_code: int | None = None
    retryable: bool = False
