"""
Core result models shared by the orchestrator, state store and CLI.
"""

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class RunStatus(Enum):
    """Outcome of a backup run request."""

    COMPLETED = "completed"
    FAILED = "failed"
    REJECTED = "rejected"


class BackupResult(BaseModel):
    """Immutable record returned by a single backup run."""

    model_config = {"frozen": True}

    success: bool = Field(description="Whether the archive was written")
    files_count: int = Field(default=0, description="Files written into the archive")
    total_bytes: int = Field(default=0, description="Size of the archive on disk")
    message: str = Field(default="", description="Human-readable outcome")
    status: RunStatus = Field(default=RunStatus.COMPLETED, description="Run outcome")
    artifact_path: Path | None = Field(
        default=None, description="Archive produced by this run"
    )

    @classmethod
    def failed(cls, message: str, **kwargs) -> "BackupResult":
        """Build a failed result."""
        return cls(success=False, message=message, status=RunStatus.FAILED, **kwargs)

    @classmethod
    def rejected(cls, message: str = "busy") -> "BackupResult":
        """Build a result for a request refused by the single-flight guard."""
        return cls(success=False, message=message, status=RunStatus.REJECTED)

    @property
    def is_rejected(self) -> bool:
        return self.status == RunStatus.REJECTED


class LastBackupInfo(BaseModel):
    """Summary of the most recent finished run, shown by status queries."""

    model_config = {"frozen": True}

    finished_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="ISO timestamp when the run finished",
    )
    success: bool
    files_count: int = 0
    total_bytes: int = 0
    duration_seconds: float = 0.0
    message: str = ""

    @classmethod
    def from_result(cls, result: BackupResult, duration_seconds: float) -> "LastBackupInfo":
        """Create a status record from a run result."""
        return cls(
            success=result.success,
            files_count=result.files_count,
            total_bytes=result.total_bytes,
            duration_seconds=round(duration_seconds, 3),
            message=result.message,
        )


class StateSnapshot(BaseModel):
    """Contents of the state file, readable from any process."""

    last_backup: LastBackupInfo | None = None
    running: bool = False
    next_run_at: str | None = Field(
        default=None,
        description="ISO timestamp of the next automatic backup, set while serve runs",
    )

    def seconds_until_next_run(self, now: datetime | None = None) -> float | None:
        if self.next_run_at is None:
            return None
        now = now or datetime.now(timezone.utc)
        remaining = (datetime.fromisoformat(self.next_run_at) - now).total_seconds()
        return max(0.0, remaining)


def bytes_to_human(size_bytes: int) -> str:
    """Format a byte count as B, KB, MB or GB."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    kb = size_bytes / 1024.0
    if kb < 1024:
        return f"{kb:.1f} KB"
    mb = kb / 1024.0
    if mb < 1024:
        return f"{mb:.1f} MB"
    gb = mb / 1024.0
    return f"{gb:.2f} GB"
