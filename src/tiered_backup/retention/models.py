"""
Models for backup artifacts and retention tiers.

Defines the artifact snapshot consumed by the retention engine, the
tier configuration and the plan/result records it produces.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from .naming import parse_artifact_timestamp


@dataclass(frozen=True)
class BackupArtifact:
    """An archive file on disk, as seen by one retention run."""

    path: Path
    size_bytes: int
    modified_at: datetime
    timestamp: datetime

    @property
    def name(self) -> str:
        return self.path.name

    @classmethod
    def from_path(cls, path: Path) -> "BackupArtifact":
        """
        Snapshot an artifact file.

        The timestamp comes from the file name; the modification time is
        used when the name does not carry one.
        """
        stat = path.stat()
        modified_at = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        timestamp = parse_artifact_timestamp(path.name) or modified_at
        return cls(
            path=path,
            size_bytes=stat.st_size,
            modified_at=modified_at,
            timestamp=timestamp,
        )


class RetentionTier(BaseModel):
    """
    One retention rule over a cascading time window.

    Spacing is either an explicit list of gaps (seconds) between
    consecutive picks, or a base gap multiplied by ``growth`` per pick.
    """

    model_config = {"frozen": True}

    name: str | None = Field(default=None, description="Label used in plans and logs")
    window_seconds: int | None = Field(
        default=None, ge=0, description="Window length; None means unbounded past"
    )
    keep: int | None = Field(default=None, ge=0, description="Desired keep count")
    spacings: tuple[int, ...] = Field(
        default=(), description="Explicit gaps between consecutive picks"
    )
    min_spacing_seconds: int = Field(default=0, ge=0, description="Base gap")
    growth: float = Field(default=1.0, gt=0, description="Gap multiplier per pick")

    @field_validator("spacings")
    @classmethod
    def validate_spacings(cls, v):
        """Reject negative gaps."""
        if any(gap < 0 for gap in v):
            raise ValueError("spacings must be non-negative")
        return v

    def effective_keep(self) -> int:
        """Number of artifacts this tier tries to claim."""
        if self.spacings:
            if self.keep is None:
                return len(self.spacings)
            return min(self.keep, len(self.spacings))
        return self.keep or 0

    def gap_for(self, pick_index: int) -> float:
        """
        Minimum gap in seconds before the pick at ``pick_index`` (0-based).

        The first pick always takes the newest candidate.
        """
        if pick_index <= 0:
            return 0.0
        if self.spacings:
            return float(self.spacings[min(pick_index - 1, len(self.spacings) - 1)])
        return self.min_spacing_seconds * max(1.0, self.growth) ** (pick_index - 1)


@dataclass
class RetentionPlan:
    """Keep/delete decision for a pool of artifacts, newest first."""

    keep: list[BackupArtifact] = field(default_factory=list)
    delete: list[BackupArtifact] = field(default_factory=list)
    claims: dict[str, str] = field(default_factory=dict)
    tiered: bool = False

    @property
    def kept_names(self) -> list[str]:
        return [a.name for a in self.keep]


class PruneResult(BaseModel):
    """Result of applying a retention plan."""

    success: bool = Field(default=True, description="Whether every deletion succeeded")
    kept_count: int = Field(default=0, description="Artifacts kept")
    deleted_count: int = Field(default=0, description="Artifacts deleted")
    freed_bytes: int = Field(default=0, description="Bytes of storage freed")
    deleted: list[str] = Field(default_factory=list, description="Deleted file names")
    errors: list[str] = Field(default_factory=list, description="Any errors encountered")
