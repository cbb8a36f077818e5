"""
Artifact pruning.

Lists the artifacts in an output directory, plans retention with the
tiered engine and deletes the losers.
"""

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Sequence

from tiered_backup.core.exceptions import RetentionError

from .engine import plan_retention
from .models import BackupArtifact, PruneResult, RetentionPlan, RetentionTier
from .naming import is_artifact_name

logger = logging.getLogger(__name__)


def list_artifacts(directory: Path, prefix: str, extension: str = "zip") -> list[BackupArtifact]:
    """
    Snapshot the artifacts currently in ``directory``.

    Files that disappear between listing and stat are skipped.

    Raises:
        RetentionError: If the directory cannot be listed
    """
    try:
        entries = list(directory.iterdir())
    except FileNotFoundError:
        return []
    except OSError as e:
        raise RetentionError(f"Cannot list backup directory: {e}", directory=str(directory)) from e

    artifacts = []
    for entry in entries:
        if not is_artifact_name(entry.name, prefix, extension):
            continue
        try:
            if entry.is_file():
                artifacts.append(BackupArtifact.from_path(entry))
        except OSError:
            continue
    return artifacts


def apply_plan(plan: RetentionPlan, dry_run: bool = False) -> PruneResult:
    """
    Delete every artifact the plan does not keep.

    A failed deletion is logged as a warning and does not stop the
    remaining deletions.
    """
    result = PruneResult(kept_count=len(plan.keep))

    for artifact in plan.delete:
        if dry_run:
            result.deleted_count += 1
            result.freed_bytes += artifact.size_bytes
            result.deleted.append(artifact.name)
            continue
        try:
            artifact.path.unlink()
        except OSError as e:
            logger.warning(f"Could not delete old backup {artifact.name}: {e}")
            result.success = False
            result.errors.append(f"Failed to delete {artifact.name}: {e}")
            continue
        logger.info(f"Deleted old backup {artifact.name}")
        result.deleted_count += 1
        result.freed_bytes += artifact.size_bytes
        result.deleted.append(artifact.name)

    return result


class RetentionPruner:
    """
    Applies a retention configuration to one artifact family.

    Uses the tiered policy when tiers are configured and the budget is
    not zero, otherwise keeps the newest ``max_backups`` artifacts.
    """

    def __init__(
        self,
        prefix: str,
        extension: str = "zip",
        tiers: Sequence[RetentionTier] = (),
        max_total: int | None = None,
        max_backups: int = 10,
    ):
        """
        Initialize the pruner.

        Args:
            prefix: Artifact name prefix
            extension: Artifact file extension
            tiers: Retention tiers in evaluation order
            max_total: Total kept-artifact budget for the tiered policy
            max_backups: Keep count for the simple policy
        """
        self.prefix = prefix
        self.extension = extension
        self.tiers = list(tiers)
        self.max_total = max_total
        self.max_backups = max_backups
        self._lock = threading.RLock()

    def plan(self, directory: Path, now: datetime | None = None) -> RetentionPlan:
        """Compute the plan for ``directory`` without deleting anything."""
        artifacts = list_artifacts(directory, self.prefix, self.extension)
        return plan_retention(
            artifacts,
            self.tiers,
            max_total=self.max_total,
            now=now,
            max_backups=self.max_backups,
        )

    def prune(
        self,
        directory: Path,
        now: datetime | None = None,
        dry_run: bool = False,
    ) -> PruneResult:
        """
        Plan and apply retention for ``directory``.

        Args:
            directory: Backup output directory
            now: Reference instant for tier windows
            dry_run: If True, report deletions without performing them

        Returns:
            PruneResult with operation details
        """
        with self._lock:
            try:
                plan = self.plan(directory, now=now)
            except RetentionError as e:
                logger.warning(str(e))
                return PruneResult(success=False, errors=[str(e)])

            result = apply_plan(plan, dry_run=dry_run)
            if result.deleted_count:
                policy = "tiered" if plan.tiered else "max-backups"
                logger.info(
                    f"Retention ({policy}) kept {result.kept_count}, "
                    f"deleted {result.deleted_count} backup(s)"
                )
            return result
