"""
Orchestrator Core - one backup run end to end.

A run validates targets, counts files, freezes writes on the
synchronous context, streams the archive, resumes writes (always),
prunes old artifacts and records the outcome. At most one run is
active at a time; overlapping requests are rejected, not queued.
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from tiered_backup.archiver.archiver import Archiver
from tiered_backup.config.settings import BackupSettings
from tiered_backup.core.exceptions import (
    ArchiveError,
    ConfigurationError,
    TieredBackupError,
    format_exception,
)
from tiered_backup.core.models import BackupResult, LastBackupInfo, bytes_to_human
from tiered_backup.notifications.dispatcher import NotificationDispatcher, build_dispatcher
from tiered_backup.notifications.models import NotificationEvent, NotificationSeverity
from tiered_backup.orchestrator.bracket import (
    CommandBracket,
    NoopBracket,
    ShellCommandRunner,
    SyncContext,
    WriteBracket,
)
from tiered_backup.retention.models import PruneResult, RetentionTier
from tiered_backup.retention.naming import format_artifact_name
from tiered_backup.retention.pruner import RetentionPruner
from tiered_backup.state.manager import BackupState

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BackupOrchestrator:
    """
    Coordinates archiving and retention for one backup configuration.

    Features:
    - Non-blocking single-flight guard shared through BackupState
    - Freeze/resume bracket marshalled onto a SyncContext
    - Resume is attempted even when archiving fails
    - Structured BackupResult instead of raised exceptions
    """

    def __init__(
        self,
        settings: BackupSettings,
        state: BackupState | None = None,
        bracket: WriteBracket | None = None,
        context: SyncContext | None = None,
        notifier: NotificationDispatcher | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize the orchestrator.

        Args:
            settings: Backup configuration
            state: Shared run state (guard + last result)
            bracket: Freeze/resume capability
            context: Context the bracket commands run on
            notifier: Dispatcher for operator notifications
            clock: Source of the current time (artifact names, tier windows)
        """
        self._settings = settings
        self._state = state or BackupState()
        self._bracket = bracket or NoopBracket()
        self._context = context or SyncContext()
        self._notifier = notifier or NotificationDispatcher(enabled=False)
        self._clock = clock
        self._worker: ThreadPoolExecutor | None = None

    @classmethod
    def from_settings(cls, settings: BackupSettings) -> "BackupOrchestrator":
        """Wire an orchestrator from configuration alone."""
        if settings.freeze_commands or settings.resume_commands:
            bracket: WriteBracket = CommandBracket(
                ShellCommandRunner(timeout=settings.command_timeout_seconds),
                freeze_commands=settings.freeze_commands,
                resume_commands=settings.resume_commands,
            )
        else:
            bracket = NoopBracket()

        notifications = settings.notifications
        notifier = build_dispatcher(
            enabled=settings.notify_players,
            console=notifications.console,
            webhook_url=notifications.webhook_url,
            webhook_timeout_seconds=notifications.webhook_timeout_seconds,
        )
        return cls(
            settings,
            state=BackupState(settings.resolve_state_file()),
            bracket=bracket,
            notifier=notifier,
        )

    @property
    def settings(self) -> BackupSettings:
        return self._settings

    @property
    def state(self) -> BackupState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    @property
    def last_info(self) -> LastBackupInfo | None:
        return self._state.last_info

    def update_settings(self, settings: BackupSettings) -> None:
        """
        Apply reloaded settings from the next run on.

        A run in progress finishes with the settings it started with.
        Bracket commands and notification channels stay as constructed.
        """
        self._settings = settings
        self._notifier.enabled = settings.notify_players

    def run_now(self) -> BackupResult:
        """
        Run a backup on the calling thread.

        Returns:
            BackupResult; rejected immediately if a run is active
        """
        if not self._state.try_begin():
            return self._reject()
        try:
            return self._run_guarded()
        finally:
            self._state.finish()

    def start(self) -> "Future[BackupResult]":
        """
        Run a backup on the worker thread.

        Returns:
            Future resolving to the BackupResult; already resolved to a
            rejected result if a run is active
        """
        if not self._state.try_begin():
            future: Future[BackupResult] = Future()
            future.set_result(self._reject())
            return future

        if self._worker is None:
            self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="backup-worker")
        try:
            return self._worker.submit(self._run_and_release)
        except RuntimeError:
            self._state.finish()
            raise

    def close(self) -> None:
        """Shut down worker and context threads and notification channels."""
        if self._worker is not None:
            self._worker.shutdown(wait=True)
            self._worker = None
        self._context.close()
        self._notifier.close()

    def resolve_targets(self, root: Path) -> list[Path]:
        """
        Existing target paths under ``root``; missing ones are dropped with a warning.

        Raises:
            ConfigurationError: If no targets are configured or none exist
        """
        configured = [p for p in self._settings.targets() if p and p.strip()]
        if not configured:
            raise ConfigurationError(
                "target-save-paths is empty, backup skipped",
                config_key="target-save-paths",
            )

        targets = []
        for entry in configured:
            path = root / entry.strip()
            if path.exists():
                targets.append(path)
            else:
                logger.warning(f"Backup target does not exist: {entry}")

        if not targets:
            raise ConfigurationError("No valid backup targets", config_key="target-save-paths")
        return targets

    def _reject(self) -> BackupResult:
        logger.info("Backup already in progress, request rejected")
        self._notify(
            NotificationEvent.BACKUP_REJECTED,
            "A backup is already in progress, please wait...",
            NotificationSeverity.WARNING,
        )
        return BackupResult.rejected("Backup already in progress")

    def _run_and_release(self) -> BackupResult:
        try:
            return self._run_guarded()
        finally:
            self._state.finish()

    def _run_guarded(self) -> BackupResult:
        """Execute one run and record its outcome; never raises."""
        started = time.monotonic()
        try:
            result = self._execute()
        except TieredBackupError as e:
            logger.error(f"Backup aborted: {e}")
            result = BackupResult.failed(format_exception(e))
        except Exception as e:
            logger.exception("Unexpected backup failure")
            result = BackupResult.failed(format_exception(e))

        duration = time.monotonic() - started
        self._state.record(LastBackupInfo.from_result(result, duration))
        logger.info(
            f"Backup {'completed' if result.success else 'failed'}, "
            f"files: {result.files_count}, size: {bytes_to_human(result.total_bytes)}, "
            f"took: {duration:.1f}s"
        )
        return result

    def _execute(self) -> BackupResult:
        settings = self._settings

        # Configuration is fully validated before any I/O
        root = settings.resolve_root()
        targets = self.resolve_targets(root)
        tiers = settings.retention_tiers()

        output_dir = settings.resolve_output_dir()
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArchiveError(f"Cannot create output directory: {e}", path=str(output_dir)) from e

        now = self._clock()
        artifact_path = output_dir / format_artifact_name(
            settings.archive_prefix, now, settings.archive_extension
        )
        archiver = Archiver(
            root,
            exclusions=settings.exclusion_set(),
            progress_every=settings.progress_every_files,
            buffer_size_kb=settings.buffer_size_kb,
            progress_callback=self._notify_progress,
        )

        total_files = archiver.count_files(targets)
        logger.info(f"Starting backup of {len(targets)} target(s), {total_files} file(s) to {artifact_path}")
        self._notify(
            NotificationEvent.BACKUP_STARTED,
            "Backing up, the server may stall briefly...",
        )

        self._run_bracket("freeze", self._bracket.freeze)
        stats = None
        failure = None
        try:
            stats = archiver.write_archive(targets, artifact_path, total_files)
        except ArchiveError as e:
            failure = e
            logger.error(f"Backup failed: {e}")
        finally:
            self._run_bracket("resume", self._bracket.resume)

        if stats is not None:
            logger.info(
                f"Archived {stats.files_written} file(s), "
                f"read {bytes_to_human(stats.source_bytes)}, "
                f"wrote {bytes_to_human(stats.total_bytes)}, "
                f"skipped: {stats.skipped_files}, truncated: {stats.truncated_files}"
            )

        self._prune(settings, output_dir, tiers)

        if stats is None:
            self._notify(
                NotificationEvent.BACKUP_FAILED, "Backup failed.", NotificationSeverity.ERROR
            )
            return BackupResult.failed(format_exception(failure) if failure else "FAILED")

        self._notify(
            NotificationEvent.BACKUP_COMPLETED,
            "Backup complete.",
            NotificationSeverity.SUCCESS,
            files=stats.files_written,
            bytes=stats.total_bytes,
        )
        return BackupResult(
            success=True,
            files_count=stats.files_written,
            total_bytes=stats.total_bytes,
            message="OK",
            artifact_path=artifact_path,
        )

    def _run_bracket(self, name: str, command: Callable[[], None]) -> None:
        """Run a bracket step on the sync context; failures are logged only."""
        try:
            self._context.call(command)
        except Exception as e:
            logger.warning(f"Write {name} command failed: {format_exception(e)}")

    def _prune(
        self, settings: BackupSettings, output_dir: Path, tiers: list[RetentionTier]
    ) -> PruneResult:
        pruner = RetentionPruner(
            prefix=settings.archive_prefix,
            extension=settings.archive_extension,
            tiers=tiers,
            max_total=settings.retention.max_total,
            max_backups=max(0, settings.max_backups),
        )
        return pruner.prune(output_dir, now=self._clock())

    def _notify_progress(self, message: str) -> None:
        self._notify(NotificationEvent.BACKUP_PROGRESS, message)

    def _notify(
        self,
        event: NotificationEvent,
        message: str,
        severity: NotificationSeverity = NotificationSeverity.INFO,
        **metadata,
    ) -> None:
        try:
            self._notifier.send(event, message, severity, **metadata)
        except Exception as e:
            logger.warning(f"Notification failed: {e}")
