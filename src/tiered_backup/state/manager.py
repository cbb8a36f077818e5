"""
Backup State - single-flight guard, last-run record and next scheduled run.

One BackupState is created at process start and handed to the
orchestrator. It owns:
- the lock that admits at most one backup run at a time
- the most recent LastBackupInfo
- the next automatic backup time, when a scheduler reports one

With a state file set, all three are persisted to JSON so status
queries from another process can read them.
"""

import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from tiered_backup.core.models import LastBackupInfo, StateSnapshot

logger = logging.getLogger(__name__)


class BackupState:
    """
    Process-wide backup run state.

    The run guard is non-blocking: a caller either enters the running
    state immediately or is told the system is busy. The last-run record
    is replaced by a single assignment and can be read at any time
    without taking the guard.
    """

    def __init__(self, state_file: Path | None = None):
        """
        Initialize backup state.

        Args:
            state_file: Optional JSON file shared with status queries
        """
        self._guard = threading.Lock()
        self._io_lock = threading.Lock()
        self._state_file = state_file
        self._last_info: LastBackupInfo | None = None
        self._next_run_at: datetime | None = None
        if state_file is not None:
            self._last_info = self.load_last_info(state_file)

    @property
    def is_running(self) -> bool:
        return self._guard.locked()

    @property
    def last_info(self) -> LastBackupInfo | None:
        return self._last_info

    @property
    def next_run_at(self) -> datetime | None:
        return self._next_run_at

    @property
    def state_file(self) -> Path | None:
        return self._state_file

    def try_begin(self) -> bool:
        """Enter the running state; False if a run is already active."""
        if not self._guard.acquire(blocking=False):
            return False
        self._save(running=True)
        return True

    def finish(self) -> None:
        """Leave the running state."""
        self._save(running=False)
        self._guard.release()

    def record(self, info: LastBackupInfo) -> None:
        """Replace the last-run record and persist it if a state file is set."""
        self._last_info = info
        self._save(last_backup=info.model_dump())

    def set_next_run(self, when: datetime | None) -> None:
        """Publish when the next automatic backup is due; None clears it."""
        self._next_run_at = when
        self._save(next_run_at=when.isoformat() if when else None)

    def reset(self) -> None:
        """Forget the last-run record (in memory only)."""
        self._last_info = None

    def _save(self, **changes: Any) -> None:
        """
        Merge ``changes`` into the state file atomically.

        Keys written by other processes are preserved. Failures are
        logged, not raised.
        """
        path = self._state_file
        if path is None:
            return
        tmp_path = path.with_name(f"{path.name}.tmp")
        with self._io_lock:
            data: dict[str, Any] = {}
            if path.exists():
                try:
                    loaded = json.loads(path.read_text())
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning(f"Replacing unreadable backup state {path}: {e}")
                else:
                    if isinstance(loaded, dict):
                        data = loaded
            data.update(changes)
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(json.dumps(data, indent=2))
                os.replace(tmp_path, path)
            except OSError as e:
                logger.warning(f"Could not persist backup state to {path}: {e}")

    @staticmethod
    def load_snapshot(state_file: Path) -> StateSnapshot:
        """Read the state file; an empty snapshot if absent or unreadable."""
        if not state_file.exists():
            return StateSnapshot()
        try:
            return StateSnapshot.model_validate(json.loads(state_file.read_text()))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable backup state {state_file}: {e}")
            return StateSnapshot()

    @staticmethod
    def load_last_info(state_file: Path) -> LastBackupInfo | None:
        """Read a persisted last-run record, or None if absent or unreadable."""
        return BackupState.load_snapshot(state_file).last_backup
