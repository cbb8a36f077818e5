"""Tests for the backup run guard and last-run record."""

import json
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

from tiered_backup.core.models import BackupResult, LastBackupInfo, StateSnapshot
from tiered_backup.state.manager import BackupState


class TestRunGuard:
    """Tests for the single-flight guard."""

    def test_second_begin_rejected(self) -> None:
        state = BackupState()

        assert state.try_begin() is True
        assert state.is_running is True
        assert state.try_begin() is False

        state.finish()
        assert state.is_running is False
        assert state.try_begin() is True
        state.finish()

    def test_guard_is_non_blocking_across_threads(self) -> None:
        """Test that a second thread is refused immediately while a run is active."""
        state = BackupState()
        state.try_begin()
        outcome = []

        worker = threading.Thread(target=lambda: outcome.append(state.try_begin()))
        worker.start()
        worker.join(timeout=2)

        assert outcome == [False]
        state.finish()


class TestLastBackupInfo:
    """Tests for recording the last run."""

    def test_record_in_memory(self) -> None:
        state = BackupState()
        info = LastBackupInfo.from_result(
            BackupResult(success=True, files_count=3, total_bytes=2048, message="OK"), 1.23456
        )

        state.record(info)

        assert state.last_info == info
        assert state.last_info.duration_seconds == 1.235
        assert state.state_file is None

    def test_record_persists_and_reloads(self, temp_dir: Path) -> None:
        """Test that a new state object picks up the persisted record."""
        state_file = temp_dir / "state" / "last.json"
        state = BackupState(state_file)
        state.record(LastBackupInfo(success=False, message="disk full"))

        reloaded = BackupState(state_file)

        assert reloaded.last_info is not None
        assert reloaded.last_info.success is False
        assert reloaded.last_info.message == "disk full"
        assert json.loads(state_file.read_text())["last_backup"]["message"] == "disk full"
        assert not state_file.with_name("last.json.tmp").exists()

    def test_corrupt_state_file_ignored(self, temp_dir: Path, caplog) -> None:
        state_file = temp_dir / "last.json"
        state_file.write_text("{not json")

        assert BackupState.load_last_info(state_file) is None
        assert "Ignoring unreadable backup state" in caplog.text

    def test_missing_state_file(self, temp_dir: Path) -> None:
        assert BackupState(temp_dir / "none.json").last_info is None

    def test_reset(self) -> None:
        state = BackupState()
        state.record(LastBackupInfo(success=True))

        state.reset()

        assert state.last_info is None


class TestSharedSnapshot:
    """Tests for the state other processes read."""

    def test_running_flag_persisted(self, temp_dir: Path) -> None:
        state_file = temp_dir / "state.json"
        state = BackupState(state_file)

        state.try_begin()
        assert BackupState.load_snapshot(state_file).running is True

        state.finish()
        assert BackupState.load_snapshot(state_file).running is False

    def test_rejected_begin_keeps_running_flag(self, temp_dir: Path) -> None:
        state_file = temp_dir / "state.json"
        state = BackupState(state_file)
        state.try_begin()

        assert state.try_begin() is False
        assert BackupState.load_snapshot(state_file).running is True
        state.finish()

    def test_next_run_persisted_and_cleared(self, temp_dir: Path) -> None:
        state_file = temp_dir / "state.json"
        state = BackupState(state_file)
        due = datetime(2024, 11, 15, 18, 0, tzinfo=timezone.utc)

        state.set_next_run(due)
        snapshot = BackupState.load_snapshot(state_file)

        assert state.next_run_at == due
        assert snapshot.next_run_at == due.isoformat()
        assert snapshot.seconds_until_next_run(due - timedelta(hours=2)) == 7200

        state.set_next_run(None)
        assert BackupState.load_snapshot(state_file).next_run_at is None

    def test_writers_keep_each_others_fields(self, temp_dir: Path) -> None:
        """Test that a second process recording a run does not erase the schedule."""
        state_file = temp_dir / "state.json"
        service = BackupState(state_file)
        service.set_next_run(datetime(2024, 11, 15, 18, 0, tzinfo=timezone.utc))

        manual = BackupState(state_file)
        manual.try_begin()
        manual.record(LastBackupInfo(success=True, message="OK"))
        manual.finish()

        snapshot = BackupState.load_snapshot(state_file)
        assert snapshot.next_run_at is not None
        assert snapshot.last_backup.message == "OK"
        assert snapshot.running is False

    def test_past_due_time_reports_zero(self) -> None:
        snapshot = StateSnapshot(next_run_at="2024-11-15T12:00:00+00:00")

        assert snapshot.seconds_until_next_run(
            datetime(2024, 11, 15, 13, 0, tzinfo=timezone.utc)
        ) == 0.0

    def test_no_file_gives_empty_snapshot(self, temp_dir: Path) -> None:
        snapshot = BackupState.load_snapshot(temp_dir / "none.json")

        assert snapshot.last_backup is None
        assert snapshot.running is False
        assert snapshot.seconds_until_next_run() is None
