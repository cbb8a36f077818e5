"""Pytest configuration and fixtures."""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Generator

import pytest

from tiered_backup.config.settings import CONFIG_ENV_VAR, BackupSettings
from tiered_backup.retention.models import BackupArtifact
from tiered_backup.retention.naming import format_artifact_name

# Never pick up a developer's config file during tests
os.environ.pop(CONFIG_ENV_VAR, None)

FIXED_NOW = datetime(2024, 11, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def server_root(temp_dir: Path) -> Path:
    """Provide a server root with a small world directory."""
    world = temp_dir / "world"
    (world / "region").mkdir(parents=True)
    (world / "cache").mkdir()

    (world / "level.dat").write_bytes(b"level-data" * 100)
    (world / "session.lock").write_bytes(b"lock")
    (world / "region" / "r.0.0.mca").write_bytes(b"\x00\x01" * 2048)
    (world / "region" / "r.0.1.mca").write_bytes(b"\x02\x03" * 2048)
    (world / "cache" / "tmp.bin").write_bytes(b"cache")
    (world / "debug.log").write_text("log line\n")

    return temp_dir


@pytest.fixture
def settings(server_root: Path) -> BackupSettings:
    """Provide settings that back up the fixture world."""
    return BackupSettings(
        root_dir=str(server_root),
        target_save_paths=["world"],
        output_dir="backups",
        notify_players=False,
    )


@pytest.fixture
def now() -> datetime:
    """Fixed reference instant for retention and naming."""
    return FIXED_NOW


@pytest.fixture
def make_artifact() -> Callable[..., BackupArtifact]:
    """Build an in-memory artifact of a given age in hours."""

    def _make(age_hours: float, now: datetime = FIXED_NOW, size: int = 1024) -> BackupArtifact:
        timestamp = now - timedelta(hours=age_hours)
        return BackupArtifact(
            path=Path("/backups") / format_artifact_name("Backup", timestamp),
            size_bytes=size,
            modified_at=timestamp,
            timestamp=timestamp,
        )

    return _make


@pytest.fixture
def write_artifacts() -> Callable[..., list[Path]]:
    """Create artifact files named for the given ages in hours."""

    def _write(directory: Path, ages_hours: list[float], now: datetime = FIXED_NOW) -> list[Path]:
        directory.mkdir(parents=True, exist_ok=True)
        paths = []
        for age in ages_hours:
            path = directory / format_artifact_name("Backup", now - timedelta(hours=age))
            path.write_bytes(b"x" * 128)
            paths.append(path)
        return paths

    return _write
