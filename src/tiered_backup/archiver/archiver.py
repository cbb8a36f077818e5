"""
Archive writer.

Walks the backup targets depth-first, skips excluded entries and
streams every remaining file into a single zip container. The same walk
is used for the counting dry pass and for writing, so progress totals
match what is written.
"""

import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator

from tiered_backup.core.exceptions import ArchiveError

from .exclusions import LOCK_FILE_NAME, ExclusionSet

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


@dataclass
class ArchiveStats:
    """Counters for one archive write."""

    files_written: int = 0
    total_bytes: int = 0
    source_bytes: int = 0
    skipped_files: int = 0
    truncated_files: int = 0
    success: bool = False


def progress_percent(done: int, total: int) -> str:
    """Percentage text with one decimal, clamped to 0%/100%; empty when total is unknown."""
    if total <= 0:
        return ""
    percent = done * 100.0 / total
    if percent >= 100:
        return "100%"
    if percent <= 0:
        return "0%"
    return f"{percent:.1f}%"


def format_progress(done: int, total: int) -> str:
    """Progress line such as ``Backup progress: 500/1200 (41.7%) files...``."""
    detail = f"/{total} ({progress_percent(done, total)})" if total > 0 else ""
    return f"Backup progress: {done}{detail} files..."


class Archiver:
    """
    Streams backup targets into one compressed container.

    A file that cannot be opened is logged and skipped. A file whose read
    fails part way keeps the bytes already written and is counted as
    truncated. Failures on the container itself raise ArchiveError and
    remove the partial file.
    """

    MIN_BUFFER_KB = 16
    DEFAULT_BUFFER_KB = 64
    DEFAULT_PROGRESS_EVERY = 500

    def __init__(
        self,
        root: Path,
        exclusions: ExclusionSet | None = None,
        progress_every: int = DEFAULT_PROGRESS_EVERY,
        buffer_size_kb: int = DEFAULT_BUFFER_KB,
        progress_callback: ProgressCallback | None = None,
    ):
        """
        Initialize the archiver.

        Args:
            root: Directory that entry names are made relative to
            exclusions: Deny-lists applied during the walk
            progress_every: Emit progress every N written files (min 1)
            buffer_size_kb: I/O chunk size in KiB (min 16)
            progress_callback: Receives each progress message
        """
        self.root = Path(root)
        self.exclusions = exclusions or ExclusionSet()
        self.progress_every = max(1, progress_every)
        self.buffer_size = max(self.MIN_BUFFER_KB, buffer_size_kb) * 1024
        self._progress_callback = progress_callback

    def iter_files(self, path: Path) -> Iterator[Path]:
        """Yield non-excluded files under ``path`` depth-first."""
        if path.is_symlink() and path.is_dir():
            logger.debug(f"Not following directory symlink {path}")
            return
        if path.is_dir():
            if self.exclusions.excludes_dir(path.name):
                return
            try:
                children = sorted(path.iterdir(), key=lambda p: p.name)
            except OSError as e:
                logger.warning(f"Skipping unreadable directory {path}: {e}")
                return
            for child in children:
                yield from self.iter_files(child)
        elif path.exists():
            if not self.exclusions.excludes_file(path.name):
                yield path

    def count_files(self, targets: Iterable[Path]) -> int:
        """Dry pass: number of files the write pass will attempt."""
        return sum(1 for target in targets for _ in self.iter_files(target))

    def entry_name(self, file_path: Path) -> str:
        """Archive entry name: path relative to root with forward slashes."""
        try:
            name = file_path.relative_to(self.root).as_posix()
        except ValueError:
            return file_path.name
        return name or file_path.name

    def write_archive(
        self,
        targets: Iterable[Path],
        output_path: Path,
        total_files: int = 0,
    ) -> ArchiveStats:
        """
        Write all targets into a zip container at ``output_path``.

        Args:
            targets: Files or directories to archive
            output_path: Container file to create
            total_files: Estimate from count_files, used for progress

        Returns:
            ArchiveStats for the finished container

        Raises:
            ArchiveError: If the container cannot be opened or written
        """
        stats = ArchiveStats()
        container = output_path.absolute()
        try:
            stream = open(output_path, "wb", buffering=self.buffer_size)
        except OSError as e:
            raise ArchiveError(f"Cannot open archive for writing: {e}", path=str(output_path)) from e

        try:
            with stream, zipfile.ZipFile(stream, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for target in targets:
                    for file_path in self.iter_files(target):
                        if file_path.absolute() == container:
                            continue
                        if not self._write_entry(zf, file_path, stats):
                            stats.skipped_files += 1
                            continue
                        stats.files_written += 1
                        if stats.files_written % self.progress_every == 0:
                            self._report_progress(stats.files_written, total_files)
        except (OSError, zipfile.LargeZipFile) as e:
            output_path.unlink(missing_ok=True)
            raise ArchiveError(f"Archive write failed: {e}", path=str(output_path)) from e

        stats.total_bytes = output_path.stat().st_size
        stats.success = True
        return stats

    def _write_entry(self, zf: zipfile.ZipFile, file_path: Path, stats: ArchiveStats) -> bool:
        """
        Copy one file into the container.

        Returns False when the source could not be opened and no entry
        was added. Once the entry is open it stays in the container, so a
        later read failure is counted in ``truncated_files`` instead.
        """
        try:
            info = zipfile.ZipInfo.from_file(
                file_path, self.entry_name(file_path), strict_timestamps=False
            )
            source = open(file_path, "rb", buffering=self.buffer_size)
        except OSError as e:
            self._log_skip(file_path, e)
            return False

        info.compress_type = zipfile.ZIP_DEFLATED
        copied = 0
        with source, zf.open(info, "w", force_zip64=True) as dest:
            while True:
                try:
                    chunk = source.read(self.buffer_size)
                except OSError as e:
                    stats.truncated_files += 1
                    logger.warning(
                        f"Entry {info.filename} truncated after {copied} bytes: {e}"
                    )
                    break
                if not chunk:
                    break
                dest.write(chunk)
                copied += len(chunk)
        stats.source_bytes += copied
        return True

    def _log_skip(self, file_path: Path, error: OSError) -> None:
        if file_path.name.lower() != LOCK_FILE_NAME:
            logger.warning(f"Skipping file {file_path.name}: {error}")

    def _report_progress(self, done: int, total: int) -> None:
        message = format_progress(done, total)
        logger.info(message)
        if self._progress_callback is not None:
            try:
                self._progress_callback(message)
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")
