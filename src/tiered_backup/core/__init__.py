"""
Tiered Backup Core Module.

Provides foundational result types and the exception hierarchy.
"""

__all__ = [
    "BackupResult",
    "LastBackupInfo",
    "RunStatus",
    "bytes_to_human",
    # Exceptions
    "TieredBackupError",
    "ConfigurationError",
    "DurationFormatError",
    "ArchiveError",
    "RetentionError",
    "format_exception",
]

from tiered_backup.core.exceptions import (
    ArchiveError,
    ConfigurationError,
    DurationFormatError,
    RetentionError,
    TieredBackupError,
    format_exception,
)
from tiered_backup.core.models import BackupResult, LastBackupInfo, RunStatus, bytes_to_human
