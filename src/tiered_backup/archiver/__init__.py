"""
Tiered Backup Archiver Module.

Provides the exclusion-aware directory walk and the streaming zip writer.
"""

from .archiver import ArchiveStats, Archiver, format_progress, progress_percent
from .exclusions import LOCK_FILE_NAME, ExclusionSet

__all__ = [
    "Archiver",
    "ArchiveStats",
    "ExclusionSet",
    "LOCK_FILE_NAME",
    "format_progress",
    "progress_percent",
]
