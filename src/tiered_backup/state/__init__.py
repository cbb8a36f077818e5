"""State module for the backup run guard and last-run record."""

from tiered_backup.state.manager import BackupState

__all__ = ["BackupState"]
