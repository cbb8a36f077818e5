"""
Automations module.

Provides the interval scheduler that triggers automatic backups.
"""

from tiered_backup.automations.scheduler import BackupScheduler, SchedulerStatus

__all__ = ["BackupScheduler", "SchedulerStatus"]
