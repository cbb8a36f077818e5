"""Orchestrator module for backup run coordination."""

from tiered_backup.orchestrator.bracket import (
    CallableBracket,
    CommandBracket,
    NoopBracket,
    ShellCommandRunner,
    SyncContext,
    WriteBracket,
)
from tiered_backup.orchestrator.core import BackupOrchestrator

__all__ = [
    "BackupOrchestrator",
    "SyncContext",
    "WriteBracket",
    "NoopBracket",
    "CallableBracket",
    "CommandBracket",
    "ShellCommandRunner",
]
