"""
Tiered Backup - Timestamped Archive Snapshots with Tiered Retention.

Snapshots a set of directories into zip artifacts and prunes old
artifacts with a multi-tier retention policy under a total budget.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
