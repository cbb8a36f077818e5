"""
Tiered Backup Retention Module.

Provides artifact naming, the tiered retention planner and the
pruner that deletes artifacts outside the plan.
"""

from .engine import plan_retention, plan_simple_retention
from .models import BackupArtifact, PruneResult, RetentionPlan, RetentionTier
from .naming import format_artifact_name, is_artifact_name, parse_artifact_timestamp
from .pruner import RetentionPruner, apply_plan, list_artifacts

__all__ = [
    # Models
    "BackupArtifact",
    "RetentionTier",
    "RetentionPlan",
    "PruneResult",
    # Naming
    "format_artifact_name",
    "parse_artifact_timestamp",
    "is_artifact_name",
    # Planning
    "plan_retention",
    "plan_simple_retention",
    # Pruning
    "RetentionPruner",
    "apply_plan",
    "list_artifacts",
]
