"""
Tiered retention planning.

Decides which backup artifacts to keep. Planning is a pure function of
the artifact pool, the tier list, the total budget and a reference
"now"; nothing here touches the filesystem.

Tiers are evaluated in configured order. Each tier claims artifacts
from its window ``[now - window, upper)``, where ``upper`` starts
unbounded and is tightened to each windowed tier's lower bound, so later
tiers only see strictly older history and no artifact is claimed twice.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, Sequence

from .models import BackupArtifact, RetentionPlan, RetentionTier

logger = logging.getLogger(__name__)

BUDGET_CLAIM = "budget"
SIMPLE_CLAIM = "max-backups"


def _newest_first(artifacts: Iterable[BackupArtifact]) -> list[BackupArtifact]:
    return sorted(artifacts, key=lambda a: (a.timestamp, a.name), reverse=True)


def _select_for_tier(
    candidates: list[BackupArtifact],
    tier: RetentionTier,
) -> list[BackupArtifact]:
    """
    Pick artifacts for one tier from its (newest-first) window.

    The first pick is the newest candidate. Each later pick is the newest
    candidate at least one gap older than the previous pick; when no
    candidate satisfies the gap, the oldest remaining candidate is taken
    as a placeholder so the tier keeps aging forward.
    """
    target = tier.effective_keep()
    remaining = list(candidates)
    picks: list[BackupArtifact] = []

    while len(picks) < target and remaining:
        if not picks:
            choice = remaining[0]
        else:
            previous = picks[-1].timestamp
            gap = tier.gap_for(len(picks))
            choice = next(
                (a for a in remaining if (previous - a.timestamp).total_seconds() >= gap),
                None,
            )
            if choice is None:
                choice = remaining[-1]
        picks.append(choice)
        remaining.remove(choice)

    return picks


def plan_simple_retention(
    artifacts: Iterable[BackupArtifact],
    max_backups: int,
) -> RetentionPlan:
    """
    Keep the newest ``max_backups`` artifacts.

    A ``max_backups`` of zero (or less) disables pruning entirely.
    """
    ordered = _newest_first(artifacts)
    if max_backups <= 0:
        return RetentionPlan(keep=ordered, claims={a.name: SIMPLE_CLAIM for a in ordered})

    keep = ordered[:max_backups]
    return RetentionPlan(
        keep=keep,
        delete=ordered[max_backups:],
        claims={a.name: SIMPLE_CLAIM for a in keep},
    )


def plan_retention(
    artifacts: Iterable[BackupArtifact],
    tiers: Sequence[RetentionTier],
    max_total: int | None = None,
    now: datetime | None = None,
    max_backups: int = 10,
) -> RetentionPlan:
    """
    Compute the keep/delete plan for a pool of artifacts.

    Args:
        artifacts: Existing artifacts
        tiers: Retention tiers in evaluation order
        max_total: Total budget; positive values cap and top up the kept
            set, zero selects the simple count-based policy
        now: Reference instant (defaults to the current time)
        max_backups: Keep count for the simple policy

    Returns:
        RetentionPlan with kept and deleted artifacts, newest first
    """
    if not tiers or max_total == 0:
        return plan_simple_retention(artifacts, max_backups)

    now = now or datetime.now(timezone.utc)
    ordered = _newest_first(artifacts)
    claimed: dict[BackupArtifact, str] = {}
    upper: datetime | None = None

    for index, tier in enumerate(tiers):
        label = tier.name or f"tier-{index + 1}"
        lower = now - timedelta(seconds=tier.window_seconds) if tier.window_seconds is not None else None

        window = [
            a
            for a in ordered
            if a not in claimed
            and (lower is None or a.timestamp >= lower)
            and (upper is None or a.timestamp < upper)
        ]
        picks = _select_for_tier(window, tier)
        for artifact in picks:
            claimed[artifact] = label
        logger.debug(f"Tier {label} claimed {len(picks)} of {len(window)} candidates")

        if lower is not None:
            upper = lower if upper is None else min(upper, lower)

    selected = list(claimed)
    if max_total is not None and max_total > 0:
        if len(selected) < max_total:
            for artifact in reversed(ordered):
                if len(selected) >= max_total:
                    break
                if artifact not in claimed:
                    claimed[artifact] = BUDGET_CLAIM
                    selected.append(artifact)
        elif len(selected) > max_total:
            selected = _newest_first(selected)[:max_total]

    kept = set(selected)
    keep = [a for a in ordered if a in kept]
    return RetentionPlan(
        keep=keep,
        delete=[a for a in ordered if a not in kept],
        claims={a.name: claimed[a] for a in keep},
        tiered=True,
    )
