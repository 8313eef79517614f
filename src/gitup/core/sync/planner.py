"""
Sync planning.

Maps each BranchStatus to exactly one BranchAction. Pure: no git access.
"""

from __future__ import annotations

from collections.abc import Iterable

from gitup.core.sync.models import (
    ActionType,
    BranchAction,
    BranchState,
    BranchStatus,
    SyncConfig,
)


def plan_branch(status: BranchStatus, config: SyncConfig | None = None) -> BranchAction:
    """
    Choose the action for one branch.

    Args:
        status: Classification of the branch
        config: Run options (prune switches); defaults to SyncConfig()

    Returns:
        The action to apply
    """
    config = config or SyncConfig()

    def skip(reason: str) -> BranchAction:
        return BranchAction(
            branch=status.branch, type=ActionType.SKIP, status=status, reason=reason
        )

    if status.state == BranchState.UP_TO_DATE:
        return skip("up to date")

    if status.state == BranchState.NO_UPSTREAM:
        return skip("no upstream")

    if status.state == BranchState.FAST_FORWARDABLE:
        return BranchAction(
            branch=status.branch,
            type=ActionType.FAST_FORWARD,
            status=status,
            target=status.upstream_commit,
        )

    if status.state == BranchState.UPSTREAM_GONE:
        if not config.prune:
            return skip("upstream gone, pruning disabled")
        if status.merged is False and not config.prune_unmerged:
            return skip("upstream gone, not merged")
        return BranchAction(branch=status.branch, type=ActionType.PRUNE, status=status)

    return BranchAction(branch=status.branch, type=ActionType.REPORT_CONFLICT, status=status)


def build_plan(
    statuses: Iterable[BranchStatus], config: SyncConfig | None = None
) -> list[BranchAction]:
    """Plan every branch, ordered by branch name."""
    return [plan_branch(s, config) for s in sorted(statuses, key=lambda s: s.branch)]
