"""Tests for the sync planner."""

import pytest

from gitup.core.sync import (
    ActionType,
    BranchState,
    BranchStatus,
    SyncConfig,
    build_plan,
    plan_branch,
)


def status(branch: str, state: BranchState, **kwargs) -> BranchStatus:
    return BranchStatus(branch=branch, state=state, local_commit="a" * 40, **kwargs)


class TestPlanBranch:
    """Test the status -> action mapping."""

    @pytest.mark.parametrize(
        ("state", "reason"),
        [
            (BranchState.UP_TO_DATE, "up to date"),
            (BranchState.NO_UPSTREAM, "no upstream"),
        ],
    )
    def test_skips(self, state, reason):
        action = plan_branch(status("main", state))

        assert action.type == ActionType.SKIP
        assert action.reason == reason

    def test_fast_forward_targets_upstream(self):
        action = plan_branch(
            status("main", BranchState.FAST_FORWARDABLE, upstream_commit="b" * 40)
        )

        assert action.type == ActionType.FAST_FORWARD
        assert action.target == "b" * 40

    def test_upstream_gone_prunes(self):
        action = plan_branch(status("feature", BranchState.UPSTREAM_GONE, merged=False))

        assert action.type == ActionType.PRUNE

    def test_diverged_reports_conflict(self):
        action = plan_branch(
            status("topic", BranchState.DIVERGED, local_ahead=1, remote_ahead=1)
        )

        assert action.type == ActionType.REPORT_CONFLICT
        assert action.status.local_ahead == 1

    def test_pruning_disabled(self):
        action = plan_branch(
            status("feature", BranchState.UPSTREAM_GONE), SyncConfig(prune=False)
        )

        assert action.type == ActionType.SKIP
        assert action.reason == "upstream gone, pruning disabled"

    def test_keep_unmerged(self):
        config = SyncConfig(prune_unmerged=False)

        unmerged = plan_branch(status("wip", BranchState.UPSTREAM_GONE, merged=False), config)
        merged = plan_branch(status("done", BranchState.UPSTREAM_GONE, merged=True), config)
        unknown = plan_branch(status("odd", BranchState.UPSTREAM_GONE), config)

        assert unmerged.type == ActionType.SKIP
        assert unmerged.reason == "upstream gone, not merged"
        assert merged.type == ActionType.PRUNE
        assert unknown.type == ActionType.PRUNE

    def test_dry_run_does_not_change_plan(self):
        action = plan_branch(
            status("main", BranchState.FAST_FORWARDABLE, upstream_commit="b" * 40),
            SyncConfig(dry_run=True),
        )

        assert action.type == ActionType.FAST_FORWARD


class TestBuildPlan:
    """Test whole-plan construction."""

    def test_ordered_by_branch_name(self):
        statuses = [
            status("zeta", BranchState.UP_TO_DATE),
            status("alpha", BranchState.NO_UPSTREAM),
            status("feature/x", BranchState.UPSTREAM_GONE),
            status("main", BranchState.FAST_FORWARDABLE, upstream_commit="b" * 40),
        ]

        plan = build_plan(statuses)

        assert [a.branch for a in plan] == ["alpha", "feature/x", "main", "zeta"]
        assert [a.type for a in plan] == [
            ActionType.SKIP,
            ActionType.PRUNE,
            ActionType.FAST_FORWARD,
            ActionType.SKIP,
        ]

    def test_empty(self):
        assert build_plan([]) == []
