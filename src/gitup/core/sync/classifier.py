"""
Branch classification.

Decides how a local branch relates to its upstream using nothing but
commit ancestry, so the same ref state always yields the same status.
"""

from __future__ import annotations

import logging

from gitup.core.git import GitGateway, LocalBranch
from gitup.core.sync.models import BranchState, BranchStatus

logger = logging.getLogger(__name__)


class BranchClassifier:
    """
    Computes a BranchStatus for each local branch.

    Args:
        gateway: Git gateway used to resolve refs and check ancestry
        base_ref: Ref that gone branches are checked against to decide
            whether they were merged (usually the fallback branch)
    """

    def __init__(self, gateway: GitGateway, base_ref: str | None = None) -> None:
        self.gateway = gateway
        self.base_ref = base_ref
        self._base_commit: str | None = None

    def _resolve_base(self) -> str | None:
        if self._base_commit is None and self.base_ref:
            self._base_commit = self.gateway.resolve_commit(self.base_ref)
        return self._base_commit

    def classify(self, branch: LocalBranch) -> BranchStatus:
        """
        Classify one branch.

        Raises:
            VcsError: If ancestry cannot be computed
        """
        if branch.upstream is None:
            return BranchStatus(
                branch=branch.name,
                state=BranchState.NO_UPSTREAM,
                local_commit=branch.commit,
            )

        upstream_name = str(branch.upstream)
        upstream_commit = self.gateway.resolve_commit(branch.upstream.ref)

        if upstream_commit is None:
            return BranchStatus(
                branch=branch.name,
                state=BranchState.UPSTREAM_GONE,
                local_commit=branch.commit,
                upstream=upstream_name,
                merged=self._is_merged(branch),
            )

        status = BranchStatus(
            branch=branch.name,
            state=BranchState.UP_TO_DATE,
            local_commit=branch.commit,
            upstream=upstream_name,
            upstream_commit=upstream_commit,
        )

        if branch.commit == upstream_commit:
            return status

        if self.gateway.is_ancestor(branch.commit, upstream_commit):
            return status.model_copy(update={"state": BranchState.FAST_FORWARDABLE})

        if self.gateway.is_ancestor(upstream_commit, branch.commit):
            # Local has unpushed commits only; there is nothing to advance.
            logger.debug("%s is ahead of %s", branch.name, upstream_name)
            return status

        local_ahead, remote_ahead = self.gateway.count_divergence(branch.commit, upstream_commit)
        return status.model_copy(
            update={
                "state": BranchState.DIVERGED,
                "local_ahead": local_ahead,
                "remote_ahead": remote_ahead,
            }
        )

    def _is_merged(self, branch: LocalBranch) -> bool | None:
        """Check whether a branch is contained in the base ref, None if unknown."""
        base_commit = self._resolve_base()
        if base_commit is None:
            return None
        return self.gateway.is_ancestor(branch.commit, base_commit)
