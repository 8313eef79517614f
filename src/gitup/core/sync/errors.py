"""
Error types raised during a sync run.

Only FatalFetchError ends a run. The others are caught by the executor
and recorded in the report.
"""

from __future__ import annotations

from gitup.core.git import VcsError
from gitup.core.sync.models import ActionType


class SyncError(Exception):
    """Base exception for sync failures."""

    pass


class FatalFetchError(SyncError):
    """Raised when remote state cannot be fetched; nothing has been mutated."""

    def __init__(self, cause: VcsError):
        super().__init__(f"Fetch failed, no branch was touched: {cause}")
        self.cause = cause


class BranchActionError(SyncError):
    """
    A single branch action failed; the run continues with other branches.

    `reason` keeps the failing git operation together with git's message,
    e.g. "git checkout failed: error: ...", so failures of different steps
    of one action stay distinguishable.
    """

    def __init__(self, branch: str, action: ActionType, cause: str | VcsError):
        reason = str(cause)
        super().__init__(f"{action.value} of '{branch}' failed: {reason}")
        self.branch = branch
        self.action = action
        self.reason = reason
        self.command = cause.command if isinstance(cause, VcsError) else None


class RestorationError(SyncError):
    """The original checkout could not be fully restored."""

    pass
