"""
Branch synchronization engine.

Fetches remote state, classifies every local branch against its upstream,
fast-forwards what can be advanced safely, prunes branches whose upstream
is gone and restores the user's checkout.

Example:
    >>> from gitup.core.git import GitGateway
    >>> from gitup.core.sync import SyncConfig, SyncExecutor
    >>> executor = SyncExecutor(GitGateway(), SyncConfig(), fallback_branch="main")
    >>> report = executor.run()
    >>> print(report.summary())
"""

from gitup.core.sync.classifier import BranchClassifier
from gitup.core.sync.errors import (
    BranchActionError,
    FatalFetchError,
    RestorationError,
    SyncError,
)
from gitup.core.sync.executor import SyncExecutor
from gitup.core.sync.models import (
    ActionType,
    BranchAction,
    BranchState,
    BranchStatus,
    SyncConfig,
    SyncOutcome,
    SyncPhase,
    SyncReport,
    WorkingState,
)
from gitup.core.sync.planner import build_plan, plan_branch

__all__ = [
    "ActionType",
    "BranchAction",
    "BranchActionError",
    "BranchClassifier",
    "BranchState",
    "BranchStatus",
    "FatalFetchError",
    "RestorationError",
    "SyncConfig",
    "SyncError",
    "SyncExecutor",
    "SyncOutcome",
    "SyncPhase",
    "SyncReport",
    "WorkingState",
    "build_plan",
    "plan_branch",
]
