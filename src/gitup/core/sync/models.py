"""
Data models for branch synchronization.

Defines Pydantic models for branch statuses, planned actions, per-branch
outcomes and the aggregated sync report. All of them are computed fresh
on every run; none are persisted.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BranchState(str, Enum):
    """Relationship of a local branch to its upstream."""

    UP_TO_DATE = "up_to_date"
    FAST_FORWARDABLE = "fast_forwardable"
    DIVERGED = "diverged"
    UPSTREAM_GONE = "upstream_gone"
    NO_UPSTREAM = "no_upstream"


class ActionType(str, Enum):
    """What the executor does with a branch."""

    SKIP = "skip"
    FAST_FORWARD = "fast_forward"
    PRUNE = "prune"
    REPORT_CONFLICT = "report_conflict"


class SyncPhase(str, Enum):
    """Executor state machine phases."""

    IDLE = "idle"
    FETCHING = "fetching"
    EVALUATING = "evaluating"
    APPLYING = "applying"
    RESTORING = "restoring"
    DONE = "done"
    FAILED = "failed"


class SyncConfig(BaseModel):
    """
    Options for a single sync run.

    Example:
        >>> config = SyncConfig(dry_run=True)
        >>> config.prune
        True
    """

    prune: bool = Field(
        default=True,
        description="Delete local branches whose upstream is gone",
    )
    dry_run: bool = Field(
        default=False,
        description="Compute outcomes without touching any branch",
    )
    prune_unmerged: bool = Field(
        default=True,
        description="Also prune gone branches not merged into the fallback branch",
    )


class BranchStatus(BaseModel):
    """
    Classification of one local branch.

    Only the fields relevant to the state are populated: commit pair for
    FAST_FORWARDABLE, ahead counts for DIVERGED, merged for UPSTREAM_GONE.
    """

    model_config = ConfigDict(frozen=True)

    branch: str = Field(description="Local branch name")
    state: BranchState
    local_commit: str = Field(description="Commit the branch points to")
    upstream: str | None = Field(default=None, description="Upstream display name")
    upstream_commit: str | None = Field(default=None)
    local_ahead: int = Field(default=0, ge=0, description="Commits only in local")
    remote_ahead: int = Field(default=0, ge=0, description="Commits only in upstream")
    merged: bool | None = Field(
        default=None,
        description="For gone upstreams: whether the branch is merged into the fallback",
    )


class BranchAction(BaseModel):
    """A planned action for one branch, derived from its status."""

    model_config = ConfigDict(frozen=True)

    branch: str
    type: ActionType
    status: BranchStatus | None = None
    reason: str = Field(default="", description="Why the branch is skipped")
    target: str | None = Field(default=None, description="Fast-forward target commit")


class WorkingState(BaseModel):
    """Checkout snapshot taken before anything is touched."""

    model_config = ConfigDict(frozen=True)

    branch: str | None = Field(description="Checked-out branch, None if detached")
    clean: bool = Field(description="Whether tracked files had no changes")


class SyncOutcome(BaseModel):
    """Result of applying one BranchAction."""

    action: BranchAction
    success: bool = True
    error: str | None = None
    deferred: bool = Field(
        default=False,
        description="Prune of the checked-out branch, completed during restoration",
    )
    dry_run: bool = False

    @property
    def branch(self) -> str:
        return self.action.branch

    @property
    def is_conflict(self) -> bool:
        """Diverged branches need the user's attention."""
        return self.action.type == ActionType.REPORT_CONFLICT

    def fail(self, error: str) -> None:
        self.success = False
        self.error = error


class SyncReport(BaseModel):
    """
    Aggregated result of a sync run.

    Outcomes are in plan order (branch name order).
    """

    outcomes: list[SyncOutcome] = Field(default_factory=list)
    phase: SyncPhase = SyncPhase.IDLE
    fatal_error: str | None = None
    warnings: list[str] = Field(
        default_factory=list,
        description="Restoration problems that did not fail any branch",
    )
    dry_run: bool = False
    working_state: WorkingState | None = None
    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    @property
    def success(self) -> bool:
        """True if the run finished with no failed action and no diverged branch."""
        if self.phase != SyncPhase.DONE or self.fatal_error:
            return False
        return all(o.success and not o.is_conflict for o in self.outcomes)

    @property
    def failures(self) -> list[SyncOutcome]:
        return [o for o in self.outcomes if not o.success]

    @property
    def conflicts(self) -> list[SyncOutcome]:
        return [o for o in self.outcomes if o.is_conflict]

    def outcome_for(self, branch: str) -> SyncOutcome | None:
        """Find the outcome for a branch by name."""
        return next((o for o in self.outcomes if o.branch == branch), None)

    def count(self, action_type: ActionType) -> int:
        """Count successful outcomes of one action type."""
        return sum(1 for o in self.outcomes if o.action.type == action_type and o.success)

    def summary(self) -> str:
        """Generate a human-readable summary of the run."""
        if self.fatal_error:
            return f"sync failed: {self.fatal_error}"

        parts = [
            f"{self.count(ActionType.FAST_FORWARD)} updated",
            f"{self.count(ActionType.PRUNE)} deleted",
        ]
        if self.conflicts:
            parts.append(f"{len(self.conflicts)} diverged")
        if self.failures:
            parts.append(f"{len(self.failures)} failed")

        return ", ".join(parts)
