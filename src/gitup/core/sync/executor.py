"""
Branch synchronization executor.

Runs one sync as a small state machine:

    IDLE -> FETCHING -> EVALUATING -> APPLYING -> RESTORING -> DONE

with FAILED reachable from any phase before DONE. A fetch or
branch-listing failure ends the run in FAILED before any ref is
touched. Once APPLYING has started, RESTORING always runs, including
when an action fails or the run is interrupted, so the user is left on
a valid checkout.

Pruning the checked-out branch is two-phase: APPLYING only marks the
outcome as deferred, and RESTORING checks out the fallback branch and
then deletes it.
"""

from __future__ import annotations

import logging
from datetime import datetime

from gitup.core.git import GitGateway, LocalBranch, VcsError
from gitup.core.sync.classifier import BranchClassifier
from gitup.core.sync.errors import (
    BranchActionError,
    FatalFetchError,
    RestorationError,
    SyncError,
)
from gitup.core.sync.models import (
    ActionType,
    BranchAction,
    SyncConfig,
    SyncOutcome,
    SyncPhase,
    SyncReport,
    WorkingState,
)
from gitup.core.sync.planner import build_plan

logger = logging.getLogger(__name__)


class SyncExecutor:
    """
    Applies a sync plan to a repository.

    Each instance runs once; create a new executor for every sync.

    Example:
        >>> gateway = GitGateway(Path("."))
        >>> executor = SyncExecutor(gateway, SyncConfig(), fallback_branch="main")
        >>> report = executor.run()
        >>> report.success
        True
    """

    def __init__(
        self,
        gateway: GitGateway,
        config: SyncConfig | None = None,
        fallback_branch: str | None = None,
    ) -> None:
        """
        Initialize the executor.

        Args:
            gateway: Git gateway, the only thing allowed to touch the repository
            config: Run options (defaults to SyncConfig())
            fallback_branch: Branch to check out when the checked-out branch
                has to be pruned. Without it such a prune fails.
        """
        self.gateway = gateway
        self.config = config or SyncConfig()
        self.fallback_branch = fallback_branch
        self.phase = SyncPhase.IDLE
        self._deferred: list[SyncOutcome] = []
        self._pruned: set[str] = set()

    def _transition(self, phase: SyncPhase) -> None:
        logger.debug("Sync phase %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    def run(self) -> SyncReport:
        """
        Fetch, evaluate, apply and restore.

        Returns:
            SyncReport with one outcome per local branch, in name order.
            On a fatal error the report has phase FAILED and no outcomes.

        Raises:
            RuntimeError: If this executor has already run
        """
        if self.phase != SyncPhase.IDLE:
            raise RuntimeError("SyncExecutor can only run once")

        report = SyncReport(dry_run=self.config.dry_run, started_at=datetime.now())
        state = WorkingState(
            branch=self.gateway.current_branch(),
            clean=self.gateway.is_working_tree_clean(),
        )
        report.working_state = state
        logger.info("Starting sync on %s (clean=%s)", state.branch or "detached HEAD", state.clean)

        try:
            self._transition(SyncPhase.FETCHING)
            self._fetch()
            self._transition(SyncPhase.EVALUATING)
            outcomes = self._evaluate()
        except SyncError as e:
            logger.error("%s", e)
            report.fatal_error = str(e)
            self._finish(report, SyncPhase.FAILED)
            return report

        self._transition(SyncPhase.APPLYING)
        interrupted = True
        try:
            for outcome in outcomes:
                report.outcomes.append(outcome)
                self._apply(outcome, state)
            interrupted = False
        finally:
            self._transition(SyncPhase.RESTORING)
            self._restore(state, report)
            self._finish(report, SyncPhase.FAILED if interrupted else SyncPhase.DONE)

        return report

    def _finish(self, report: SyncReport, phase: SyncPhase) -> None:
        self._transition(phase)
        report.phase = phase
        report.completed_at = datetime.now()

    # ------------------------------------------------------------------
    # FETCHING / EVALUATING
    # ------------------------------------------------------------------

    def _fetch(self) -> None:
        # Always prune remote-tracking refs: gone upstreams are only
        # trustworthy after a pruning fetch.
        logger.info("Fetching remote state")
        try:
            self.gateway.fetch_all(prune=True)
        except VcsError as e:
            raise FatalFetchError(e) from e

    def _evaluate(self) -> list[SyncOutcome]:
        """Classify and plan every local branch."""
        try:
            branches = self.gateway.list_local_branches()
        except VcsError as e:
            raise SyncError(f"Could not list local branches: {e}") from e

        classifier = BranchClassifier(self.gateway, base_ref=self._base_ref(branches))
        statuses = []
        unclassified: list[SyncOutcome] = []

        for branch in branches:
            try:
                statuses.append(classifier.classify(branch))
            except VcsError as e:
                logger.warning("Could not classify %s: %s", branch.name, e)
                action = BranchAction(
                    branch=branch.name, type=ActionType.SKIP, reason="classification failed"
                )
                outcome = SyncOutcome(action=action, dry_run=self.config.dry_run)
                outcome.fail(str(e))
                unclassified.append(outcome)

        planned = [
            SyncOutcome(action=action, dry_run=self.config.dry_run)
            for action in build_plan(statuses, self.config)
        ]
        return sorted(planned + unclassified, key=lambda o: o.branch)

    def _base_ref(self, branches: list[LocalBranch]) -> str | None:
        """Ref used to decide whether a gone branch was merged."""
        fallback = next((b for b in branches if b.name == self.fallback_branch), None)
        if fallback is None:
            return None
        if fallback.upstream:
            try:
                if self.gateway.resolve_commit(fallback.upstream.ref):
                    return fallback.upstream.ref
            except VcsError as e:
                logger.warning("Could not resolve %s: %s", fallback.upstream, e)
        return fallback.ref

    # ------------------------------------------------------------------
    # APPLYING
    # ------------------------------------------------------------------

    def _apply(self, outcome: SyncOutcome, state: WorkingState) -> None:
        action = outcome.action
        if not outcome.success:
            return

        try:
            if action.type == ActionType.FAST_FORWARD:
                self._fast_forward(action, state)
            elif action.type == ActionType.PRUNE:
                self._prune(outcome, state)
            elif action.type == ActionType.REPORT_CONFLICT:
                logger.warning("%s has diverged from its upstream", action.branch)
            else:
                logger.debug("Skipping %s: %s", action.branch, action.reason)
        except BranchActionError as e:
            logger.warning("%s", e)
            outcome.fail(e.reason)
        except VcsError as e:
            error = BranchActionError(action.branch, action.type, e)
            logger.warning("%s", error)
            outcome.fail(error.reason)

    def _fast_forward(self, action: BranchAction, state: WorkingState) -> None:
        if action.target is None:
            raise BranchActionError(action.branch, action.type, "no target commit")

        if action.branch == state.branch and not self.gateway.is_working_tree_clean():
            raise BranchActionError(action.branch, action.type, "uncommitted changes")

        if self.config.dry_run:
            logger.info("Would fast-forward %s to %s", action.branch, action.target[:7])
            return

        self.gateway.fast_forward(action.branch, action.target)
        logger.info("Fast-forwarded %s to %s", action.branch, action.target[:7])

    def _prune(self, outcome: SyncOutcome, state: WorkingState) -> None:
        branch = outcome.branch
        if branch == state.branch:
            # The checked-out branch cannot be deleted until we move off it.
            logger.info("Deferring prune of checked-out branch %s", branch)
            outcome.deferred = True
            self._deferred.append(outcome)
            return

        if not self.config.dry_run:
            self.gateway.delete_branch(branch)
        self._pruned.add(branch)
        logger.info("%s %s", "Would prune" if self.config.dry_run else "Pruned", branch)

    # ------------------------------------------------------------------
    # RESTORING
    # ------------------------------------------------------------------

    def _restore(self, state: WorkingState, report: SyncReport) -> None:
        """Finish deferred prunes and put the user back on a valid branch."""
        for outcome in self._deferred:
            self._complete_deferred_prune(outcome)

        if self.config.dry_run:
            return

        try:
            self._restore_checkout(state)
        except RestorationError as e:
            logger.warning("%s", e)
            report.warnings.append(str(e))
        except VcsError as e:
            warning = f"Could not restore checkout of '{state.branch}': {e}"
            logger.warning("%s", warning)
            report.warnings.append(warning)

    def _complete_deferred_prune(self, outcome: SyncOutcome) -> None:
        branch = outcome.branch
        try:
            fallback = self._valid_fallback(branch)
            if self.config.dry_run:
                logger.info("Would check out %s and prune %s", fallback, branch)
            else:
                self.gateway.checkout(fallback)
                self.gateway.delete_branch(branch)
                logger.info("Checked out %s and pruned %s", fallback, branch)
            self._pruned.add(branch)
        except RestorationError as e:
            logger.warning("%s", e)
            outcome.fail(str(e))
        except VcsError as e:
            error = BranchActionError(branch, ActionType.PRUNE, e)
            logger.warning("%s", error)
            outcome.fail(error.reason)

    def _valid_fallback(self, branch: str) -> str:
        fallback = self.fallback_branch
        if not fallback:
            raise RestorationError(
                f"'{branch}' is checked out and no fallback branch is configured"
            )
        if fallback == branch:
            raise RestorationError(f"Fallback branch '{fallback}' is the branch being pruned")
        if fallback in self._pruned or not self.gateway.branch_exists(fallback):
            raise RestorationError(f"Fallback branch '{fallback}' does not exist")
        return fallback

    def _restore_checkout(self, state: WorkingState) -> None:
        """Re-checkout the original branch unless it was pruned."""
        current = self.gateway.current_branch()

        if state.branch is None:
            logger.debug("Run started on a detached HEAD, leaving checkout alone")
            return

        if state.branch in self._pruned or current == state.branch:
            return

        if not self.gateway.branch_exists(state.branch):
            if current is None and self.fallback_branch:
                self._checkout_or_raise(self.fallback_branch)
            raise RestorationError(
                f"Original branch '{state.branch}' no longer exists; "
                f"left on '{self.gateway.current_branch() or 'detached HEAD'}'"
            )

        self._checkout_or_raise(state.branch)
        logger.info("Restored checkout of %s", state.branch)

    def _checkout_or_raise(self, branch: str) -> None:
        try:
            self.gateway.checkout(branch)
        except VcsError as e:
            raise RestorationError(f"Could not check out '{branch}': {e}") from e
