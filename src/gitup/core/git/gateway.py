"""
Git gateway implementation.

This module provides the GitGateway class, the only component in git-up
that reads or writes repository state. Everything goes through GitPython's
command wrapper so that each invocation is logged and every failure is
turned into a VcsError carrying the command that failed.
"""

import logging
from pathlib import Path

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from .models import LocalBranch, RemoteRef

logger = logging.getLogger(__name__)

DEFAULT_BRANCH_FALLBACK = "main"

# Ref names cannot contain control characters, so a tab is a safe separator.
_BRANCH_FORMAT = "\t".join(
    [
        "%(refname:strip=2)",
        "%(objectname)",
        "%(upstream)",
        "%(upstream:remotename)",
    ]
)


class VcsError(Exception):
    """Exception raised when a git operation fails."""

    def __init__(self, message: str, command: list[str] | None = None, cause: str = ""):
        super().__init__(message)
        self.command = command
        self.cause = cause

    def __str__(self) -> str:
        message = super().__str__()
        if self.cause and self.cause not in message:
            return f"{message}: {self.cause}"
        return message


class NotARepositoryError(VcsError):
    """Raised when the target directory is not inside a git work tree."""

    pass


def _stderr_of(error: GitCommandError) -> str:
    """Extract the git error text from a GitCommandError."""
    text = (error.stderr or "").strip()
    if text.startswith("stderr:"):
        text = text[len("stderr:") :].strip().strip("'").strip()
    return text or str(error)


class GitGateway:
    """
    Narrow interface over a git working copy.

    All calls block until git finishes. Mutating calls only touch
    refs/heads/* and the working tree.

    Example:
        >>> gateway = GitGateway(Path("."))
        >>> gateway.fetch_all(prune=True)
        >>> for branch in gateway.list_local_branches():
        ...     print(branch.name, branch.upstream)
    """

    def __init__(self, repo_path: Path | None = None, remote: str | None = None):
        """
        Open the repository containing repo_path.

        Args:
            repo_path: Path inside a git work tree (defaults to current directory)
            remote: Only fetch from this remote (defaults to every remote)

        Raises:
            NotARepositoryError: If repo_path is not inside a git work tree
        """
        self.repo_path = repo_path or Path.cwd()
        self.remote = remote

        try:
            self.repo = Repo(self.repo_path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise NotARepositoryError(f"Not a git repository: {self.repo_path}") from e

        if self.repo.bare:
            raise NotARepositoryError(f"Cannot sync a bare repository: {self.repo_path}")

    @property
    def working_dir(self) -> Path:
        """Root of the work tree."""
        return Path(self.repo.working_dir)

    def _git(self, *args: str) -> str:
        """Run a git command and return its stdout."""
        command = ["git", *args]
        logger.debug("Running: %s", " ".join(command))
        try:
            return str(self.repo.git.execute(command))
        except GitCommandError as e:
            raise VcsError(
                f"git {args[0]} failed",
                command=command,
                cause=_stderr_of(e),
            ) from e

    # ------------------------------------------------------------------
    # Remote state
    # ------------------------------------------------------------------

    def fetch_all(self, prune: bool = True) -> None:
        """
        Fetch from every configured remote (or only self.remote).

        Args:
            prune: Also remove remote-tracking refs deleted on the remote

        Raises:
            VcsError: If the fetch fails
        """
        args = ["fetch", "--quiet"]
        if prune:
            args.append("--prune")
        if self.remote:
            args.append(self.remote)
        else:
            args.append("--all")
        self._git(*args)

    def main_remote(self) -> str | None:
        """Return "origin" if configured, else the first remote by name."""
        names = sorted(remote.name for remote in self.repo.remotes)
        if not names:
            return None
        if "origin" in names:
            return "origin"
        return names[0]

    def default_branch(self, remote: str) -> str:
        """
        Return the default branch of a remote.

        Reads refs/remotes/<remote>/HEAD, which only exists for clones;
        falls back to "main" when it is missing.
        """
        prefix = f"refs/remotes/{remote}/"
        try:
            target = self._git("symbolic-ref", "--quiet", f"{prefix}HEAD").strip()
        except VcsError:
            logger.debug("No %sHEAD, assuming %s", prefix, DEFAULT_BRANCH_FALLBACK)
            return DEFAULT_BRANCH_FALLBACK

        if target.startswith(prefix):
            return target[len(prefix) :]
        return DEFAULT_BRANCH_FALLBACK

    # ------------------------------------------------------------------
    # Reading refs
    # ------------------------------------------------------------------

    def list_local_branches(self) -> list[LocalBranch]:
        """
        List local branches with their commit and upstream, sorted by name.

        Raises:
            VcsError: If the refs cannot be read
        """
        output = self._git(
            "for-each-ref",
            "--sort=refname",
            f"--format={_BRANCH_FORMAT}",
            "refs/heads",
        )

        branches: list[LocalBranch] = []
        for line in output.splitlines():
            if not line.strip():
                continue
            name, commit, upstream_ref, remote_name = (line.split("\t") + ["", "", ""])[:4]
            branches.append(
                LocalBranch(
                    name=name,
                    commit=commit,
                    upstream=self._parse_upstream(upstream_ref, remote_name),
                )
            )

        return sorted(branches, key=lambda b: b.name)

    def _parse_upstream(self, ref: str, remote: str) -> RemoteRef | None:
        """Build a RemoteRef from for-each-ref upstream fields."""
        if not ref:
            return None

        remote = remote or "."
        remote_prefix = f"refs/remotes/{remote}/"
        if ref.startswith(remote_prefix):
            branch = ref[len(remote_prefix) :]
        elif ref.startswith("refs/heads/"):
            branch = ref[len("refs/heads/") :]
        else:
            branch = ref

        return RemoteRef(remote=remote, branch=branch, ref=ref)

    def resolve_commit(self, ref: str) -> str | None:
        """
        Return the commit SHA a ref points to, or None if it does not exist.

        Raises:
            VcsError: If git fails for any other reason than a missing ref
        """
        command = ["git", "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"]
        logger.debug("Running: %s", " ".join(command))
        try:
            return str(self.repo.git.execute(command)).strip()
        except GitCommandError as e:
            # --quiet turns a missing ref into a silent exit status 1
            if e.status == 1 and not (e.stderr or "").strip():
                return None
            raise VcsError("git rev-parse failed", command=command, cause=_stderr_of(e)) from e

    def branch_exists(self, name: str) -> bool:
        """Check if a local branch exists."""
        return self.resolve_commit(f"refs/heads/{name}") is not None

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """
        Check ancestry between two commits.

        Returns:
            True if ancestor is an ancestor of, or equal to, descendant

        Raises:
            VcsError: If either commit cannot be resolved
        """
        logger.debug("Running: git merge-base --is-ancestor %s %s", ancestor, descendant)
        try:
            return bool(self.repo.is_ancestor(ancestor, descendant))
        except GitCommandError as e:
            raise VcsError(
                "git merge-base failed",
                command=["git", "merge-base", "--is-ancestor", ancestor, descendant],
                cause=_stderr_of(e),
            ) from e

    def count_divergence(self, local: str, upstream: str) -> tuple[int, int]:
        """
        Count commits unique to each side.

        Returns:
            (commits only in local, commits only in upstream)
        """
        output = self._git("rev-list", "--left-right", "--count", f"{local}...{upstream}")
        left, right = output.split()
        return int(left), int(right)

    def current_branch(self) -> str | None:
        """Return the checked-out branch name, None on a detached HEAD."""
        if self.repo.head.is_detached:
            return None
        return str(self.repo.head.reference.name)

    def is_working_tree_clean(self) -> bool:
        """Check for staged or unstaged changes to tracked files."""
        return not self.repo.is_dirty(index=True, working_tree=True, untracked_files=False)

    def worktree_branches(self) -> set[str]:
        """
        Branches checked out in other worktrees of this repository.

        Parsed from ``git worktree list --porcelain``; the branch checked
        out here is excluded.

        Raises:
            VcsError: If the worktree list cannot be read
        """
        output = self._git("worktree", "list", "--porcelain")

        branches: set[str] = set()
        for line in output.splitlines():
            line = line.strip()
            if line.startswith("branch refs/heads/"):
                branches.add(line[len("branch refs/heads/") :])

        branches.discard(self.current_branch() or "")
        return branches

    # ------------------------------------------------------------------
    # Mutating refs
    # ------------------------------------------------------------------

    def fast_forward(self, branch: str, target: str) -> None:
        """
        Move a branch to a descendant commit.

        The checked-out branch is advanced with ``merge --ff-only`` so the
        work tree follows; any other branch is moved with a compare-and-swap
        ``update-ref``. Branches checked out in another worktree are never
        moved, since their files would no longer match.

        Raises:
            VcsError: If the branch is checked out with uncommitted changes,
                checked out in another worktree, or target does not descend
                from the branch's commit
        """
        branch_ref = f"refs/heads/{branch}"
        old = self.resolve_commit(branch_ref)
        if old is None:
            raise VcsError(f"Branch '{branch}' does not exist")

        if not self.is_ancestor(old, target):
            raise VcsError(
                f"Cannot fast-forward '{branch}'",
                cause=f"{target[:7]} is not a descendant of {old[:7]}",
            )

        if branch == self.current_branch():
            if not self.is_working_tree_clean():
                raise VcsError(f"Cannot fast-forward '{branch}'", cause="uncommitted changes")
            self._git("merge", "--ff-only", "--quiet", target)
            return

        if branch in self.worktree_branches():
            raise VcsError(
                f"Cannot fast-forward '{branch}'", cause="checked out in another worktree"
            )
        self._git("update-ref", "-m", "git-up: fast-forward", branch_ref, target, old)

    def delete_branch(self, name: str) -> None:
        """
        Delete a local branch.

        Raises:
            VcsError: If the branch is checked out here or in another
                worktree, or cannot be deleted
        """
        if name == self.current_branch():
            raise VcsError(f"Cannot delete '{name}'", cause="branch is checked out")
        if name in self.worktree_branches():
            raise VcsError(f"Cannot delete '{name}'", cause="checked out in another worktree")
        self._git("branch", "-D", "--quiet", name)

    def checkout(self, name: str) -> None:
        """Check out a local branch."""
        self._git("checkout", "--quiet", name)
