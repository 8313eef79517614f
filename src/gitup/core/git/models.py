"""
Ref models returned by the git gateway.

These are plain snapshots of repository refs taken at the start of a run.
Nothing here is persisted between invocations.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class RemoteRef:
    """
    A remote-tracking reference.

    Attributes:
        remote: Remote name (e.g. "origin", or "." for a local upstream)
        branch: Branch name on the remote (e.g. "feature/login")
        ref: Full ref name (e.g. "refs/remotes/origin/feature/login")
    """

    remote: str
    branch: str
    ref: str

    def __str__(self) -> str:
        if self.remote == ".":
            return self.branch
        return f"{self.remote}/{self.branch}"


@dataclass(frozen=True)
class LocalBranch:
    """
    A local branch and its configured upstream.

    Attributes:
        name: Short branch name (without refs/heads/)
        commit: Commit SHA the branch points to
        upstream: Configured upstream, None if the branch tracks nothing
    """

    name: str
    commit: str
    upstream: RemoteRef | None = None

    @property
    def ref(self) -> str:
        """Full git ref for the branch."""
        return f"refs/heads/{self.name}"
