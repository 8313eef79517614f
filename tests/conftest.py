"""
Pytest configuration and shared fixtures.

Provides an isolated git environment and a sandbox of real repositories:
a bare "origin", the clone under test ("local") and a second clone
("other") that plays a teammate pushing and deleting branches.
"""

import subprocess
from pathlib import Path

import pytest

from gitup.core.config import clear_cache

# ==============================================================================
# Environment Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep user git config, user git-up config and GIT_UP_* vars out of tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    for name in (
        "GIT_UP_REMOTE",
        "GIT_UP_FALLBACK_BRANCH",
        "GIT_UP_PRUNE",
        "GIT_UP_PRUNE_UNMERGED",
    ):
        monkeypatch.delenv(name, raising=False)

    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Git Sandbox
# ==============================================================================


def run_git(cwd: Path, *args: str) -> str:
    """Run a git command in cwd and return stripped stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


class GitSandbox:
    """
    A bare origin with two clones.

    Attributes:
        origin: Bare repository both clones push to
        local: Clone that git-up runs against
        other: Clone used to change the remote behind local's back
    """

    def __init__(self, root: Path):
        self.root = root
        self.origin = root / "origin.git"
        self.local = root / "local"
        self.other = root / "other"
        self._counter = 0

        seed = root / "seed"
        seed.mkdir()
        run_git(seed, "init", "--quiet", "-b", "main")
        (seed / "README.md").write_text("# Sandbox\n")
        run_git(seed, "add", "README.md")
        run_git(seed, "commit", "--quiet", "-m", "Initial commit")

        run_git(root, "init", "--quiet", "--bare", "-b", "main", str(self.origin))
        run_git(seed, "remote", "add", "origin", str(self.origin))
        run_git(seed, "push", "--quiet", "-u", "origin", "main")

        run_git(root, "clone", "--quiet", str(self.origin), str(self.local))

    def git(self, repo: Path, *args: str) -> str:
        return run_git(repo, *args)

    def clone_other(self) -> Path:
        """Clone origin as it is now into `other`."""
        run_git(self.root, "clone", "--quiet", str(self.origin), str(self.other))
        return self.other

    def commit(self, repo: Path, message: str | None = None) -> str:
        """Create a commit touching a fresh file and return its SHA."""
        self._counter += 1
        name = f"file-{self._counter}.txt"
        (repo / name).write_text(f"change {self._counter}\n")
        run_git(repo, "add", name)
        run_git(repo, "commit", "--quiet", "-m", message or f"Change {self._counter}")
        return self.sha(repo, "HEAD")

    def sha(self, repo: Path, ref: str) -> str:
        return run_git(repo, "rev-parse", ref)

    def current_branch(self, repo: Path) -> str:
        return run_git(repo, "symbolic-ref", "--short", "HEAD")

    def branches(self, repo: Path) -> set[str]:
        output = run_git(repo, "for-each-ref", "--format=%(refname:strip=2)", "refs/heads")
        return set(output.splitlines())

    def publish_branch(self, name: str, commits: int = 1) -> str:
        """Create `name` in local with commits, push it with upstream, return to main."""
        run_git(self.local, "checkout", "--quiet", "-b", name)
        sha = ""
        for _ in range(commits):
            sha = self.commit(self.local)
        run_git(self.local, "push", "--quiet", "-u", "origin", name)
        run_git(self.local, "checkout", "--quiet", "main")
        return sha

    def advance_remote(self, branch: str, commits: int = 1) -> str:
        """Push new commits to origin/branch from `other`."""
        if not self.other.exists():
            self.clone_other()
        run_git(self.other, "fetch", "--quiet", "origin")
        run_git(self.other, "checkout", "--quiet", "-B", branch, f"origin/{branch}")
        sha = ""
        for _ in range(commits):
            sha = self.commit(self.other)
        run_git(self.other, "push", "--quiet", "origin", branch)
        return sha

    def delete_remote(self, branch: str) -> None:
        """Delete a branch on origin."""
        run_git(self.root, "--git-dir", str(self.origin), "branch", "-D", branch)


@pytest.fixture
def sandbox(tmp_path) -> GitSandbox:
    """Provide a fresh origin/local/other git sandbox."""
    root = tmp_path / "sandbox"
    root.mkdir()
    return GitSandbox(root)
