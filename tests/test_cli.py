"""
Tests for the git-up command.

Runs the Typer app against sandbox repositories and checks output and
exit codes.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from gitup import __version__
from gitup.cli import app, resolve_fallback_branch
from gitup.core.config import GitUpConfig
from gitup.core.git import GitGateway, VcsError
from gitup.core.sync import SyncPhase

runner = CliRunner()


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep basicConfig from binding to CliRunner's temporary streams."""
    with patch("gitup.cli.configure_logging"):
        yield


def invoke(sandbox, *args: str):
    return runner.invoke(app, ["--repo", str(sandbox.local), *args])


class TestBasics:
    """Test flags that do not sync."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"git-up version {__version__}" in result.output

    def test_help(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "--dry-run" in result.output

    def test_not_a_repository(self, tmp_path):
        plain_dir = tmp_path / "plain"
        plain_dir.mkdir()

        result = runner.invoke(app, ["--repo", str(plain_dir)])

        assert result.exit_code == 2
        assert "Not a git repository" in result.output


class TestSync:
    """Test full runs."""

    def test_updates_and_deletes(self, sandbox):
        sandbox.publish_branch("feature")
        new_main = sandbox.advance_remote("main")
        sandbox.delete_remote("feature")

        result = invoke(sandbox)

        assert result.exit_code == 0, result.output
        assert "Deleted branch feature" in result.output
        assert "Updated branch main" in result.output
        assert "1 updated, 1 deleted" in result.output
        assert sandbox.sha(sandbox.local, "main") == new_main

    def test_nothing_to_do(self, sandbox):
        result = invoke(sandbox)

        assert result.exit_code == 0
        assert "main: up to date" in result.output

    def test_diverged_exits_one(self, sandbox):
        sandbox.publish_branch("topic")
        sandbox.advance_remote("topic")
        sandbox.git(sandbox.local, "checkout", "--quiet", "topic")
        sandbox.commit(sandbox.local)
        sandbox.git(sandbox.local, "checkout", "--quiet", "main")

        result = invoke(sandbox)

        assert result.exit_code == 1
        assert "topic has diverged from origin/topic" in result.output
        assert "1 diverged" in result.output

    def test_dry_run(self, sandbox):
        old_main = sandbox.sha(sandbox.local, "main")
        sandbox.advance_remote("main")

        result = invoke(sandbox, "--dry-run")

        assert result.exit_code == 0
        assert "Dry run" in result.output
        assert "Would update branch main" in result.output
        assert sandbox.sha(sandbox.local, "main") == old_main

    def test_no_prune_flag(self, sandbox):
        sandbox.publish_branch("feature")
        sandbox.delete_remote("feature")

        result = invoke(sandbox, "--no-prune")

        assert result.exit_code == 0
        assert "pruning disabled" in result.output
        assert "feature" in sandbox.branches(sandbox.local)

    def test_checked_out_branch_uses_default_branch(self, sandbox):
        sandbox.publish_branch("feature")
        sandbox.delete_remote("feature")
        sandbox.git(sandbox.local, "checkout", "--quiet", "feature")

        result = invoke(sandbox)

        assert result.exit_code == 0, result.output
        assert "(was checked out)" in result.output
        assert sandbox.current_branch(sandbox.local) == "main"

    def test_missing_fallback_flag(self, sandbox):
        sandbox.publish_branch("feature")
        sandbox.delete_remote("feature")
        sandbox.git(sandbox.local, "checkout", "--quiet", "feature")

        result = invoke(sandbox, "-f", "develop")

        assert result.exit_code == 1
        assert "feature failed to delete" in result.output
        assert sandbox.current_branch(sandbox.local) == "feature"

    def test_fetch_failure(self, sandbox):
        sandbox.git(
            sandbox.local, "remote", "set-url", "origin", str(sandbox.root / "missing.git")
        )

        result = invoke(sandbox)

        assert result.exit_code == 1
        assert "Sync aborted before any branch was touched" in result.output

    @pytest.mark.parametrize(
        ("phase", "message"),
        [
            (SyncPhase.FETCHING, "stopped before any branch was touched"),
            (SyncPhase.EVALUATING, "stopped before any branch was touched"),
            (SyncPhase.FAILED, "checkout restored"),
            (SyncPhase.RESTORING, "stopped while restoring the checkout"),
        ],
    )
    def test_interrupt(self, sandbox, phase, message):
        with patch("gitup.cli.SyncExecutor") as executor_cls:
            executor_cls.return_value.run.side_effect = KeyboardInterrupt
            executor_cls.return_value.phase = phase
            result = invoke(sandbox)

        assert result.exit_code == 130
        assert message in result.output

    def test_interrupt_during_fetch_says_nothing_was_restored(self, sandbox):
        with patch.object(GitGateway, "fetch_all", side_effect=KeyboardInterrupt):
            result = invoke(sandbox)

        assert result.exit_code == 130
        assert "stopped before any branch was touched" in result.output
        assert "checkout restored" not in result.output


class TestConfiguration:
    """Test config files, env vars and flag precedence."""

    def test_invalid_project_config(self, sandbox):
        (sandbox.local / ".git-up.json").write_text(json.dumps({"prune": "maybe"}))

        result = invoke(sandbox)

        assert result.exit_code == 2
        assert "Invalid git-up configuration" in result.output

    def test_invalid_fallback_flag(self, sandbox):
        result = invoke(sandbox, "--fallback-branch", "two words")

        assert result.exit_code == 2

    def test_project_config_disables_prune(self, sandbox):
        sandbox.publish_branch("feature")
        sandbox.delete_remote("feature")
        (sandbox.local / ".git-up.json").write_text(json.dumps({"prune": False}))

        result = invoke(sandbox)

        assert result.exit_code == 0
        assert "feature" in sandbox.branches(sandbox.local)

    def test_flag_overrides_env(self, sandbox, monkeypatch):
        sandbox.publish_branch("feature")
        sandbox.delete_remote("feature")
        monkeypatch.setenv("GIT_UP_PRUNE", "false")

        result = invoke(sandbox, "--prune")

        assert result.exit_code == 0
        assert "feature" not in sandbox.branches(sandbox.local)


class TestResolveFallbackBranch:
    """Test fallback branch selection."""

    def test_configured_branch_wins(self):
        gateway = MagicMock(spec=GitGateway)

        assert resolve_fallback_branch(gateway, GitUpConfig(fallback_branch="develop")) == "develop"
        gateway.default_branch.assert_not_called()

    def test_main_remote_default(self):
        gateway = MagicMock(spec=GitGateway)
        gateway.main_remote.return_value = "origin"
        gateway.default_branch.return_value = "trunk"

        assert resolve_fallback_branch(gateway, GitUpConfig()) == "trunk"
        gateway.default_branch.assert_called_once_with("origin")

    def test_configured_remote(self):
        gateway = MagicMock(spec=GitGateway)
        gateway.default_branch.return_value = "main"

        resolve_fallback_branch(gateway, GitUpConfig(remote="upstream"))

        gateway.default_branch.assert_called_once_with("upstream")
        gateway.main_remote.assert_not_called()

    def test_no_remote(self):
        gateway = MagicMock(spec=GitGateway)
        gateway.main_remote.return_value = None

        assert resolve_fallback_branch(gateway, GitUpConfig()) is None

    def test_lookup_failure(self):
        gateway = MagicMock(spec=GitGateway)
        gateway.main_remote.return_value = "origin"
        gateway.default_branch.side_effect = VcsError("git symbolic-ref failed")

        assert resolve_fallback_branch(gateway, GitUpConfig()) is None
