"""
git-up CLI - Main application entry point.

This module sets up the Typer CLI application. Argument parsing, config
layering and logging live here; the sync itself is done by the core.
"""

import logging
import sys
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from gitup import __version__
from gitup.cli.errors import ExitCode, print_config_error, print_not_git_repo_error
from gitup.cli.report import exit_code_for, render_report
from gitup.core.config import GitUpConfig, load_config
from gitup.core.git import GitGateway, NotARepositoryError, VcsError
from gitup.core.sync import SyncExecutor, SyncPhase

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="git-up",
    help="Fetch and fast-forward every local branch, pruning the ones whose upstream is gone",
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def configure_logging(debug: bool) -> None:
    """
    Configure logging for the CLI.

    Args:
        debug: If True, enable DEBUG level logging (every git command is logged)
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"git-up version {__version__}")
        raise typer.Exit(ExitCode.SUCCESS)


def resolve_fallback_branch(gateway: GitGateway, config: GitUpConfig) -> str | None:
    """
    Pick the branch to fall back to when the checked-out branch is pruned.

    Uses the configured branch if set, otherwise the default branch of
    the configured (or main) remote. Returns None without any remote.
    """
    if config.fallback_branch:
        return config.fallback_branch

    remote = config.remote or gateway.main_remote()
    if remote is None:
        return None

    try:
        return gateway.default_branch(remote)
    except VcsError as e:
        logger.warning("Could not determine default branch of %s: %s", remote, e)
        return None


def interrupted_message(phase: SyncPhase) -> str:
    """Describe the repository state after Ctrl+C, based on where the run stopped."""
    if phase in (SyncPhase.IDLE, SyncPhase.FETCHING, SyncPhase.EVALUATING):
        return "stopped before any branch was touched"
    if phase == SyncPhase.FAILED:
        return "checkout restored, stopping"
    return "stopped while restoring the checkout, run git status"


@app.command()
def main(
    repo: Path | None = typer.Option(
        None,
        "--repo",
        "-C",
        help="Run in this repository instead of the current directory",
    ),
    remote: str | None = typer.Option(
        None,
        "--remote",
        "-r",
        help="Only fetch from this remote (default: all remotes)",
    ),
    fallback_branch: str | None = typer.Option(
        None,
        "--fallback-branch",
        "-f",
        help="Branch to switch to when the checked-out branch is pruned "
        "(default: the remote's default branch)",
    ),
    prune: bool | None = typer.Option(
        None,
        "--prune/--no-prune",
        help="Delete local branches whose upstream was deleted",
    ),
    prune_unmerged: bool | None = typer.Option(
        None,
        "--prune-unmerged/--keep-unmerged",
        help="Also delete gone branches not merged into the fallback branch",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Show what would happen without changing any branch",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show git-up version and exit",
    ),
) -> None:
    """
    Synchronize every local branch with its upstream.

    Fetches all remotes once, fast-forwards branches that are behind,
    reports branches that have diverged and deletes branches whose
    upstream no longer exists. The branch you had checked out is
    checked out again at the end.

    Examples:
        git-up                       # Sync the current repository
        git-up --dry-run             # Show what would change
        git-up --no-prune            # Never delete branches
        git-up -f develop            # Fall back to develop when pruning
    """
    configure_logging(debug)

    try:
        gateway = GitGateway(repo)
    except NotARepositoryError:
        print_not_git_repo_error(str(repo or Path.cwd()))
        raise typer.Exit(ExitCode.USER_ERROR)

    cli_overrides = {
        "remote": remote,
        "fallback_branch": fallback_branch,
        "prune": prune,
        "prune_unmerged": prune_unmerged,
    }
    try:
        config = load_config(gateway.working_dir, use_cache=False)
        overrides = {k: v for k, v in cli_overrides.items() if v is not None}
        if overrides:
            config = GitUpConfig(**{**config.model_dump(), **overrides})
    except ValidationError as e:
        print_config_error(e)
        raise typer.Exit(ExitCode.USER_ERROR)

    gateway.remote = config.remote
    executor = SyncExecutor(
        gateway,
        config.to_sync_config(dry_run=dry_run),
        fallback_branch=resolve_fallback_branch(gateway, config),
    )

    try:
        report = executor.run()
    except KeyboardInterrupt:
        console.print(f"[yellow]Interrupted:[/yellow] {interrupted_message(executor.phase)}")
        raise typer.Exit(ExitCode.SIGINT)

    render_report(report, console)
    raise typer.Exit(exit_code_for(report))


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = [
    "app",
    "cli_main",
    "configure_logging",
    "interrupted_message",
    "resolve_fallback_branch",
]
