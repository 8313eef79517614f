"""
Standardized error handling and exit codes for the git-up CLI.

This module provides consistent error messaging with actionable guidance
and the exit codes the CLI returns.
"""

from enum import IntEnum

from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for git-up."""

    SUCCESS = 0
    """Every branch synced, nothing diverged."""

    GENERAL_ERROR = 1
    """Fetch failed, or at least one branch failed or diverged."""

    USER_ERROR = 2
    """Invalid invocation or configuration (actionable by user)."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Fetch failed",
        ...     reason="Could not resolve host: github.com",
        ...     solution="git remote -v  # check the remote URL",
        ... )
    """
    console.print(f"[red]Error:[/red] {escape(problem)}")

    if reason:
        console.print(f"[dim]{escape(reason)}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {escape(solution)}")


def print_not_git_repo_error(path: str | None = None) -> None:
    """Print error when not in a git repository."""
    print_error(
        "Not a git repository",
        reason=f"No git work tree found at {path}" if path else None,
        solution="cd to your repository  # or pass --repo PATH",
    )


def print_config_error(error: ValidationError) -> None:
    """Print error when the merged configuration is invalid."""
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in error.errors()
    )
    print_error(
        "Invalid git-up configuration",
        reason=details,
        solution="Check .git-up.json, ~/.config/git-up/config.json and GIT_UP_* variables",
    )


def print_fetch_failed_error(message: str) -> None:
    """Print error when the initial fetch fails."""
    print_error(
        "Sync aborted before any branch was touched",
        reason=message,
        solution="git remote -v  # check remotes and network, then run git-up again",
    )
