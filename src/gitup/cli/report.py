"""
Sync report rendering.

Turns a SyncReport into one console line per branch, in plan order,
followed by restoration warnings and a summary, and maps the report to
the process exit code.
"""

from rich.console import Console
from rich.markup import escape

from gitup.cli.errors import ExitCode, print_fetch_failed_error
from gitup.core.sync import ActionType, BranchState, SyncOutcome, SyncReport

_FAILED_VERBS = {
    ActionType.FAST_FORWARD: "fast-forward",
    ActionType.PRUNE: "delete",
    ActionType.SKIP: "process",
    ActionType.REPORT_CONFLICT: "process",
}


def _short(commit: str | None) -> str:
    return commit[:7] if commit else "unknown"


def format_outcome(outcome: SyncOutcome) -> str:
    """Format a single outcome as a rich markup line."""
    action = outcome.action
    status = action.status
    name = escape(action.branch)
    previous = _short(status.local_commit if status else None)

    if not outcome.success:
        verb = _FAILED_VERBS[action.type]
        return (
            f"[red]Error:[/red] [bold red]{name}[/bold red] failed to {verb}: "
            f"{escape(outcome.error or '')}"
        )

    if action.type == ActionType.FAST_FORWARD:
        label = "Would update branch" if outcome.dry_run else "Updated branch"
        return f"[green]{label}[/green] [bold green]{name}[/bold green] (was {previous})."

    if action.type == ActionType.PRUNE:
        label = "Would delete branch" if outcome.dry_run else "Deleted branch"
        line = f"[red]{label}[/red] [bold red]{name}[/bold red] (was {previous})."
        if outcome.deferred:
            line += " [dim](was checked out)[/dim]"
        return line

    if action.type == ActionType.REPORT_CONFLICT and status:
        return (
            f"[yellow]Warning:[/yellow] [bold yellow]{name}[/bold yellow] has diverged from "
            f"{escape(status.upstream or 'its upstream')} "
            f"({status.local_ahead} local, {status.remote_ahead} remote commits)"
        )

    if status and status.state == BranchState.UPSTREAM_GONE:
        return (
            f"[yellow]Warning:[/yellow] [bold yellow]{name}[/bold yellow] "
            f"{escape(action.reason)} (upstream {escape(status.upstream or '')} was deleted)"
        )

    return f"[dim]{name}: {escape(action.reason)}[/dim]"


def render_report(report: SyncReport, console: Console) -> None:
    """
    Print every outcome, warnings and a summary line.

    Fatal errors are printed through the standard error helper instead.
    """
    if report.fatal_error:
        print_fetch_failed_error(report.fatal_error)
        return

    if report.dry_run:
        console.print("[cyan]Dry run:[/cyan] no branches were changed")

    if report.working_state and not report.working_state.clean:
        console.print("[yellow]Note:[/yellow] working tree has uncommitted changes")

    for outcome in report.outcomes:
        console.print(format_outcome(outcome))

    for warning in report.warnings:
        console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")

    style = "green" if report.success else "red"
    console.print(f"[{style}]{escape(report.summary())}[/{style}]")


def exit_code_for(report: SyncReport) -> ExitCode:
    """Map a report to the process exit code."""
    return ExitCode.SUCCESS if report.success else ExitCode.GENERAL_ERROR
