"""Rendering of the dashboard state into Rich renderables.

Nothing here mutates state; every function maps its inputs to a fresh
renderable on each redraw.
"""

from __future__ import annotations

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from prdash.models import BranchCommitIndex, CheckRollup, PullRequest, SyncStatus
from prdash.state import AppState

STATUS_STYLES = {
    SyncStatus.UP_TO_DATE: "bold green",
    SyncStatus.BEHIND: "bold yellow",
    SyncStatus.UNSYNCED: "bold yellow",
    SyncStatus.CONFLICT: "bold red",
    SyncStatus.UNKNOWN: "magenta",
}

ROLLUP_STYLES = {
    CheckRollup.SUCCESS: "green",
    CheckRollup.PENDING: "yellow",
    CheckRollup.FAILURE: "red",
}

HEADERS = ("ID", "NAME", "BRANCH", "STATUS", "CHECKS")


def format_number(pr: PullRequest) -> Text:
    return Text(f"#{pr.number}", style="dim" if pr.draft else "green")


def format_status(pr: PullRequest, branches: BranchCommitIndex) -> Text:
    """Status cell, colored by the derived sync status."""
    status = pr.sync_status(branches)
    return Text(status.value, style=STATUS_STYLES[status])


def format_checks(pr: PullRequest) -> Text:
    """Checks cell: passing/scheduled, colored by the overall rollup."""
    if not pr.checks:
        return Text("—", style="dim")
    rollup = pr.checks_rollup()
    return Text(f"{pr.checks_passing()}/{pr.checks_scheduled()}", style=ROLLUP_STYLES[rollup])


def pr_row(pr: PullRequest, branches: BranchCommitIndex) -> tuple[Text, ...]:
    """Cells for one pull request, in HEADERS order."""
    return (
        format_number(pr),
        Text(pr.title),
        Text(pr.branch, style="cyan"),
        format_status(pr, branches),
        format_checks(pr),
    )


def render_table(state: AppState, selected: int | None, title: str | None = None) -> Table:
    """Render the PR table with the selected row reversed."""
    table = Table(
        title=title,
        show_header=True,
        header_style="bold dim underline",
        border_style="dim",
        expand=True,
    )
    table.add_column(HEADERS[0], min_width=5, no_wrap=True)
    table.add_column(HEADERS[1], ratio=2)
    table.add_column(HEADERS[2], ratio=2, style="cyan")
    table.add_column(HEADERS[3], min_width=10, no_wrap=True)
    table.add_column(HEADERS[4], min_width=6, no_wrap=True)

    if not state.prs:
        table.add_row("", Text("No open pull requests", style="dim"), "", "", "")
        return table

    for idx, pr in enumerate(state.prs):
        style = "reverse" if idx == selected else None
        table.add_row(*pr_row(pr, state.branches), style=style)

    return table


def render_help() -> Text:
    """Render key binding help."""
    help_text = Text()
    for key, label in (
        ("j/↓", "down"),
        ("k/↑", "up"),
        ("enter", "open"),
        ("s", "rebase"),
        ("r", "refresh"),
        ("q", "quit"),
    ):
        help_text.append(key, style="bold")
        help_text.append(f" {label}  ")
    return help_text


def render_footer(state: AppState) -> Text:
    """Last error, shown until another one replaces it."""
    if state.error_message:
        return Text(state.error_message, style="red", no_wrap=True, overflow="ellipsis")
    return Text("")


def render(state: AppState, selected: int | None, repo: str | None = None) -> Panel:
    """Render the full dashboard."""
    title = f"[bold]{repo}[/bold] [dim](my open PRs)[/dim]" if repo else None
    return Panel(
        Group(render_table(state, selected), Text(""), render_help(), render_footer(state)),
        title=title,
        border_style="blue",
    )
