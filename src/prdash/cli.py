"""Main CLI entry point for prdash."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from prdash import __version__
from prdash.app import run_dashboard
from prdash.config import Config, ConfigError, DashboardConfig, load_config
from prdash.github import (
    GitHubError,
    get_branch_commit,
    get_current_repo,
    has_gh_cli,
    list_pull_requests,
)
from prdash.models import BranchCommitIndex
from prdash.render import render_table
from prdash.state import AppState

app = typer.Typer(
    name="prdash",
    help="Watch your open pull requests and keep them rebased",
    invoke_without_command=True,
)
console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"prdash {__version__}")
        raise typer.Exit()


RepoOption = Annotated[
    str | None,
    typer.Option(
        "--repo",
        "-R",
        help="Repository in owner/repo format (defaults to the current directory's repo)",
    ),
]

BaseOption = Annotated[
    str | None,
    typer.Option("--base", "-b", help="Base branch to compare pull requests against"),
]

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config file"),
]


def _get_config(config_path: Path | None, base: str | None) -> DashboardConfig:
    """Load config, applying command-line overrides."""
    try:
        config: Config = load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    if base:
        config.dashboard.base_branch = base
    return config.dashboard


def _is_interactive() -> bool:
    return sys.stdin.isatty()


def _resolve_repo(repo: str | None, config: DashboardConfig) -> str:
    """Pick the repository: --repo, then config, then the current directory."""
    if repo:
        return repo
    if config.repo:
        return config.repo
    try:
        return get_current_repo()
    except GitHubError as e:
        console.print(f"[red]Could not determine repository: {e}[/red]")
        if has_gh_cli():
            console.print("[dim]Pass --repo owner/name or run inside a GitHub checkout[/dim]")
        else:
            console.print("[dim]Install gh and run `gh auth login`[/dim]")
        raise typer.Exit(1) from e


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option("--version", "-V", callback=version_callback, is_eager=True),
    ] = None,
    repo: RepoOption = None,
    base: BaseOption = None,
    config_path: ConfigOption = None,
) -> None:
    """Interactive dashboard of your open pull requests.

    Keys:
    - j/k or arrows: navigate
    - enter: open PR in browser
    - s: rebase PR onto its base branch
    - r: refresh
    - q: quit
    """
    if ctx.invoked_subcommand is not None:
        return

    config = _get_config(config_path, base)

    if not _is_interactive():
        console.print("[yellow]Dashboard requires interactive terminal[/yellow]")
        raise typer.Exit(1)

    resolved = _resolve_repo(repo, config)
    run_dashboard(resolved, config, console=console)


@app.command(name="list")
def list_cmd(
    repo: RepoOption = None,
    base: BaseOption = None,
    config_path: ConfigOption = None,
) -> None:
    """Simple list of your open PRs (non-interactive)."""
    config = _get_config(config_path, base)
    resolved = _resolve_repo(repo, config)

    async def _fetch() -> AppState:
        prs = await list_pull_requests(resolved)
        branches = BranchCommitIndex()
        for branch in sorted({config.base_branch, *(pr.base_name for pr in prs if pr.base_name)}):
            try:
                branches = branches.with_commit(branch, await get_branch_commit(resolved, branch))
            except GitHubError:
                # Unknown base commit shows as Unsynced
                continue
        return AppState(prs=prs, branches=branches)

    try:
        state = asyncio.run(_fetch())
    except GitHubError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    console.print(render_table(state, None, title=f"[bold]{resolved}[/bold] [dim](my open PRs)[/dim]"))


if __name__ == "__main__":
    app()
