"""GitHub CLI wrapper for prdash."""

from __future__ import annotations

import json
import subprocess
from typing import Any

import anyio

from prdash.models import PullRequest

PR_FIELDS = (
    "number,title,mergeable,headRefName,baseRefName,baseRefOid,isDraft,url,statusCheckRollup"
)


class GitHubError(Exception):
    """GitHub CLI error."""

    pass


def _describe(args: list[str]) -> str:
    return "gh " + " ".join(args)


async def _run_gh_async(args: list[str]) -> str:
    """Run a gh command without blocking the event loop and return its stdout.

    Raises:
        GitHubError: if gh cannot be launched or exits non-zero
    """
    try:
        process = await anyio.run_process(
            ["gh", *args],
            check=False,
            stdin=subprocess.DEVNULL,
        )
    except OSError as e:
        raise GitHubError(f"could not run {_describe(args)}: {e}") from e

    stderr = process.stderr.decode(errors="replace").strip() if process.stderr else ""
    if process.returncode != 0:
        raise GitHubError(f"gh command failed: {_describe(args)}\n{stderr}")
    return process.stdout.decode(errors="replace") if process.stdout else ""


def _run_gh(args: list[str], check: bool = True) -> subprocess.CompletedProcess[str]:
    """Run a gh command."""
    try:
        return subprocess.run(
            ["gh", *args],
            capture_output=True,
            text=True,
            check=check,
            stdin=subprocess.DEVNULL,
        )
    except subprocess.CalledProcessError as e:
        raise GitHubError(f"gh command failed: {_describe(args)}\n{e.stderr}") from e
    except FileNotFoundError as e:
        raise GitHubError("gh CLI not found on PATH") from e


def _parse_json(output: str, args: list[str]) -> Any:
    try:
        return json.loads(output)
    except json.JSONDecodeError as e:
        raise GitHubError(f"Unexpected output from {_describe(args)}: {e}") from e


def parse_pull_requests(data: Any) -> tuple[PullRequest, ...]:
    """Turn decoded `gh pr list` JSON into PullRequest records."""
    if not isinstance(data, list):
        raise GitHubError("Expected a list of pull requests")
    try:
        return tuple(PullRequest.from_json(item) for item in data if isinstance(item, dict))
    except (AttributeError, TypeError, ValueError) as e:
        raise GitHubError(f"Malformed pull request data: {e}") from e


async def list_pull_requests(repo: str) -> tuple[PullRequest, ...]:
    """List open PRs authored by the current user.

    Args:
        repo: Repository in owner/repo format

    Returns:
        PullRequests in the order gh returned them
    """
    args = ["pr", "list", "-a", "@me", "--json", PR_FIELDS, "-R", repo]
    output = await _run_gh_async(args)
    return parse_pull_requests(_parse_json(output, args))


async def get_branch_commit(repo: str, branch: str) -> str:
    """Get the sha of the latest commit on a branch.

    Args:
        repo: Repository in owner/repo format
        branch: Branch name

    Returns:
        Commit sha
    """
    args = ["api", f"/repos/{repo}/branches/{branch}"]
    output = await _run_gh_async(args)
    data = _parse_json(output, args)
    try:
        return str(data["commit"]["sha"])
    except (KeyError, TypeError) as e:
        raise GitHubError(f"No commit found for branch {branch}") from e


async def update_branch(repo: str, number: int) -> None:
    """Rebase a PR branch onto its base via `gh pr update-branch --rebase`."""
    await _run_gh_async(["pr", "update-branch", "--rebase", "-R", repo, str(number)])


async def open_url(url: str, opener: str) -> None:
    """Open a URL with the given opener command (e.g. open, xdg-open)."""
    await anyio.run_process(
        [opener, url],
        check=True,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )


def get_current_repo() -> str:
    """Get the owner/name of the repository in the current directory."""
    result = _run_gh(["repo", "view", "--json", "name,owner"])
    data = _parse_json(result.stdout, ["repo", "view"])
    try:
        return f"{data['owner']['login']}/{data['name']}"
    except (KeyError, TypeError) as e:
        raise GitHubError("Could not determine repository from gh repo view") from e


def has_gh_cli() -> bool:
    """Check if GitHub CLI is installed and authenticated."""
    try:
        subprocess.run(
            ["gh", "auth", "status"],
            capture_output=True,
            check=True,
            stdin=subprocess.DEVNULL,
        )
        return True
    except (subprocess.CalledProcessError, FileNotFoundError):
        return False
