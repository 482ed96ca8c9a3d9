"""Application state and the transitions applied by incoming events."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from prdash.events import AppEvent, FetchedBranchCommit, FetchedPullRequests, Failure
from prdash.models import BranchCommitIndex, PullRequest


@dataclass(frozen=True)
class AppState:
    """Everything the dashboard displays. Only the main loop holds it."""

    prs: tuple[PullRequest, ...] = ()
    branches: BranchCommitIndex = field(default_factory=BranchCommitIndex)
    error_message: str | None = None
    done: bool = False


def one_line(message: str) -> str:
    """Collapse a multi-line message so it fits on the status line."""
    return " ".join(message.strip().splitlines())


def apply(state: AppState, event: AppEvent) -> AppState:
    """Return the state that results from handling one event."""
    if isinstance(event, FetchedPullRequests):
        return replace(state, prs=tuple(event.prs))
    if isinstance(event, FetchedBranchCommit):
        return replace(state, branches=state.branches.with_commit(event.branch, event.commit))
    if isinstance(event, Failure):
        return replace(state, error_message=one_line(event.message))
    raise TypeError(f"Unknown event: {event!r}")
