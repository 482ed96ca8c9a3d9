"""Background operations for the dashboard.

Every operation runs as its own asyncio task, makes one call to the GitHub
CLI (or the URL opener) and reports back only through the event bus. The
main loop never awaits these tasks while it is running.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from types import ModuleType
from typing import Any

from prdash import github
from prdash.config import default_opener
from prdash.events import EventBus, FetchedBranchCommit, FetchedPullRequests, Failure
from prdash.github import GitHubError
from prdash.log import tui_log
from prdash.models import Mergeable, PullRequest


class TaskSupervisor:
    """Spawns fire-and-forget operations and keeps a registry of live tasks."""

    def __init__(
        self,
        repo: str,
        bus: EventBus,
        client: ModuleType | Any = github,
        opener: str | None = None,
    ):
        self.repo = repo
        self.bus = bus
        self.client = client
        self.opener = opener or default_opener()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        """Number of operations still running."""
        return len(self._tasks)

    def _spawn(self, coro: Coroutine[Any, Any, None], label: str) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro, name=label)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        tui_log(f"Spawned {label} ({len(self._tasks)} pending)")
        return task

    def refresh_pull_requests(self) -> asyncio.Task[None]:
        """Fetch the PR list; publishes FetchedPullRequests or Failure."""
        return self._spawn(self._fetch_pull_requests(), "refresh-prs")

    def refresh_branch_commit(self, branch: str) -> asyncio.Task[None]:
        """Fetch a branch head; publishes FetchedBranchCommit or Failure."""
        return self._spawn(self._fetch_branch_commit(branch), f"refresh-branch:{branch}")

    def open_externally(self, url: str) -> asyncio.Task[None]:
        """Open a URL in the viewer. Publishes nothing, even on failure."""
        return self._spawn(self._open(url), "open-url")

    def rebase(self, pr: PullRequest) -> asyncio.Task[None] | None:
        """Rebase a PR onto its base branch.

        Only PRs GitHub reports as mergeable are rebased; for any other PR
        this does nothing and returns None. Publishes Failure if the rebase
        fails and nothing on success.
        """
        if pr.mergeable is not Mergeable.OK:
            return None
        return self._spawn(self._rebase(pr.number), f"rebase:#{pr.number}")

    async def _fetch_pull_requests(self) -> None:
        try:
            prs = await self.client.list_pull_requests(self.repo)
        except GitHubError as e:
            self._fail(str(e))
            return
        self.bus.publish(FetchedPullRequests(tuple(prs)))

    async def _fetch_branch_commit(self, branch: str) -> None:
        try:
            commit = await self.client.get_branch_commit(self.repo, branch)
        except GitHubError as e:
            self._fail(str(e))
            return
        self.bus.publish(FetchedBranchCommit(branch, commit))

    async def _open(self, url: str) -> None:
        try:
            await self.client.open_url(url, self.opener)
        except Exception as e:
            tui_log(f"Open failed for {url}: {e}")

    async def _rebase(self, number: int) -> None:
        try:
            await self.client.update_branch(self.repo, number)
        except GitHubError as e:
            self._fail(str(e))

    def _fail(self, message: str) -> None:
        tui_log(f"Background operation failed: {message}")
        self.bus.publish(Failure(message))

    async def shutdown(self, grace: float = 0.0) -> int:
        """Stop tracking work when the dashboard exits.

        Waits up to ``grace`` seconds for running operations, then cancels
        whatever is left so no gh subprocess outlives the dashboard.

        Returns:
            Number of operations that were cancelled
        """
        if not self._tasks:
            return 0

        remaining = set(self._tasks)
        if grace > 0:
            _, remaining = await asyncio.wait(remaining, timeout=grace)

        for task in remaining:
            task.cancel()
        if remaining:
            await asyncio.gather(*remaining, return_exceptions=True)
            tui_log(f"Cancelled {len(remaining)} background operation(s) on exit")
        return len(remaining)
