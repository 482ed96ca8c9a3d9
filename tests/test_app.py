"""Tests for the dashboard main loop."""

from __future__ import annotations

import asyncio

import pytest

from prdash.app import App, Interval
from prdash.config import DashboardConfig
from prdash.events import FetchedPullRequests, Failure
from prdash.github import GitHubError
from prdash.models import BranchCommitIndex, Mergeable
from prdash.state import AppState
from prdash.terminal import KEY_DOWN, KeyEvent, ResizeEvent
from tests.conftest import make_pr


class FakeInput:
    """Input source fed from the test."""

    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()

    def press(self, *keys: str) -> None:
        for key in keys:
            self.queue.put_nowait(KeyEvent(key))

    async def next_event(self):
        return await self.queue.get()


def make_config(**overrides) -> DashboardConfig:
    settings = {
        "base_branch": "main",
        "tick_interval": 0.005,
        "auto_refresh_interval": 3600.0,
        "opener": "xdg-open",
    }
    settings.update(overrides)
    return DashboardConfig(**settings)


def make_app(bus, supervisor, **overrides) -> tuple[App, FakeInput]:
    keys = FakeInput()
    app = App("owner/repo", make_config(**overrides), keys, bus=bus, supervisor=supervisor)
    return app, keys


async def wait_until(predicate, timeout: float = 2.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


@pytest.mark.asyncio
class TestMainLoop:
    async def test_startup_fetches_and_reconciles(self, bus, supervisor, gh_client):
        prs = (make_pr(42, base_commit="abc123"),)
        gh_client.list_pull_requests.return_value = prs
        gh_client.get_branch_commit.return_value = "abc123"
        app, keys = make_app(bus, supervisor)
        frames = []

        run = asyncio.ensure_future(app.run(frames.append))
        await wait_until(lambda: app.state.prs and "main" in app.state.branches)
        keys.press("q")
        final = await asyncio.wait_for(run, timeout=2)

        gh_client.list_pull_requests.assert_awaited_once_with("owner/repo")
        gh_client.get_branch_commit.assert_awaited_once_with("owner/repo", "main")
        assert final.done is True
        assert final.prs == prs
        assert final.branches == BranchCommitIndex({"main": "abc123"})
        assert frames

    async def test_quit_does_not_wait_for_background_work(self, bus, supervisor, gh_client):
        async def hang(*args):
            await asyncio.sleep(3600)

        gh_client.list_pull_requests.side_effect = hang
        gh_client.get_branch_commit.side_effect = hang
        app, keys = make_app(bus, supervisor)
        keys.press("q")

        final = await asyncio.wait_for(app.run(lambda r: None), timeout=2)

        assert final.done is True
        assert supervisor.pending == 0

    async def test_failure_event_shown_on_one_line(self, bus, supervisor, gh_client):
        gh_client.list_pull_requests.side_effect = GitHubError("line1\nline2")
        app, keys = make_app(bus, supervisor)

        run = asyncio.ensure_future(app.run(lambda r: None))
        await wait_until(lambda: app.state.error_message is not None)
        keys.press("q")
        final = await asyncio.wait_for(run, timeout=2)

        assert final.error_message == "line1 line2"

    async def test_keys_drive_selection_and_actions(self, bus, supervisor, gh_client):
        prs = (make_pr(1, Mergeable.OK), make_pr(2, Mergeable.CONFLICT))
        gh_client.list_pull_requests.return_value = prs
        app, keys = make_app(bus, supervisor)

        run = asyncio.ensure_future(app.run(lambda r: None))
        await wait_until(lambda: len(app.state.prs) == 2)
        keys.press(KEY_DOWN, "\r", "s")
        await wait_until(
            lambda: gh_client.open_url.await_count == 1 and gh_client.update_branch.await_count == 1
        )
        keys.press("q")
        await asyncio.wait_for(run, timeout=2)

        assert app.selection.index == 0
        gh_client.open_url.assert_awaited_once_with(prs[0].url, "xdg-open")
        gh_client.update_branch.assert_awaited_once_with("owner/repo", 1)

    async def test_refresh_key_spawns_fetch(self, bus, supervisor, gh_client):
        app, keys = make_app(bus, supervisor)

        run = asyncio.ensure_future(app.run(lambda r: None))
        await wait_until(lambda: gh_client.list_pull_requests.await_count == 1)
        keys.press("r")
        await wait_until(lambda: gh_client.list_pull_requests.await_count == 2)
        keys.press("q")
        await asyncio.wait_for(run, timeout=2)

    async def test_auto_refresh_fetches_known_base_branches(self, bus, supervisor, gh_client):
        gh_client.list_pull_requests.return_value = (
            make_pr(1, base_name="main"),
            make_pr(2, base_name="release"),
        )
        app, keys = make_app(bus, supervisor, auto_refresh_interval=0.02)

        run = asyncio.ensure_future(app.run(lambda r: None))
        await wait_until(lambda: gh_client.list_pull_requests.await_count >= 3)
        keys.press("q")
        await asyncio.wait_for(run, timeout=2)

        branches = {call.args[1] for call in gh_client.get_branch_commit.await_args_list}
        assert branches == {"main", "release"}

    async def test_resize_is_ignored(self, bus, supervisor):
        app, keys = make_app(bus, supervisor)
        keys.queue.put_nowait(ResizeEvent())
        keys.press("q")

        final = await asyncio.wait_for(app.run(lambda r: None), timeout=2)

        assert final.done is True

    async def test_paint_error_ends_loop(self, bus, supervisor):
        app, _ = make_app(bus, supervisor)

        def broken(renderable):
            raise RuntimeError("terminal went away")

        with pytest.raises(RuntimeError, match="terminal went away"):
            await asyncio.wait_for(app.run(broken), timeout=2)
        assert supervisor.pending == 0
        assert bus.subscriber_count == 0


class TestReconcileAndDraw:
    def test_selection_clamped_when_list_shrinks(self, bus, supervisor):
        app, _ = make_app(bus, supervisor)
        app.handle_event(FetchedPullRequests(tuple(make_pr(n) for n in range(5))))
        app.selection.index = 4

        app.handle_event(FetchedPullRequests((make_pr(1), make_pr(2))))

        assert app.selection.index == 1

    def test_selection_cleared_when_list_empties(self, bus, supervisor):
        app, _ = make_app(bus, supervisor)
        app.handle_event(FetchedPullRequests((make_pr(1),)))
        app.selection.index = 0

        app.handle_event(FetchedPullRequests(()))

        assert app.selection.index is None

    def test_draw_clamps_before_render(self, bus, supervisor):
        app, _ = make_app(bus, supervisor)
        app.state = AppState(prs=(make_pr(1), make_pr(2)))
        app.selection.index = 9
        frames = []

        app.draw(frames.append)

        assert app.selection.index == 1
        assert len(frames) == 1

    def test_failure_keeps_prs(self, bus, supervisor):
        app, _ = make_app(bus, supervisor)
        app.handle_event(FetchedPullRequests((make_pr(1),)))
        app.handle_event(Failure("boom"))

        assert len(app.state.prs) == 1
        assert app.state.error_message == "boom"


@pytest.mark.asyncio
class TestInterval:
    async def test_immediate_first_tick(self):
        loop = asyncio.get_running_loop()
        interval = Interval(10.0)
        start = loop.time()

        fired = await asyncio.wait_for(interval.tick(), timeout=1)

        assert fired - start < 1.0

    async def test_delayed_first_tick(self):
        interval = Interval(10.0, immediate=False)
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(interval.tick(), timeout=0.05)

    async def test_missed_ticks_are_skipped(self):
        loop = asyncio.get_running_loop()
        interval = Interval(0.01)
        await interval.tick()
        await asyncio.sleep(0.05)

        await interval.tick()
        before = loop.time()
        await interval.tick()

        # the next tick waits a full period instead of bursting
        assert loop.time() - before >= 0.005
