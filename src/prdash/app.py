"""The dashboard main loop.

A single asyncio loop owns the application state. Each iteration races four
sources: the redraw clock, the auto-refresh clock, terminal input and the
event bus. It handles exactly one ready source before racing again.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Protocol

from rich.console import Console, RenderableType
from rich.live import Live
from rich.text import Text

from prdash.config import DashboardConfig
from prdash.events import AppEvent, EventBus
from prdash.keys import InputDispatcher, Selection
from prdash.log import tui_log
from prdash.render import render
from prdash.state import AppState, apply
from prdash.tasks import TaskSupervisor
from prdash.terminal import InputEvent, TerminalInput, cbreak_mode


class InputSource(Protocol):
    async def next_event(self) -> InputEvent: ...


class Source(Enum):
    """The things the main loop waits on."""

    REDRAW = "redraw"
    AUTO_REFRESH = "auto_refresh"
    INPUT = "input"
    BUS = "bus"


class Interval:
    """Periodic clock that skips ticks it missed instead of bursting."""

    def __init__(self, period: float, immediate: bool = True):
        self.period = period
        self._immediate = immediate
        self._deadline: float | None = None

    async def tick(self) -> float:
        """Wait for the next tick and return the loop time it fired at."""
        loop = asyncio.get_running_loop()
        if self._deadline is None:
            self._deadline = loop.time() + (0 if self._immediate else self.period)

        delay = self._deadline - loop.time()
        if delay > 0:
            await asyncio.sleep(delay)

        now = loop.time()
        self._deadline += self.period
        if self._deadline <= now:
            # late: drop the missed ticks and restart the schedule from now
            self._deadline = now + self.period
        return now


class App:
    """Pull request dashboard for one repository."""

    def __init__(
        self,
        repo: str,
        config: DashboardConfig,
        input_source: InputSource,
        bus: EventBus | None = None,
        supervisor: TaskSupervisor | None = None,
    ):
        self.repo = repo
        self.config = config
        self.input = input_source
        self.bus = bus if bus is not None else EventBus(config.event_capacity)
        self.supervisor = supervisor or TaskSupervisor(repo, self.bus, opener=config.opener)
        self.dispatcher = InputDispatcher(self.supervisor, Selection())
        self.state = AppState()

    @property
    def selection(self) -> Selection:
        return self.dispatcher.selection

    def refresh_all(self) -> None:
        """Refetch the PR list and the head of every base branch we know about."""
        self.supervisor.refresh_pull_requests()
        bases = {self.config.base_branch}
        bases.update(pr.base_name for pr in self.state.prs if pr.base_name)
        for branch in sorted(bases):
            self.supervisor.refresh_branch_commit(branch)

    def handle_event(self, event: AppEvent) -> None:
        self.state = apply(self.state, event)
        self.selection.clamp(len(self.state.prs))

    def handle_input(self, event: InputEvent) -> None:
        self.state, _ = self.dispatcher.dispatch(event, self.state)

    def draw(self, paint: Callable[[RenderableType], Any]) -> None:
        selected = self.selection.clamp(len(self.state.prs))
        paint(render(self.state, selected, self.repo))

    async def run(self, paint: Callable[[RenderableType], Any]) -> AppState:
        """Run until the user quits.

        Args:
            paint: Called with the renderable on every redraw tick. Errors
                raised while painting end the loop.

        Returns:
            The final application state
        """
        subscription = self.bus.subscribe()
        redraw = Interval(self.config.tick_interval)
        auto_refresh = Interval(self.config.auto_refresh_interval, immediate=False)
        sources: dict[Source, Callable[[], Awaitable[Any]]] = {
            Source.REDRAW: redraw.tick,
            Source.AUTO_REFRESH: auto_refresh.tick,
            Source.INPUT: self.input.next_event,
            Source.BUS: subscription.recv,
        }
        waiting: dict[asyncio.Task[Any], Source] = {}

        self.supervisor.refresh_pull_requests()
        self.supervisor.refresh_branch_commit(self.config.base_branch)
        tui_log(f"Main loop starting for {self.repo}")

        try:
            while not self.state.done:
                armed = set(waiting.values())
                for source, wait in sources.items():
                    if source not in armed:
                        waiting[asyncio.ensure_future(wait())] = source

                ready, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)
                task = random.choice(list(ready))
                source = waiting.pop(task)
                result = task.result()

                if source is Source.REDRAW:
                    self.draw(paint)
                elif source is Source.AUTO_REFRESH:
                    self.refresh_all()
                elif source is Source.INPUT:
                    self.handle_input(result)
                else:
                    self.handle_event(result)
        finally:
            for task in waiting:
                task.cancel()
            await asyncio.gather(*waiting, return_exceptions=True)
            subscription.close()
            await self.supervisor.shutdown(self.config.shutdown_grace)
            tui_log("Main loop stopped")

        return self.state


def run_dashboard(repo: str, config: DashboardConfig, console: Console | None = None) -> AppState:
    """Take over the terminal and run the dashboard until the user quits."""
    console = console or Console()

    async def _main(live: Live) -> AppState:
        with TerminalInput() as keys:
            app = App(repo, config, keys)
            return await app.run(lambda renderable: live.update(renderable, refresh=True))

    with cbreak_mode():
        with Live(Text(""), console=console, auto_refresh=False, screen=True) as live:
            return asyncio.run(_main(live))
