"""Application events and the broadcast bus carrying them back to the loop."""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass

from prdash.log import tui_log
from prdash.models import PullRequest


@dataclass(frozen=True)
class FetchedPullRequests:
    """A pull request listing completed."""

    prs: tuple[PullRequest, ...]


@dataclass(frozen=True)
class FetchedBranchCommit:
    """The latest commit of a branch was read."""

    branch: str
    commit: str


@dataclass(frozen=True)
class Failure:
    """A background operation failed."""

    message: str


AppEvent = FetchedPullRequests | FetchedBranchCommit | Failure

DEFAULT_CAPACITY = 32


class Subscription:
    """One consumer's view of the bus.

    Holds at most ``capacity`` undelivered events. When a publish would
    overflow the buffer the oldest event is dropped and counted in
    ``lagged``; the consumer carries on from the events that remain.
    """

    def __init__(self, bus: EventBus, capacity: int):
        self._bus = bus
        self._buffer: deque[AppEvent] = deque()
        self._capacity = capacity
        self._ready = asyncio.Event()
        self.lagged = 0

    def __len__(self) -> int:
        return len(self._buffer)

    def _push(self, event: AppEvent) -> None:
        if len(self._buffer) >= self._capacity:
            self._buffer.popleft()
            self.lagged += 1
            tui_log(f"Event bus subscriber lagging, dropped oldest event (total {self.lagged})")
        self._buffer.append(event)
        self._ready.set()

    def try_recv(self) -> AppEvent | None:
        """Return the next buffered event, or None if there is none."""
        if not self._buffer:
            self._ready.clear()
            return None
        event = self._buffer.popleft()
        if not self._buffer:
            self._ready.clear()
        return event

    async def recv(self) -> AppEvent:
        """Wait for and return the next event."""
        while True:
            event = self.try_recv()
            if event is not None:
                return event
            await self._ready.wait()

    def close(self) -> None:
        """Stop receiving events."""
        self._bus._unsubscribe(self)


class EventBus:
    """Multi-producer, multi-consumer broadcast channel with bounded buffers."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._subscribers: list[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        """Register a consumer; it sees only events published from now on."""
        subscription = Subscription(self, self.capacity)
        self._subscribers.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)

    def publish(self, event: AppEvent) -> int:
        """Deliver an event to every subscriber without blocking.

        Returns the number of subscribers the event reached. Publishing with
        no subscribers is not an error.
        """
        for subscription in self._subscribers:
            subscription._push(event)
        return len(self._subscribers)
