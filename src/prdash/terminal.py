"""Terminal input for the dashboard: cbreak mode, key events and resizes."""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
import sys
import termios
import tty
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from prdash.log import tui_log

# Arrow key escape sequences
KEY_UP = "\x1b[A"
KEY_DOWN = "\x1b[B"
KEY_ENTER = "\r"
KEY_ESCAPE = "\x1b"


@dataclass(frozen=True)
class KeyEvent:
    """A single key press, as a character or escape sequence."""

    key: str


@dataclass(frozen=True)
class ResizeEvent:
    """The terminal window changed size."""

    pass


InputEvent = KeyEvent | ResizeEvent


def parse_keys(data: str) -> list[str]:
    """Split a chunk of terminal input into individual keys.

    CSI sequences (``ESC [ params final``) and SS3 sequences (``ESC O x``)
    are kept whole; SS3 arrows are normalized to their CSI form.
    """
    keys: list[str] = []
    i = 0
    while i < len(data):
        ch = data[i]
        if ch != KEY_ESCAPE or i + 1 >= len(data):
            keys.append(ch)
            i += 1
            continue

        nxt = data[i + 1]
        if nxt == "[":
            j = i + 2
            # parameter and intermediate bytes, then one final byte
            while j < len(data) and not ("@" <= data[j] <= "~"):
                j += 1
            keys.append(data[i : j + 1])
            i = j + 1
        elif nxt == "O" and i + 2 < len(data):
            keys.append("\x1b[" + data[i + 2])
            i += 3
        else:
            keys.append(KEY_ESCAPE + nxt)
            i += 2
    return keys


def save_terminal_state() -> list[Any] | None:
    """Save current terminal state. Returns None if not a tty."""
    try:
        if sys.stdin.isatty():
            return termios.tcgetattr(sys.stdin.fileno())
    except termios.error:
        pass
    return None


def restore_terminal_state(state: list[Any] | None) -> None:
    """Restore terminal state if we have a saved state."""
    if state is not None:
        with contextlib.suppress(termios.error, OSError):
            termios.tcsetattr(sys.stdin.fileno(), termios.TCSADRAIN, state)


@contextlib.contextmanager
def cbreak_mode() -> Iterator[None]:
    """Put stdin in cbreak mode for the duration of the block.

    cbreak = no echo + char-at-a-time input, but output processing preserved
    so Rich's \\n to \\r\\n translation still works.
    """
    saved = save_terminal_state()
    if saved is None:
        yield
        return
    tty.setcbreak(sys.stdin.fileno())
    try:
        yield
    finally:
        restore_terminal_state(saved)


class TerminalInput:
    """Async stream of input events read from a file descriptor.

    Keys are read with ``loop.add_reader`` so waiting for input never blocks
    the event loop. SIGWINCH is reported as a ResizeEvent.
    """

    def __init__(self, fd: int | None = None):
        self.fd = sys.stdin.fileno() if fd is None else fd
        self._queue: asyncio.Queue[InputEvent] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._watching_resize = False

    def __enter__(self) -> TerminalInput:
        self._loop = asyncio.get_running_loop()
        self._loop.add_reader(self.fd, self._on_readable)
        if hasattr(signal, "SIGWINCH"):
            with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
                self._loop.add_signal_handler(signal.SIGWINCH, self._on_resize)
                self._watching_resize = True
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._loop is None:
            return
        self._loop.remove_reader(self.fd)
        if self._watching_resize:
            self._loop.remove_signal_handler(signal.SIGWINCH)
            self._watching_resize = False
        self._loop = None

    def _on_readable(self) -> None:
        try:
            data = os.read(self.fd, 1024)
        except OSError as e:
            tui_log(f"Terminal read failed: {e}")
            data = b""
        if not data:
            # EOF or hangup: stop watching so the loop doesn't spin on a dead fd
            if self._loop is not None:
                self._loop.remove_reader(self.fd)
            return
        for key in parse_keys(data.decode("utf-8", errors="replace")):
            self._queue.put_nowait(KeyEvent(key))

    def _on_resize(self) -> None:
        self._queue.put_nowait(ResizeEvent())

    async def next_event(self) -> InputEvent:
        """Wait for the next key press or resize."""
        return await self._queue.get()
