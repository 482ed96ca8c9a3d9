"""Key bindings: turn terminal input into dashboard actions."""

from __future__ import annotations

from dataclasses import replace
from enum import Enum

from prdash.log import tui_log
from prdash.state import AppState
from prdash.tasks import TaskSupervisor
from prdash.terminal import KEY_DOWN, KEY_ENTER, KEY_UP, InputEvent, KeyEvent


class Action(Enum):
    """Everything a key press can do."""

    REFRESH = "refresh"
    QUIT = "quit"
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    ACTIVATE = "activate"
    REBASE = "rebase"
    NONE = "none"


KEYMAP: dict[str, Action] = {
    "r": Action.REFRESH,
    "R": Action.REFRESH,
    "q": Action.QUIT,
    "Q": Action.QUIT,
    KEY_UP: Action.MOVE_UP,
    "k": Action.MOVE_UP,
    KEY_DOWN: Action.MOVE_DOWN,
    "j": Action.MOVE_DOWN,
    KEY_ENTER: Action.ACTIVATE,
    "\n": Action.ACTIVATE,
    "s": Action.REBASE,
}


def action_for(event: InputEvent) -> Action:
    """Look up the action bound to an input event. Non-key input does nothing."""
    if not isinstance(event, KeyEvent):
        return Action.NONE
    return KEYMAP.get(event.key, Action.NONE)


class Selection:
    """Cursor into the PR list. ``index`` is None when nothing is selected."""

    def __init__(self, index: int | None = None):
        self.index = index

    def __repr__(self) -> str:
        return f"Selection({self.index!r})"

    def clamp(self, length: int) -> int | None:
        """Keep the cursor inside a list of ``length`` rows."""
        if length <= 0:
            self.index = None
        elif self.index is not None:
            self.index = max(0, min(self.index, length - 1))
        return self.index

    def move_up(self, length: int) -> None:
        if length <= 0:
            return
        self.index = 0 if self.index is None else max(self.index - 1, 0)

    def move_down(self, length: int) -> None:
        if length <= 0:
            return
        self.index = 0 if self.index is None else min(self.index + 1, length - 1)


class InputDispatcher:
    """Applies key presses to the selection and starts background work."""

    def __init__(self, supervisor: TaskSupervisor, selection: Selection | None = None):
        self.supervisor = supervisor
        self.selection = selection if selection is not None else Selection()

    def dispatch(self, event: InputEvent, state: AppState) -> tuple[AppState, Action]:
        """Handle one input event.

        Returns the resulting state (only QUIT changes it) and the action taken.
        """
        action = action_for(event)
        if action is Action.NONE:
            return state, action

        tui_log(f"Key action: {action.value}")
        count = len(state.prs)
        self.selection.clamp(count)

        if action is Action.QUIT:
            return replace(state, done=True), action
        if action is Action.REFRESH:
            self.supervisor.refresh_pull_requests()
        elif action is Action.MOVE_UP:
            self.selection.move_up(count)
        elif action is Action.MOVE_DOWN:
            self.selection.move_down(count)
        elif action is Action.ACTIVATE:
            if self.selection.index is not None:
                self.supervisor.open_externally(state.prs[self.selection.index].url)
        elif action is Action.REBASE:
            if self.selection.index is not None:
                self.supervisor.rebase(state.prs[self.selection.index])

        return state, action
