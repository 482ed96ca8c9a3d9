"""Debug log for the dashboard.

The terminal is owned by the live display while the dashboard runs, so
diagnostics go to a file in the state directory instead of stderr.
"""

from __future__ import annotations

import time
from pathlib import Path

from prdash.paths import get_state_dir

LOG_NAME = "tui.log"


def get_log_path() -> Path:
    """Path of the debug log file."""
    return get_state_dir() / LOG_NAME


def tui_log(msg: str) -> None:
    """Append a timestamped message to the debug log."""
    try:
        path = get_log_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a") as f:
            f.write(f"{time.strftime('%Y-%m-%d %H:%M:%S')} {msg}\n")
    except OSError:
        pass
