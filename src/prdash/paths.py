"""Where prdash keeps its files.

Each directory is looked up in order: a PRDASH_* override, the matching XDG
base directory, then the XDG default under the home directory.
"""

from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "prdash"


def _base_dir(override_var: str, xdg_var: str, default: tuple[str, ...]) -> Path:
    if override := os.environ.get(override_var):
        return Path(override).expanduser()
    if xdg_home := os.environ.get(xdg_var):
        return Path(xdg_home) / APP_NAME
    return Path.home().joinpath(*default, APP_NAME)


def get_config_dir() -> Path:
    """Directory holding config.toml."""
    return _base_dir("PRDASH_CONFIG_DIR", "XDG_CONFIG_HOME", (".config",))


def get_state_dir() -> Path:
    """Directory for runtime files such as the debug log."""
    return _base_dir("PRDASH_STATE_DIR", "XDG_STATE_HOME", (".local", "state"))


def get_global_config_path() -> Path:
    return get_config_dir() / "config.toml"
