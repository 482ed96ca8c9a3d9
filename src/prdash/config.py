"""Configuration loading for prdash."""

from __future__ import annotations

import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from prdash.paths import get_global_config_path


class ConfigError(Exception):
    """Invalid or unreadable configuration."""

    pass


def default_opener() -> str:
    """Return the platform's URL opener command."""
    return "open" if sys.platform == "darwin" else "xdg-open"


@dataclass
class DashboardConfig:
    """Settings for the interactive dashboard."""

    repo: str | None = None
    base_branch: str = "master"
    tick_interval: float = 0.05
    auto_refresh_interval: float = 60.0
    event_capacity: int = 32
    shutdown_grace: float = 0.0
    opener: str = field(default_factory=default_opener)


@dataclass
class Config:
    """Top-level prdash configuration."""

    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    path: Path | None = None


_FLOAT_KEYS = ("tick_interval", "auto_refresh_interval", "shutdown_grace")
_STR_KEYS = ("repo", "base_branch", "opener")


def _parse_dashboard(data: dict[str, Any]) -> DashboardConfig:
    """Validate the [dashboard] table and build a DashboardConfig."""
    config = DashboardConfig()

    for key, value in data.items():
        if key in _FLOAT_KEYS:
            # bool is an int subclass but never a valid duration
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"dashboard.{key} must be a number, got {value!r}")
            setattr(config, key, float(value))
        elif key == "event_capacity":
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"dashboard.event_capacity must be an integer, got {value!r}")
            config.event_capacity = value
        elif key in _STR_KEYS:
            if not isinstance(value, str) or not value:
                raise ConfigError(f"dashboard.{key} must be a non-empty string, got {value!r}")
            setattr(config, key, value)
        else:
            raise ConfigError(f"Unknown setting: dashboard.{key}")

    if config.tick_interval <= 0:
        raise ConfigError("dashboard.tick_interval must be positive")
    if config.auto_refresh_interval <= 0:
        raise ConfigError("dashboard.auto_refresh_interval must be positive")
    if config.event_capacity < 1:
        raise ConfigError("dashboard.event_capacity must be at least 1")
    if config.shutdown_grace < 0:
        raise ConfigError("dashboard.shutdown_grace cannot be negative")

    return config


def load_config(path: Path | None = None) -> Config:
    """Load configuration from a TOML file.

    Args:
        path: Explicit config file. When omitted the global config path is
            used, and a missing global file yields the defaults.

    Returns:
        Parsed Config
    """
    explicit = path is not None
    config_path = path if path is not None else get_global_config_path()

    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        return Config()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read {config_path}: {e}") from e

    dashboard = data.get("dashboard", {})
    if not isinstance(dashboard, dict):
        raise ConfigError("[dashboard] must be a table")

    return Config(dashboard=_parse_dashboard(dashboard), path=config_path)
