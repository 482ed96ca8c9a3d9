from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from prdash.events import EventBus
from prdash.models import CheckRecord, Mergeable, PullRequest
from prdash.tasks import TaskSupervisor


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Keep config lookups and the debug log inside the test's tmp dir."""
    monkeypatch.setenv("PRDASH_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("PRDASH_STATE_DIR", str(tmp_path / "state"))
    return tmp_path


def make_pr(
    number: int = 42,
    mergeable: Mergeable = Mergeable.OK,
    base_name: str = "main",
    base_commit: str = "abc123",
    checks: tuple[CheckRecord, ...] = (),
    **kwargs,
) -> PullRequest:
    return PullRequest(
        number=number,
        title=kwargs.pop("title", f"PR {number}"),
        branch=kwargs.pop("branch", f"feature-{number}"),
        base_name=base_name,
        base_commit=base_commit,
        url=kwargs.pop("url", f"https://github.com/owner/repo/pull/{number}"),
        mergeable=mergeable,
        checks=checks,
        **kwargs,
    )


@pytest.fixture
def gh_client() -> SimpleNamespace:
    """Stand-in for the prdash.github module with async mocks."""
    return SimpleNamespace(
        list_pull_requests=AsyncMock(return_value=()),
        get_branch_commit=AsyncMock(return_value="abc123"),
        update_branch=AsyncMock(return_value=None),
        open_url=AsyncMock(return_value=None),
    )


@pytest.fixture
def bus() -> EventBus:
    return EventBus(capacity=8)


@pytest.fixture
def supervisor(bus, gh_client) -> TaskSupervisor:
    return TaskSupervisor("owner/repo", bus, client=gh_client, opener="xdg-open")
