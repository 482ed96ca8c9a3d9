"""Tests for state transitions."""

from __future__ import annotations

import pytest

from prdash.events import FetchedBranchCommit, FetchedPullRequests, Failure
from prdash.models import BranchCommitIndex
from prdash.state import AppState, apply, one_line
from tests.conftest import make_pr


def test_initial_state():
    state = AppState()
    assert state.prs == ()
    assert len(state.branches) == 0
    assert state.error_message is None
    assert state.done is False


def test_fetched_pull_requests_replaces_list():
    a = (make_pr(1), make_pr(2), make_pr(3))
    b = (make_pr(4),)

    state = apply(apply(AppState(), FetchedPullRequests(a)), FetchedPullRequests(b))

    assert state.prs == b


def test_fetched_pull_requests_keeps_other_fields():
    start = AppState(branches=BranchCommitIndex({"main": "abc"}), error_message="old")
    state = apply(start, FetchedPullRequests((make_pr(1),)))

    assert state.branches == start.branches
    assert state.error_message == "old"


def test_fetched_branch_commit_upserts():
    state = apply(AppState(), FetchedBranchCommit("main", "abc123"))
    state = apply(state, FetchedBranchCommit("dev", "fff000"))
    state = apply(state, FetchedBranchCommit("main", "def456"))

    assert dict(state.branches) == {"main": "def456", "dev": "fff000"}


def test_fetched_branch_commit_is_idempotent():
    event = FetchedBranchCommit("main", "abc123")
    once = apply(AppState(), event)
    twice = apply(once, event)

    assert once.branches == twice.branches


def test_failure_collapses_newlines():
    state = apply(AppState(), Failure("line1\nline2"))
    assert state.error_message == "line1 line2"


def test_failure_overwrites_previous():
    state = apply(AppState(), Failure("first"))
    state = apply(state, Failure("second\n"))
    assert state.error_message == "second"


def test_apply_does_not_mutate_input():
    start = AppState()
    apply(start, FetchedPullRequests((make_pr(1),)))
    apply(start, FetchedBranchCommit("main", "abc"))

    assert start == AppState()


def test_unknown_event_rejected():
    with pytest.raises(TypeError):
        apply(AppState(), object())


@pytest.mark.parametrize(
    "message,expected",
    [
        ("single", "single"),
        ("a\nb\nc", "a b c"),
        ("windows\r\nline", "windows line"),
        ("trailing\n", "trailing"),
    ],
)
def test_one_line(message, expected):
    assert one_line(message) == expected
