"""Pull request, check and branch commit models."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Mergeable(Enum):
    """Raw mergeability verdict reported by GitHub."""

    OK = "MERGEABLE"
    CONFLICT = "CONFLICTING"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> Mergeable:
        try:
            return cls(_text(value).upper())
        except ValueError:
            return cls.UNKNOWN


class SyncStatus(Enum):
    """Derived mergeability, combining the raw verdict with base freshness."""

    UP_TO_DATE = "Up to date"
    BEHIND = "Behind"
    UNSYNCED = "Unsynced"
    CONFLICT = "Conflict"
    UNKNOWN = "Unknown"


class CheckVerdict(Enum):
    """Conclusion of a CI check."""

    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class CheckProgress(Enum):
    """Completion state of a CI check."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CheckRollup(Enum):
    """Overall CI state of a pull request."""

    SUCCESS = "success"
    PENDING = "pending"
    FAILURE = "failure"


class CheckKind(Enum):
    """Shape of a check record, as named by GitHub's __typename."""

    CHECK_RUN = "CheckRun"
    STATUS_CONTEXT = "StatusContext"


_VERDICTS = {
    "SUCCESS": CheckVerdict.SUCCESS,
    "FAILURE": CheckVerdict.FAILURE,
    "ERROR": CheckVerdict.FAILURE,
    "TIMED_OUT": CheckVerdict.FAILURE,
    "ACTION_REQUIRED": CheckVerdict.FAILURE,
    "STARTUP_FAILURE": CheckVerdict.FAILURE,
    "SKIPPED": CheckVerdict.SKIPPED,
    "NEUTRAL": CheckVerdict.SKIPPED,
    "CANCELLED": CheckVerdict.CANCELLED,
    "STALE": CheckVerdict.CANCELLED,
}

_RUN_PROGRESS = {
    "COMPLETED": CheckProgress.COMPLETED,
    "IN_PROGRESS": CheckProgress.IN_PROGRESS,
}


def _text(value: Any) -> str:
    """Coerce a JSON scalar to a string; null becomes empty."""
    return "" if value is None else str(value)


@dataclass(frozen=True)
class CheckRecord:
    """A single CI signal attached to a pull request.

    Check runs carry a completion ``status`` and a ``conclusion``. Status
    contexts only carry a ``state``, stored here as the conclusion, and
    always count as complete.
    """

    kind: CheckKind
    name: str
    conclusion: str = ""
    status: str = ""

    @classmethod
    def check_run(cls, name: Any, status: Any = "COMPLETED", conclusion: Any = "") -> CheckRecord:
        return cls(
            CheckKind.CHECK_RUN,
            _text(name),
            conclusion=_text(conclusion).upper(),
            status=_text(status).upper(),
        )

    @classmethod
    def status_context(cls, context: Any, state: Any = "") -> CheckRecord:
        return cls(CheckKind.STATUS_CONTEXT, _text(context), conclusion=_text(state).upper())

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> CheckRecord:
        """Build a record from one statusCheckRollup entry."""
        if data.get("__typename") == CheckKind.STATUS_CONTEXT.value or (
            "context" in data and "name" not in data
        ):
            return cls.status_context(data.get("context"), data.get("state"))
        return cls.check_run(
            data.get("name"),
            data.get("status") or "COMPLETED",
            data.get("conclusion"),
        )

    @property
    def verdict(self) -> CheckVerdict:
        return _VERDICTS.get(self.conclusion, CheckVerdict.UNKNOWN)

    @property
    def progress(self) -> CheckProgress:
        if self.kind is CheckKind.STATUS_CONTEXT:
            return CheckProgress.COMPLETED
        return _RUN_PROGRESS.get(self.status, CheckProgress.QUEUED)

    @property
    def is_pending(self) -> bool:
        return self.progress is not CheckProgress.COMPLETED


@dataclass(frozen=True)
class PullRequest:
    """An open pull request as last fetched from GitHub."""

    number: int
    title: str = ""
    branch: str = ""
    base_name: str = ""
    base_commit: str = ""
    url: str = ""
    draft: bool = False
    mergeable: Mergeable = Mergeable.UNKNOWN
    checks: tuple[CheckRecord, ...] = field(default_factory=tuple)

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> PullRequest:
        """Build a pull request from one `gh pr list --json` entry."""
        return cls(
            number=int(data.get("number") or 0),
            title=_text(data.get("title")),
            branch=_text(data.get("headRefName")),
            base_name=_text(data.get("baseRefName")),
            base_commit=_text(data.get("baseRefOid")),
            url=_text(data.get("url")),
            draft=bool(data.get("isDraft", False)),
            mergeable=Mergeable.parse(data.get("mergeable")),
            checks=tuple(
                CheckRecord.from_json(check)
                for check in data.get("statusCheckRollup") or []
                if isinstance(check, Mapping)
            ),
        )

    def checks_passed(self) -> bool:
        """True when no check has failed."""
        return not any(c.verdict is CheckVerdict.FAILURE for c in self.checks)

    def checks_passing(self) -> int:
        return sum(1 for c in self.checks if c.verdict is CheckVerdict.SUCCESS)

    def checks_scheduled(self) -> int:
        return sum(1 for c in self.checks if c.verdict is not CheckVerdict.SKIPPED)

    def checks_pending(self) -> int:
        return sum(1 for c in self.checks if c.is_pending)

    def checks_rollup(self) -> CheckRollup:
        """Summarize CI: any failure wins, then anything still running."""
        if not self.checks_passed():
            return CheckRollup.FAILURE
        return CheckRollup.PENDING if self.checks_pending() else CheckRollup.SUCCESS

    def sync_status(self, index: BranchCommitIndex) -> SyncStatus:
        """Derive the displayed mergeability against the known base commits."""
        if self.mergeable is Mergeable.CONFLICT:
            return SyncStatus.CONFLICT
        if self.mergeable is Mergeable.UNKNOWN:
            return SyncStatus.UNKNOWN

        matches = index.matches(self.base_name, self.base_commit)
        if matches is None:
            return SyncStatus.UNSYNCED
        return SyncStatus.UP_TO_DATE if matches else SyncStatus.BEHIND


class BranchCommitIndex(Mapping[str, str]):
    """Latest known commit per branch name.

    Entries are only ever added or overwritten; ``with_commit`` returns a new
    index so state transitions stay pure.
    """

    __slots__ = ("_commits",)

    def __init__(self, commits: Mapping[str, str] | None = None) -> None:
        self._commits: dict[str, str] = dict(commits or {})

    def __getitem__(self, branch: str) -> str:
        return self._commits[branch]

    def __iter__(self) -> Iterator[str]:
        return iter(self._commits)

    def __len__(self) -> int:
        return len(self._commits)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, BranchCommitIndex):
            return self._commits == other._commits
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._commits.items()))

    def __repr__(self) -> str:
        return f"BranchCommitIndex({self._commits!r})"

    def with_commit(self, branch: str, commit: str) -> BranchCommitIndex:
        if self._commits.get(branch) == commit:
            return self
        updated = dict(self._commits)
        updated[branch] = commit
        return BranchCommitIndex(updated)

    def matches(self, branch: str, commit: str) -> bool | None:
        """Compare a commit against the index entry for ``branch``.

        Returns None when the branch is not known.
        """
        known = self._commits.get(branch)
        if known is None:
            return None
        return known == commit
