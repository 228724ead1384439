"""Data models for the repository monitor.

Snapshots are immutable views of GitHub payloads, decoded by the status
source. Signals and observations are what the resolver folds into a
``StatusLabel``; ``MonitoredState`` is what the engine remembers per branch.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..models.enums import CiConclusion, CiSource, StatusLabel


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a GitHub ISO-8601 timestamp; ``None`` stays ``None``."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"Expected timestamp string, got {type(value).__name__}")
    return datetime.fromisoformat(value)


def _login(data: Mapping[str, Any]) -> str | None:
    user = data.get("user")
    if isinstance(user, Mapping):
        login = user.get("login")
        return str(login) if login is not None else None
    return None


@dataclass(frozen=True)
class CheckRunSnapshot:
    """A check run reported for a commit."""

    id: int
    name: str
    status: str
    conclusion: str | None = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "CheckRunSnapshot":
        conclusion = data.get("conclusion")
        return cls(
            id=int(data["id"]),
            name=str(data.get("name", "")),
            status=str(data["status"]),
            conclusion=str(conclusion) if conclusion is not None else None,
        )


@dataclass(frozen=True)
class CommitStatusSnapshot:
    """A legacy commit status entry."""

    id: int
    state: str
    context: str = "default"
    created_at: datetime | None = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "CommitStatusSnapshot":
        return cls(
            id=int(data["id"]),
            state=str(data["state"]),
            context=str(data.get("context") or "default"),
            created_at=parse_timestamp(data.get("created_at")),
        )


@dataclass(frozen=True)
class PullRequestSnapshot:
    """A pull request, from either the list or the detail endpoint.

    The list endpoint omits ``merged``; ``merged_at`` is used instead.
    """

    number: int
    state: str
    head_ref: str
    head_sha: str
    merged: bool = False
    merged_at: datetime | None = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "PullRequestSnapshot":
        head = data["head"]
        merged_at = parse_timestamp(data.get("merged_at"))
        merged = data.get("merged")
        return cls(
            number=int(data["number"]),
            state=str(data["state"]),
            head_ref=str(head["ref"]),
            head_sha=str(head["sha"]),
            merged=bool(merged) if merged is not None else merged_at is not None,
            merged_at=merged_at,
        )


@dataclass(frozen=True)
class ReviewSnapshot:
    """A pull request review."""

    id: int
    state: str
    submitted_at: datetime | None = None
    author: str | None = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "ReviewSnapshot":
        return cls(
            id=int(data["id"]),
            state=str(data["state"]).upper(),
            submitted_at=parse_timestamp(data.get("submitted_at")),
            author=_login(data),
        )


@dataclass(frozen=True)
class IssueCommentSnapshot:
    """A conversation comment on a pull request."""

    id: int
    created_at: datetime
    author: str | None = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "IssueCommentSnapshot":
        created_at = parse_timestamp(data["created_at"])
        if created_at is None:
            raise ValueError("Issue comment without created_at")
        return cls(id=int(data["id"]), created_at=created_at, author=_login(data))


@dataclass(frozen=True)
class WorkflowRunSnapshot:
    """A GitHub Actions workflow run."""

    id: int
    name: str
    status: str
    conclusion: str | None
    head_sha: str
    created_at: datetime

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "WorkflowRunSnapshot":
        created_at = parse_timestamp(data["created_at"])
        if created_at is None:
            raise ValueError("Workflow run without created_at")
        conclusion = data.get("conclusion")
        return cls(
            id=int(data["id"]),
            name=str(data.get("name") or ""),
            status=str(data["status"]),
            conclusion=str(conclusion) if conclusion is not None else None,
            head_sha=str(data.get("head_sha", "")),
            created_at=created_at,
        )


@dataclass(frozen=True)
class CiSignal:
    """Folded CI outcome for one commit."""

    conclusion: CiConclusion
    source: CiSource


@dataclass(frozen=True)
class ReviewSignal:
    """Folded review flags for one pull request."""

    approved: bool = False
    changes_requested: bool = False
    new_comment: bool = False


@dataclass(frozen=True)
class BranchObservation:
    """Everything fetched for one branch in one poll cycle.

    ``ci`` and ``reviews`` are ``None`` when their fetch failed.
    ``pull_request_available`` is False when the PR lookup itself failed,
    which is distinct from ``pull_request`` being ``None`` (no PR exists).
    ``pull_request_checks_skipped`` marks terminal (merged) branches.
    """

    branch: str
    head_sha: str
    ci: CiSignal | None = None
    pull_request: PullRequestSnapshot | None = None
    pull_request_available: bool = True
    reviews: tuple[ReviewSnapshot, ...] | None = ()
    pull_request_checks_skipped: bool = False


@dataclass
class MonitoredState:
    """What the engine remembers about one branch between cycles."""

    last_seen_sha: str
    last_notified_label: StatusLabel
    merged: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_seen_sha": self.last_seen_sha,
            "last_notified_label": self.last_notified_label.value,
            "merged": self.merged,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MonitoredState":
        """Rebuild a record from its persisted form.

        Raises:
            KeyError, TypeError, ValueError: If the record is malformed
        """
        sha = data["last_seen_sha"]
        if not isinstance(sha, str):
            raise TypeError("last_seen_sha must be a string")
        return cls(
            last_seen_sha=sha,
            last_notified_label=StatusLabel(data["last_notified_label"]),
            merged=bool(data.get("merged", False)),
        )
