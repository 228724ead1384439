"""Enums shared by the GitHub snapshots and the monitor."""

import enum


class CheckConclusion(str, enum.Enum):
    """Check run conclusion enum."""

    SUCCESS = "success"
    FAILURE = "failure"
    NEUTRAL = "neutral"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    ACTION_REQUIRED = "action_required"
    STALE = "stale"
    SKIPPED = "skipped"
    STARTUP_FAILURE = "startup_failure"


class CommitState(str, enum.Enum):
    """Legacy commit status state."""

    ERROR = "error"
    FAILURE = "failure"
    PENDING = "pending"
    SUCCESS = "success"


class ReviewState(str, enum.Enum):
    """Pull request review state."""

    APPROVED = "APPROVED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"
    COMMENTED = "COMMENTED"
    DISMISSED = "DISMISSED"
    PENDING = "PENDING"


class CiConclusion(str, enum.Enum):
    """Folded CI outcome for one commit."""

    SUCCESS = "success"
    FAILURE = "failure"
    PENDING = "pending"


class CiSource(str, enum.Enum):
    """Which GitHub API produced a CI signal."""

    CHECK_RUNS = "check_runs"
    STATUSES = "statuses"


class StatusLabel(str, enum.Enum):
    """Canonical outcome computed for one branch in one poll cycle."""

    CI_FAILED = "ci_failed"
    CI_GREEN = "ci_green"
    PR_MERGED = "pr_merged"
    PR_APPROVED = "pr_approved"
    PR_CHANGES_REQUESTED = "pr_changes_requested"
    PR_NEW_COMMENT = "pr_new_comment"
    NONE = "none"


class NotificationEvent(str, enum.Enum):
    """Kinds of notification delivered to the consumer."""

    CI_SUCCESS = "ci_success"
    CI_FAILURE = "ci_failure"
    PR_APPROVED = "pr_approved"
    PR_CHANGES_REQUESTED = "pr_changes_requested"
    PR_MERGED = "pr_merged"
    PR_NEW_COMMENT = "pr_new_comment"

    @classmethod
    def for_label(cls, label: StatusLabel) -> "NotificationEvent | None":
        """Event announced when a branch moves to ``label``."""
        return _LABEL_EVENTS.get(label)


_LABEL_EVENTS = {
    StatusLabel.CI_FAILED: NotificationEvent.CI_FAILURE,
    StatusLabel.CI_GREEN: NotificationEvent.CI_SUCCESS,
    StatusLabel.PR_MERGED: NotificationEvent.PR_MERGED,
    StatusLabel.PR_APPROVED: NotificationEvent.PR_APPROVED,
    StatusLabel.PR_CHANGES_REQUESTED: NotificationEvent.PR_CHANGES_REQUESTED,
    StatusLabel.PR_NEW_COMMENT: NotificationEvent.PR_NEW_COMMENT,
}
