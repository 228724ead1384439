"""Repository monitor: CI and pull request status polling.

Main components:
- RepositoryStatusSource: typed reads of GitHub branch, CI and PR signals
- resolver: pure folding of those signals into one StatusLabel per branch
- ReconciliationEngine: poll cycle, per-branch state diffing, notifications
- NotificationChannel: ordered at-most-once delivery to one consumer
- StateStore: JSON persistence of per-branch state
"""

from .channel import ChannelClosedError, NotificationChannel
from .engine import CycleReport, ReconciliationConfig, ReconciliationEngine
from .models import (
    BranchObservation,
    CheckRunSnapshot,
    CiSignal,
    CommitStatusSnapshot,
    IssueCommentSnapshot,
    MonitoredState,
    PullRequestSnapshot,
    ReviewSignal,
    ReviewSnapshot,
    WorkflowRunSnapshot,
)
from .resolver import (
    SignalUnavailableError,
    fold_check_runs,
    fold_commit_statuses,
    fold_reviews,
    resolve_ci_signal,
    resolve_status_label,
)
from .source import RepositoryStatusSource
from .state import MonitorState, StateStore

__all__ = [
    "BranchObservation",
    "ChannelClosedError",
    "CheckRunSnapshot",
    "CiSignal",
    "CommitStatusSnapshot",
    "CycleReport",
    "IssueCommentSnapshot",
    "MonitorState",
    "MonitoredState",
    "NotificationChannel",
    "PullRequestSnapshot",
    "ReconciliationConfig",
    "ReconciliationEngine",
    "RepositoryStatusSource",
    "ReviewSignal",
    "ReviewSnapshot",
    "SignalUnavailableError",
    "StateStore",
    "WorkflowRunSnapshot",
    "fold_check_runs",
    "fold_commit_statuses",
    "fold_reviews",
    "resolve_ci_signal",
    "resolve_status_label",
]
