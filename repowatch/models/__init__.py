"""Shared enums for repowatch."""

from .enums import (
    CheckConclusion,
    CiConclusion,
    CiSource,
    CommitState,
    NotificationEvent,
    ReviewState,
    StatusLabel,
)

__all__ = [
    "CheckConclusion",
    "CiConclusion",
    "CiSource",
    "CommitState",
    "NotificationEvent",
    "ReviewState",
    "StatusLabel",
]
