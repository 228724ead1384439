"""Remote status source: typed reads of one repository's CI and PR signals.

The source is stateless. Every method issues its own request(s) and either
returns decoded snapshots or raises a ``GitHubError``; nothing is retried.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any, TypeVar

from ..github.client import GitHubClient
from ..github.exceptions import GitHubDecodeError
from .models import (
    CheckRunSnapshot,
    CiSignal,
    CommitStatusSnapshot,
    IssueCommentSnapshot,
    PullRequestSnapshot,
    ReviewSnapshot,
    WorkflowRunSnapshot,
)
from .resolver import resolve_ci_signal

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _decode(parse: Callable[[Mapping[str, Any]], T], data: Any, what: str) -> T:
    if not isinstance(data, Mapping):
        kind = type(data).__name__
        raise GitHubDecodeError(f"Expected object for {what}, got {kind}")
    try:
        return parse(data)
    except (KeyError, TypeError, ValueError) as e:
        raise GitHubDecodeError(f"Malformed {what}: {e!r}") from e


def _decode_all(
    parse: Callable[[Mapping[str, Any]], T], items: Iterable[Any], what: str
) -> list[T]:
    return [_decode(parse, item, what) for item in items]


class RepositoryStatusSource:
    """Fetches branch, CI and pull request signals for one repository."""

    def __init__(self, client: GitHubClient, owner: str, repo: str):
        self.client = client
        self.owner = owner
        self.repo = repo

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    async def list_branch_names(self) -> list[str]:
        """Names of all branches in the repository."""
        paginator = self.client.list_branches(self.owner, self.repo)
        items = await paginator.collect_all()
        names = []
        for item in items:
            name = item.get("name")
            if not isinstance(name, str):
                raise GitHubDecodeError(
                    f"Branch entry without name in {self.full_name}"
                )
            names.append(name)
        if paginator.truncated:
            logger.warning(
                f"Branch list of {self.full_name} stopped after "
                f"{paginator.max_pages} pages; {len(names)} branches are tracked "
                f"and the rest are ignored"
            )
        return names

    async def get_latest_commit_sha(self, branch: str) -> str:
        """SHA of the head commit of ``branch``."""
        data = await self.client.get_branch(self.owner, self.repo, branch)
        try:
            sha = data["commit"]["sha"]
        except (KeyError, TypeError) as e:
            raise GitHubDecodeError(f"Branch '{branch}' without commit sha") from e
        if not isinstance(sha, str):
            raise GitHubDecodeError(f"Branch '{branch}' has non-string commit sha")
        return sha

    async def list_check_runs(self, sha: str) -> list[CheckRunSnapshot]:
        paginator = self.client.list_check_runs(self.owner, self.repo, sha)
        items = await paginator.collect_all()
        return _decode_all(CheckRunSnapshot.from_api, items, "check run")

    async def list_commit_statuses(self, sha: str) -> list[CommitStatusSnapshot]:
        """Legacy statuses for ``sha``, newest first."""
        data = await self.client.list_commit_statuses(self.owner, self.repo, sha)
        if not isinstance(data, list):
            raise GitHubDecodeError(f"Expected list of statuses for {sha}")
        return _decode_all(CommitStatusSnapshot.from_api, data, "commit status")

    async def get_ci_signal(self, sha: str) -> CiSignal:
        """CI outcome for ``sha`` from check runs, else legacy statuses.

        The statuses API is only queried when the commit has no check runs.
        """
        check_runs = await self.list_check_runs(sha)
        if check_runs:
            return resolve_ci_signal(check_runs)

        logger.debug(f"No check runs for {sha[:7]}, falling back to commit statuses")
        statuses = await self.list_commit_statuses(sha)
        return resolve_ci_signal(check_runs, statuses)

    async def find_pull_request(self, branch: str) -> PullRequestSnapshot | None:
        """Most recent pull request (any state) whose head is ``branch``."""
        paginator = self.client.list_pulls(
            self.owner,
            self.repo,
            state="all",
            head=f"{self.owner}:{branch}",
            per_page=10,
        )
        paginator.max_pages = 1
        items = await paginator.collect_all()
        pulls = _decode_all(PullRequestSnapshot.from_api, items, "pull request")
        # The head filter is ignored by GitHub for unknown owners; filter again
        pulls = [pr for pr in pulls if pr.head_ref == branch]
        if not pulls:
            return None
        return max(pulls, key=lambda pr: pr.number)

    async def get_pull_request(self, number: int) -> PullRequestSnapshot:
        """Pull request detail, authoritative for ``merged``."""
        data = await self.client.get_pull(self.owner, self.repo, number)
        return _decode(PullRequestSnapshot.from_api, data, "pull request")

    async def list_reviews(self, number: int) -> list[ReviewSnapshot]:
        paginator = self.client.list_reviews(self.owner, self.repo, number)
        items = await paginator.collect_all()
        return _decode_all(ReviewSnapshot.from_api, items, "review")

    async def list_issue_comments(self, number: int) -> list[IssueCommentSnapshot]:
        paginator = self.client.list_issue_comments(self.owner, self.repo, number)
        items = await paginator.collect_all()
        return _decode_all(IssueCommentSnapshot.from_api, items, "issue comment")

    async def list_workflow_runs(
        self, branch: str, created_after: datetime
    ) -> list[WorkflowRunSnapshot]:
        """Workflow runs on ``branch`` created at or after ``created_after``.

        Naive timestamps are taken as UTC.
        """
        if created_after.tzinfo is None:
            created_after = created_after.replace(tzinfo=UTC)
        paginator = self.client.list_workflow_runs(
            self.owner, self.repo, branch, created_after=created_after
        )
        items = await paginator.collect_all()
        runs = _decode_all(WorkflowRunSnapshot.from_api, items, "workflow run")
        return [run for run in runs if run.created_at >= created_after]
