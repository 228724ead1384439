"""
Shared test helpers.

Payload builders shaped like GitHub REST responses and an
in-memory status source for driving the reconciliation engine.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from repowatch.github.exceptions import GitHubError
from repowatch.models.enums import CiConclusion, CiSource
from repowatch.monitor.models import CiSignal, PullRequestSnapshot, ReviewSnapshot

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def at(minutes: int) -> datetime:
    """Timestamp ``minutes`` after a fixed base time."""
    return BASE_TIME + timedelta(minutes=minutes)


def review(review_id: int, state: str, minutes: int | None) -> ReviewSnapshot:
    return ReviewSnapshot(
        id=review_id,
        state=state,
        submitted_at=at(minutes) if minutes is not None else None,
        author="reviewer",
    )


def pull_request(
    number: int = 7, branch: str = "feature-x", sha: str = "a1", merged: bool = False
) -> PullRequestSnapshot:
    return PullRequestSnapshot(
        number=number,
        state="closed" if merged else "open",
        head_ref=branch,
        head_sha=sha,
        merged=merged,
        merged_at=at(0) if merged else None,
    )


def ci(conclusion: CiConclusion) -> CiSignal:
    return CiSignal(conclusion, CiSource.CHECK_RUNS)


def pull_payload(
    number: int,
    branch: str,
    sha: str = "a1",
    state: str = "open",
    merged_at: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Pull request object as returned by the pulls API."""
    data = {
        "number": number,
        "state": state,
        "head": {"ref": branch, "sha": sha},
        "merged_at": merged_at,
    }
    data.update(extra)
    return data


class FakeStatusSource:
    """In-memory stand-in for ``RepositoryStatusSource``.

    Tests mutate ``branches``, ``shas``, ``ci``, ``pulls`` and ``reviews``
    between cycles. Any value may be an exception instance, which is raised
    by the corresponding call.
    """

    def __init__(self) -> None:
        self.owner = "octo"
        self.repo = "widgets"
        self.branches: list[str] | Exception = []
        self.shas: dict[str, str | Exception] = {}
        self.ci: dict[str, CiSignal | Exception] = {}
        self.pulls: dict[str, PullRequestSnapshot | None | Exception] = {}
        self.reviews: dict[int, list[ReviewSnapshot] | Exception] = {}
        self.calls: list[tuple[str, Any]] = []

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @staticmethod
    def _value(value: Any) -> Any:
        if isinstance(value, Exception):
            raise value
        return value

    def set_branch(
        self,
        name: str,
        sha: str,
        conclusion: CiConclusion = CiConclusion.PENDING,
        pr: PullRequestSnapshot | None = None,
        reviews: list[ReviewSnapshot] | None = None,
    ) -> None:
        if isinstance(self.branches, list) and name not in self.branches:
            self.branches.append(name)
        self.shas[name] = sha
        self.ci[sha] = ci(conclusion)
        self.pulls[name] = pr
        if pr is not None:
            self.reviews[pr.number] = reviews or []

    async def list_branch_names(self) -> list[str]:
        self.calls.append(("list_branch_names", None))
        return list(self._value(self.branches))

    async def get_latest_commit_sha(self, branch: str) -> str:
        self.calls.append(("get_latest_commit_sha", branch))
        if branch not in self.shas:
            raise GitHubError(f"Branch {branch} not found", status_code=404)
        return self._value(self.shas[branch])

    async def get_ci_signal(self, sha: str) -> CiSignal:
        self.calls.append(("get_ci_signal", sha))
        return self._value(self.ci.get(sha, ci(CiConclusion.PENDING)))

    async def find_pull_request(self, branch: str) -> PullRequestSnapshot | None:
        self.calls.append(("find_pull_request", branch))
        return self._value(self.pulls.get(branch))

    async def get_pull_request(self, number: int) -> PullRequestSnapshot:
        self.calls.append(("get_pull_request", number))
        for pr in self.pulls.values():
            if isinstance(pr, PullRequestSnapshot) and pr.number == number:
                return pr
        raise GitHubError(f"Pull request {number} not found", status_code=404)

    async def list_reviews(self, number: int) -> list[ReviewSnapshot]:
        self.calls.append(("list_reviews", number))
        return list(self._value(self.reviews.get(number, [])))

    def called(self, name: str) -> list[Any]:
        return [arg for call, arg in self.calls if call == name]
