"""Folding of raw CI and review data into one ``StatusLabel`` per branch.

Everything here is a pure function of its arguments: the same check runs,
statuses, pull request and reviews always resolve to the same label.

Precedence, highest first:

1. a failing CI signal (``CI_FAILED``), before any pull request logic runs
2. a merged pull request (``PR_MERGED``)
3. the newest-first review fold (approved, changes requested, comment)
4. a green CI signal (``CI_GREEN``), else ``NONE``
"""

from collections.abc import Iterable, Sequence

from ..models.enums import (
    CheckConclusion,
    CiConclusion,
    CiSource,
    CommitState,
    ReviewState,
    StatusLabel,
)
from .models import (
    BranchObservation,
    CheckRunSnapshot,
    CiSignal,
    CommitStatusSnapshot,
    ReviewSignal,
    ReviewSnapshot,
)

FAILING_CONCLUSIONS = frozenset(
    conclusion.value
    for conclusion in (
        CheckConclusion.FAILURE,
        CheckConclusion.TIMED_OUT,
        CheckConclusion.CANCELLED,
    )
)
FAILING_COMMIT_STATES = frozenset(
    state.value for state in (CommitState.FAILURE, CommitState.ERROR)
)


class SignalUnavailableError(Exception):
    """A signal needed to label a branch could not be fetched this cycle."""

    def __init__(self, signal: str, branch: str):
        super().__init__(f"{signal} signal unavailable for branch '{branch}'")
        self.signal = signal
        self.branch = branch


def fold_check_runs(check_runs: Iterable[CheckRunSnapshot]) -> CiConclusion | None:
    """Fold check runs for a commit; ``None`` when there are none."""
    conclusions = [run.conclusion for run in check_runs]
    if not conclusions:
        return None
    if any(conclusion in FAILING_CONCLUSIONS for conclusion in conclusions):
        return CiConclusion.FAILURE
    if all(conclusion == CheckConclusion.SUCCESS for conclusion in conclusions):
        return CiConclusion.SUCCESS
    return CiConclusion.PENDING


def fold_commit_statuses(statuses: Sequence[CommitStatusSnapshot]) -> CiConclusion:
    """Fold legacy statuses, which GitHub lists newest first."""
    if not statuses:
        return CiConclusion.PENDING
    state = statuses[0].state
    if state in FAILING_COMMIT_STATES:
        return CiConclusion.FAILURE
    if state == CommitState.SUCCESS:
        return CiConclusion.SUCCESS
    return CiConclusion.PENDING


def resolve_ci_signal(
    check_runs: Sequence[CheckRunSnapshot],
    statuses: Sequence[CommitStatusSnapshot] | None = None,
) -> CiSignal:
    """Prefer check runs; fall back to legacy statuses when none exist."""
    conclusion = fold_check_runs(check_runs)
    if conclusion is not None:
        return CiSignal(conclusion, CiSource.CHECK_RUNS)
    return CiSignal(fold_commit_statuses(statuses or ()), CiSource.STATUSES)


def _newest_first(reviews: Iterable[ReviewSnapshot]) -> list[ReviewSnapshot]:
    # Reviews without submitted_at (pending drafts) sort oldest; API order breaks ties
    indexed = list(enumerate(reviews))
    indexed.sort(
        key=lambda pair: (
            pair[1].submitted_at.timestamp()
            if pair[1].submitted_at is not None
            else float("-inf"),
            pair[0],
        ),
        reverse=True,
    )
    return [review for _, review in indexed]


def fold_reviews(reviews: Iterable[ReviewSnapshot]) -> ReviewSignal:
    """Scan reviews newest-first.

    The newest approval ends the scan. Requested changes are remembered
    while scanning continues. A comment counts only when no decisive review
    was found.
    """
    approved = False
    changes_requested = False
    commented = False

    for review in _newest_first(reviews):
        if review.state == ReviewState.APPROVED:
            approved = True
            break
        if review.state == ReviewState.CHANGES_REQUESTED:
            changes_requested = True
        elif review.state == ReviewState.COMMENTED:
            commented = True

    return ReviewSignal(
        approved=approved,
        changes_requested=changes_requested and not approved,
        new_comment=commented and not (approved or changes_requested),
    )


PULL_REQUEST_LABELS = frozenset(
    {
        StatusLabel.PR_MERGED,
        StatusLabel.PR_APPROVED,
        StatusLabel.PR_CHANGES_REQUESTED,
        StatusLabel.PR_NEW_COMMENT,
    }
)


def _keep_previous_review_side(
    previous: StatusLabel | None, signal: str, branch: str
) -> None:
    # Resolving from CI alone is only safe when the last label came from CI.
    if previous is None or previous in PULL_REQUEST_LABELS:
        raise SignalUnavailableError(signal, branch)


def resolve_status_label(
    observation: BranchObservation, previous: StatusLabel | None = None
) -> StatusLabel:
    """Resolve the single label for a branch observation.

    A failed pull request or review fetch does not hold back CI: when the
    ``previous`` label was CI-level, the branch is labelled from CI alone.

    Raises:
        SignalUnavailableError: If the decision depends on a signal whose
            fetch failed this cycle
    """
    branch = observation.branch
    ci = observation.ci
    if ci is None:
        raise SignalUnavailableError("ci", branch)
    if ci.conclusion == CiConclusion.FAILURE:
        return StatusLabel.CI_FAILED

    if not observation.pull_request_checks_skipped:
        pull_request = observation.pull_request
        if not observation.pull_request_available:
            _keep_previous_review_side(previous, "pull_request", branch)
        elif pull_request is not None:
            if pull_request.merged:
                return StatusLabel.PR_MERGED
            if observation.reviews is None:
                _keep_previous_review_side(previous, "reviews", branch)
            else:
                review = fold_reviews(observation.reviews)
                if review.approved:
                    return StatusLabel.PR_APPROVED
                if review.changes_requested:
                    return StatusLabel.PR_CHANGES_REQUESTED
                if review.new_comment:
                    return StatusLabel.PR_NEW_COMMENT

    if ci.conclusion == CiConclusion.SUCCESS:
        return StatusLabel.CI_GREEN
    return StatusLabel.NONE
