"""Reconciliation engine: one poll cycle over every tracked branch.

Each cycle refreshes the branch roster, fetches CI and pull request signals
for every branch concurrently, resolves one ``StatusLabel`` per branch and
compares it with the stored ``MonitoredState``:

- unseen branch: record label and sha, notify nothing
- label or sha changed to something other than ``NONE``: notify, record
- otherwise: nothing

Branches move Unseen -> Tracked -> Merged; a branch that disappears from the
remote is forgotten. A Merged branch never has its pull request re-evaluated,
but a new commit on it is still checked for CI.

Fetch failures are contained to the branch they hit. A failed CI fetch
leaves its stored state untouched for the cycle; a failed pull request or
review fetch does so only when the stored label came from the pull request.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from ..github.exceptions import GitHubError
from ..models.enums import NotificationEvent, StatusLabel
from .channel import NotificationChannel
from .models import (
    BranchObservation,
    CiSignal,
    MonitoredState,
    PullRequestSnapshot,
    ReviewSnapshot,
)
from .resolver import SignalUnavailableError, resolve_status_label
from .source import RepositoryStatusSource
from .state import MonitorState, StateStore

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationConfig:
    """Tuning for the reconciliation engine."""

    entity_timeout_seconds: float = 30.0
    # None tracks every remote branch
    tracked_branches: frozenset[str] | None = None


@dataclass
class CycleReport:
    """Outcome of one ``run_cycle`` call."""

    events: list[NotificationEvent] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: bool = False
    roster_failed: bool = False

    @property
    def state_changed(self) -> bool:
        return bool(self.events or self.created or self.removed)


_PullRequestSignals = tuple[
    PullRequestSnapshot | None, bool, tuple[ReviewSnapshot, ...] | None
]


class ReconciliationEngine:
    """Polls one repository and turns status changes into notifications."""

    def __init__(
        self,
        source: RepositoryStatusSource,
        channel: NotificationChannel,
        state: MonitorState | None = None,
        store: StateStore | None = None,
        config: ReconciliationConfig | None = None,
    ):
        """Initialize the engine.

        Args:
            source: Remote status source for the monitored repository
            channel: Channel the notifications are sent on
            state: Previously loaded state, empty if omitted
            store: Where state is saved after a cycle changes it
            config: Engine tuning
        """
        self.source = source
        self.channel = channel
        self.state = state if state is not None else MonitorState()
        self.store = store
        self.config = config or ReconciliationConfig()

        self._cycle_lock = asyncio.Lock()
        self._statistics: dict[str, Any] = {
            "cycles": 0,
            "skipped_cycles": 0,
            "notifications": 0,
            "branch_failures": 0,
        }

    @property
    def statistics(self) -> dict[str, Any]:
        return dict(self._statistics, tracked_branches=len(self.state))

    async def run_cycle(self) -> CycleReport:
        """Run one poll cycle, or skip it if another is still in flight."""
        if self._cycle_lock.locked():
            logger.warning("Previous poll cycle still running, skipping this tick")
            self._statistics["skipped_cycles"] += 1
            return CycleReport(skipped=True)

        async with self._cycle_lock:
            report = await self._run_cycle()

        self._statistics["cycles"] += 1
        self._statistics["notifications"] += len(report.events)
        self._statistics["branch_failures"] += len(report.failed)
        return report

    async def _run_cycle(self) -> CycleReport:
        report = CycleReport()

        try:
            branches = await self.source.list_branch_names()
        except GitHubError as e:
            logger.warning(f"Could not list branches of {self.source.full_name}: {e}")
            report.roster_failed = True
            return report

        tracked = self.config.tracked_branches
        if tracked is not None:
            branches = [name for name in branches if name in tracked]

        for name in self.state.retain(branches):
            logger.info(f"Branch '{name}' no longer exists, forgetting it")
            report.removed.append(name)

        observations = await asyncio.gather(
            *(self._observe_with_timeout(name, report) for name in branches)
        )
        for observation in observations:
            if observation is not None:
                self._reconcile(observation, report)

        if report.state_changed:
            self._save()

        logger.debug(
            f"Cycle done: {len(branches)} branches, {len(report.events)} "
            f"notifications, {len(report.failed)} failures"
        )
        return report

    async def _observe_with_timeout(
        self, branch: str, report: CycleReport
    ) -> BranchObservation | None:
        try:
            return await asyncio.wait_for(
                self._observe(branch), timeout=self.config.entity_timeout_seconds
            )
        except TimeoutError:
            logger.warning(
                f"Polling branch '{branch}' timed out after "
                f"{self.config.entity_timeout_seconds}s, skipping this cycle"
            )
        except GitHubError as e:
            logger.warning(
                f"Could not read branch '{branch}', skipping this cycle: {e}"
            )
        except Exception:
            logger.exception(f"Unexpected error polling branch '{branch}'")
        report.failed.append(branch)
        return None

    async def _observe(self, branch: str) -> BranchObservation | None:
        """Fetch the signals for ``branch``; ``None`` when nothing needs checking.

        Raises:
            GitHubError: If the head commit cannot be read
        """
        sha = await self.source.get_latest_commit_sha(branch)
        stored = self.state.get(branch)

        if stored is not None and stored.merged:
            if stored.last_seen_sha == sha:
                return None
            ci = await self._fetch_ci(branch, sha)
            return BranchObservation(
                branch=branch, head_sha=sha, ci=ci, pull_request_checks_skipped=True
            )

        ci, (pull_request, available, reviews) = await asyncio.gather(
            self._fetch_ci(branch, sha), self._fetch_pull_request(branch)
        )
        return BranchObservation(
            branch=branch,
            head_sha=sha,
            ci=ci,
            pull_request=pull_request,
            pull_request_available=available,
            reviews=reviews,
        )

    async def _fetch_ci(self, branch: str, sha: str) -> CiSignal | None:
        try:
            return await self.source.get_ci_signal(sha)
        except GitHubError as e:
            logger.warning(f"CI status unavailable for '{branch}' ({sha[:7]}): {e}")
            return None

    async def _fetch_pull_request(self, branch: str) -> _PullRequestSignals:
        """Pull request, lookup success flag, and reviews (``None`` on failure)."""
        try:
            found = await self.source.find_pull_request(branch)
            if found is None:
                return None, True, ()
            pull_request = await self.source.get_pull_request(found.number)
        except GitHubError as e:
            logger.warning(f"Pull request lookup failed for '{branch}': {e}")
            return None, False, None

        if pull_request.merged:
            return pull_request, True, ()

        try:
            reviews = tuple(await self.source.list_reviews(pull_request.number))
        except GitHubError as e:
            logger.warning(
                f"Reviews unavailable for PR #{pull_request.number} ('{branch}'): {e}"
            )
            return pull_request, True, None
        return pull_request, True, reviews

    def _reconcile(self, observation: BranchObservation, report: CycleReport) -> None:
        branch = observation.branch
        sha = observation.head_sha

        stored = self.state.get(branch)
        previous = stored.last_notified_label if stored is not None else None
        try:
            label = resolve_status_label(observation, previous)
        except SignalUnavailableError as e:
            logger.warning(f"{e}; keeping previous state")
            report.failed.append(branch)
            return

        if stored is None:
            self.state.put(
                branch,
                MonitoredState(
                    last_seen_sha=sha,
                    last_notified_label=label,
                    merged=label == StatusLabel.PR_MERGED,
                ),
            )
            report.created.append(branch)
            logger.info(f"Tracking branch '{branch}' at {sha[:7]} ({label.value})")
            return

        if label == StatusLabel.NONE:
            return
        if stored.last_notified_label == label and stored.last_seen_sha == sha:
            return

        stored.last_seen_sha = sha
        stored.last_notified_label = label
        if label == StatusLabel.PR_MERGED:
            stored.merged = True

        event = NotificationEvent.for_label(label)
        if event is None:
            return
        logger.info(f"Branch '{branch}' is now {label.value}, notifying {event.value}")
        report.events.append(event)
        self.channel.send(event)

    def _save(self) -> None:
        if self.store is None:
            return
        try:
            self.store.save(self.state)
        except OSError as e:
            logger.error(f"Failed to save monitor state to {self.store.path}: {e}")
