"""Monitor worker for scheduled repository polling.

This module implements the process entry point: it loads configuration,
resolves the working copy's repository, wires the GitHub client, status
source, reconciliation engine and notification channel together, and runs
the poll loop until shutdown.
"""

import asyncio
import contextlib
import logging
import signal
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from repowatch.config.exceptions import (
    ConfigurationError,
    ConfigurationMissingError,
    ConfigurationValidationError,
)
from repowatch.config.git_context import GitContext, read_git_context
from repowatch.config.loader import load_config
from repowatch.config.models import Config, LogLevel, MonitorScope
from repowatch.github.auth import TokenAuth
from repowatch.github.client import GitHubClient, GitHubClientConfig
from repowatch.models.enums import NotificationEvent
from repowatch.monitor.channel import NotificationChannel
from repowatch.monitor.engine import ReconciliationConfig, ReconciliationEngine
from repowatch.monitor.source import RepositoryStatusSource
from repowatch.monitor.state import StateStore

logger = logging.getLogger(__name__)

EVENT_TITLES: dict[NotificationEvent, str] = {
    NotificationEvent.CI_SUCCESS: "CI pipeline greened",
    NotificationEvent.CI_FAILURE: "CI pipeline failed",
    NotificationEvent.PR_APPROVED: "PR approval granted",
    NotificationEvent.PR_CHANGES_REQUESTED: "PR changes required",
    NotificationEvent.PR_MERGED: "PR merge completed",
    NotificationEvent.PR_NEW_COMMENT: "PR new comment appeared",
}


class ConsoleNotifier:
    """Default notification consumer: logs every event it receives."""

    def __init__(self, channel: NotificationChannel, repository: str):
        self.channel = channel
        self.repository = repository
        self.delivered: list[NotificationEvent] = []

    async def run(self) -> None:
        """Consume until the channel closes or the task is cancelled."""
        try:
            async for event in self.channel:
                self.delivered.append(event)
                logger.info(f"[{self.repository}] {EVENT_TITLES[event]}")
        finally:
            self.channel.close()


class MonitorWorker:
    """Main monitoring worker that orchestrates the poll loop.

    Manages the complete lifecycle of repository monitoring including:
    - Configuration loading and working-copy resolution
    - GitHub client and engine construction
    - Scheduled poll cycles and the notification consumer
    - Health and statistics reporting
    """

    def __init__(
        self,
        config_path: str | None = None,
        workdir: str | Path = ".",
        poll_interval: float | None = None,
        state_file: str | None = None,
    ):
        """Initialize monitor worker.

        Args:
            config_path: Optional path to configuration file
            workdir: Working copy whose ``origin`` remote is monitored
            poll_interval: Overrides ``monitor.poll_interval_seconds``
            state_file: Overrides ``monitor.state_file``
        """
        self.config_path = config_path
        self.workdir = Path(workdir)
        self._overrides: dict[str, Any] = {
            "poll_interval_seconds": poll_interval,
            "state_file": state_file,
        }

        self.config: Config | None = None
        self.git_context: GitContext | None = None
        self.github_client: GitHubClient | None = None
        self.channel: NotificationChannel | None = None
        self.engine: ReconciliationEngine | None = None
        self.notifier: ConsoleNotifier | None = None

        # Worker state
        self.running = False
        self.shutdown_event = asyncio.Event()
        self.poll_task: asyncio.Task | None = None
        self.notifier_task: asyncio.Task | None = None

        # Statistics
        self.stats: dict[str, Any] = {
            "worker_started_at": None,
            "total_poll_cycles": 0,
            "successful_cycles": 0,
            "failed_cycles": 0,
            "last_cycle_at": None,
            "last_error": None,
        }

    async def initialize(self) -> None:
        """Initialize worker components.

        Raises:
            ConfigurationError: If configuration, credentials or the working
                copy are unusable
        """
        logger.info("Initializing monitor worker...")

        try:
            self._load_configuration()
            self.git_context = read_git_context(self.workdir)
            self._initialize_github_client()
            self._create_engine()

            self.stats["worker_started_at"] = datetime.now(UTC)
            logger.info(
                f"Monitor worker initialized for {self.git_context.full_name} "
                f"(branch '{self.git_context.branch}')"
            )

        except Exception as e:
            logger.error(f"Failed to initialize monitor worker: {e}")
            await self.cleanup()
            raise

    def _load_configuration(self) -> None:
        config = load_config(self.config_path)
        for field_name, value in self._overrides.items():
            if value is None:
                continue
            try:
                setattr(config.monitor, field_name, value)
            except ValidationError as e:
                raise ConfigurationValidationError(
                    f"Invalid --{field_name} override: {e}",
                    validation_errors=e.errors(),
                ) from e
        self.config = config

    def _initialize_github_client(self) -> None:
        if not self.config:
            raise RuntimeError("Configuration not loaded")

        github_config = self.config.github
        if not github_config.token:
            raise ConfigurationMissingError(
                "GitHub token not configured; set GITHUB_TOKEN or github.token",
                missing_fields=["github.token"],
            )

        self.github_client = GitHubClient(
            auth=TokenAuth(github_config.token),
            config=GitHubClientConfig(
                base_url=github_config.base_url,
                timeout=github_config.timeout_seconds,
                user_agent=github_config.user_agent,
                max_concurrent_requests=github_config.max_concurrent_requests,
                max_pages=github_config.max_pages,
            ),
        )

    def _create_engine(self) -> None:
        if not self.config or not self.git_context or not self.github_client:
            raise RuntimeError("Required components not initialized")

        monitor_config = self.config.monitor
        source = RepositoryStatusSource(
            self.github_client, self.git_context.owner, self.git_context.repo
        )
        store = StateStore(self.workdir / monitor_config.state_file)

        tracked = None
        if monitor_config.scope == MonitorScope.CURRENT:
            tracked = frozenset({self.git_context.branch})

        self.channel = NotificationChannel()
        self.engine = ReconciliationEngine(
            source=source,
            channel=self.channel,
            state=store.load(),
            store=store,
            config=ReconciliationConfig(
                entity_timeout_seconds=monitor_config.entity_timeout_seconds,
                tracked_branches=tracked,
            ),
        )
        self.notifier = ConsoleNotifier(self.channel, source.full_name)

    async def run(self) -> None:
        """Run the worker main loop."""
        if not self.engine or not self.notifier:
            raise RuntimeError("Worker not initialized. Call initialize() first.")

        self.running = True
        logger.info("Starting monitor worker...")

        self._setup_signal_handlers()

        try:
            self.notifier_task = asyncio.create_task(self.notifier.run())
            self.poll_task = asyncio.create_task(self._poll_loop())

            await self.shutdown_event.wait()

        except asyncio.CancelledError:
            logger.info("Worker cancelled")
        finally:
            self.running = False

            # In-flight API calls are abandoned
            for task in (self.poll_task, self.notifier_task):
                if task and not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task

            logger.info("Monitor worker stopped")

    async def _poll_loop(self) -> None:
        """Main poll loop."""
        if not self.config or not self.engine:
            raise RuntimeError("Worker not initialized")

        interval = self.config.monitor.poll_interval_seconds
        logger.info(f"Starting poll loop (interval: {interval}s)")

        while self.running and not self.shutdown_event.is_set():
            cycle_start = datetime.now(UTC)
            try:
                report = await self.engine.run_cycle()

                self.stats["total_poll_cycles"] += 1
                self.stats["successful_cycles"] += 1
                self.stats["last_cycle_at"] = cycle_start

                if report.events:
                    logger.info(
                        f"Poll cycle emitted {len(report.events)} notifications"
                    )

            except Exception as e:
                logger.exception(f"Poll cycle failed: {e}")
                self.stats["total_poll_cycles"] += 1
                self.stats["failed_cycles"] += 1
                self.stats["last_error"] = {
                    "message": str(e),
                    "timestamp": datetime.now(UTC),
                }

            try:
                await asyncio.wait_for(self.shutdown_event.wait(), timeout=interval)
                break
            except TimeoutError:
                continue

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""

        def signal_handler(sig: int, frame: Any) -> None:
            logger.info(f"Received signal {sig}, initiating shutdown...")
            self.shutdown_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    async def shutdown(self) -> None:
        """Initiate graceful shutdown."""
        logger.info("Shutting down monitor worker...")
        self.shutdown_event.set()

    async def cleanup(self) -> None:
        """Clean up resources."""
        if self.channel:
            self.channel.close()

        if self.github_client:
            try:
                await self.github_client.close()
            except Exception as e:
                logger.error(f"Error closing GitHub client: {e}")

        logger.info("Cleanup completed")

    async def get_health_status(self) -> dict[str, Any]:
        """Get worker health status."""
        health: dict[str, Any] = {
            "healthy": self.engine is not None,
            "worker": {"running": self.running, "stats": self.stats},
            "components": {},
        }

        if self.engine:
            health["components"]["engine"] = self.engine.statistics
        if self.channel:
            health["components"]["channel"] = {
                "closed": self.channel.closed,
                "pending": self.channel.pending,
                "sent": self.channel.sent,
                "dropped": self.channel.dropped,
            }
        if self.github_client:
            health["components"]["github"] = {
                "rate_limit": self.github_client.rate_limiter.snapshot()
            }

        return health


async def main(argv: list[str] | None = None) -> None:
    """Main entry point for the monitor worker."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Watch CI and pull request status of a GitHub repository"
    )
    parser.add_argument("--config", help="Configuration file path")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=[level.value for level in LogLevel],
        help="Log level, overrides system.log_level from the config",
    )
    parser.add_argument("--interval", type=float, help="Seconds between poll cycles")
    parser.add_argument("--state-file", help="Where branch state is persisted")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level or "INFO",
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    worker = MonitorWorker(
        config_path=args.config,
        poll_interval=args.interval,
        state_file=args.state_file,
    )

    try:
        await worker.initialize()
        if args.log_level is None and worker.config:
            logging.getLogger().setLevel(worker.config.system.log_level.value)
        await worker.run()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Worker failed: {e}")
        sys.exit(1)
    finally:
        await worker.cleanup()


def cli() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    cli()
