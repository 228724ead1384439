"""Background workers for repowatch."""

from .monitor_worker import ConsoleNotifier, MonitorWorker, main

__all__ = ["ConsoleNotifier", "MonitorWorker", "main"]
