"""Entry point for ``python -m repowatch``."""

from repowatch.workers.monitor_worker import cli

if __name__ == "__main__":
    cli()
