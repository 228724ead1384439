"""repowatch: CI and pull request status notifications for a GitHub repository."""

__version__ = "1.0.0"
