"""Configuration management for repowatch."""

from .exceptions import (
    ConfigurationError,
    ConfigurationFileError,
    ConfigurationMissingError,
    ConfigurationValidationError,
    GitContextError,
)
from .git_context import GitContext, parse_remote_url, read_git_context
from .loader import ConfigurationLoader, load_config
from .models import (
    Config,
    GitHubConfig,
    LogLevel,
    MonitorConfig,
    MonitorScope,
    SystemConfig,
)

__all__ = [
    "Config",
    "ConfigurationError",
    "ConfigurationFileError",
    "ConfigurationLoader",
    "ConfigurationMissingError",
    "ConfigurationValidationError",
    "GitContext",
    "GitContextError",
    "GitHubConfig",
    "LogLevel",
    "MonitorConfig",
    "MonitorScope",
    "SystemConfig",
    "load_config",
    "parse_remote_url",
    "read_git_context",
]
