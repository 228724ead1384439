"""Pydantic configuration models for repowatch.

The configuration hierarchy:
- Config: root configuration
- SystemConfig: logging
- GitHubConfig: API access
- MonitorConfig: polling behaviour

String values may reference environment variables as ``${VAR_NAME}`` or
``${VAR_NAME:default}``.
"""

import os
import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")


class LogLevel(str, Enum):
    """Supported logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class MonitorScope(str, Enum):
    """Which branches the monitor tracks."""

    ALL = "all"
    CURRENT = "current"


class BaseConfigModel(BaseModel):
    """Base configuration model with environment variable substitution."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @model_validator(mode="before")
    @classmethod
    def substitute_env_vars(cls, values: Any) -> Any:
        """Substitute environment variables in string values.

        Supports formats:
        - ${VAR_NAME} - Required environment variable
        - ${VAR_NAME:default} - Optional with default value

        Raises:
            ValueError: If required environment variable is missing
        """

        def replacer(match: re.Match[str]) -> str:
            var_name, default_value = match.group(1), match.group(2)
            env_value = os.getenv(var_name)
            if env_value is not None:
                return env_value
            if default_value is not None:
                return default_value
            raise ValueError(f"Required environment variable '{var_name}' not found")

        def substitute_value(value: Any) -> Any:
            if isinstance(value, str):
                return _ENV_PATTERN.sub(replacer, value)
            if isinstance(value, dict):
                return {k: substitute_value(v) for k, v in value.items()}
            if isinstance(value, list):
                return [substitute_value(item) for item in value]
            return value

        if not isinstance(values, dict):
            return values
        return {key: substitute_value(value) for key, value in values.items()}


class SystemConfig(BaseConfigModel):
    """Core system configuration settings."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")


class GitHubConfig(BaseConfigModel):
    """GitHub API access."""

    token: str = Field(
        default_factory=lambda: os.getenv("GITHUB_TOKEN", ""),
        description="Bearer token, defaults to $GITHUB_TOKEN",
        repr=False,
    )

    base_url: str = Field(
        default="https://api.github.com", description="GitHub REST API base URL"
    )

    timeout_seconds: int = Field(
        default=20, ge=1, le=120, description="Per-request timeout in seconds"
    )

    user_agent: str = Field(default="repowatch/1.0", description="User-Agent header")

    max_concurrent_requests: int = Field(
        default=10, ge=1, le=100, description="Maximum in-flight API requests"
    )

    max_pages: int = Field(
        default=10, ge=1, le=100, description="Page cap for list endpoints"
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate API base URL."""
        if not v.startswith(("https://", "http://")):
            raise ValueError("GitHub base URL must be an http(s) URL")
        return v.rstrip("/")

    @field_validator("token")
    @classmethod
    def strip_token(cls, v: str) -> str:
        return v.strip()


class MonitorConfig(BaseConfigModel):
    """Polling behaviour."""

    poll_interval_seconds: float = Field(
        default=10, ge=1, le=3600, description="Seconds between poll cycles"
    )

    entity_timeout_seconds: float = Field(
        default=30,
        ge=1,
        le=600,
        description="Upper bound for polling a single branch",
    )

    scope: MonitorScope = Field(
        default=MonitorScope.ALL,
        description="Track all remote branches or only the checked-out one",
    )

    state_file: str = Field(
        default=".repowatch_state.json", description="Where branch state is persisted"
    )


class Config(BaseConfigModel):
    """Root configuration containing all subsystem configurations."""

    system: SystemConfig = Field(default_factory=SystemConfig)

    github: GitHubConfig = Field(default_factory=GitHubConfig)

    monitor: MonitorConfig = Field(default_factory=MonitorConfig)

    @model_validator(mode="after")
    def validate_consistent_configuration(self) -> "Config":
        """Validate cross-field consistency."""
        if self.monitor.entity_timeout_seconds < self.github.timeout_seconds:
            raise ValueError(
                "monitor.entity_timeout_seconds must not be shorter than "
                "github.timeout_seconds"
            )
        return self
