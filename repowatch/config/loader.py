"""Configuration loading.

The loading hierarchy is:
1. Default values from Pydantic models
2. Configuration file (YAML), if one is given or found
3. Environment variables referenced from the file as ``${VAR}``
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .exceptions import (
    ConfigurationError,
    ConfigurationFileError,
    ConfigurationValidationError,
)
from .models import Config

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "repowatch.yaml"
CONFIG_PATH_ENV_VAR = "REPOWATCH_CONFIG_PATH"


class ConfigurationLoader:
    """Builds a validated ``Config`` from a YAML file, a dict or defaults."""

    def __init__(self) -> None:
        self._config: Config | None = None
        self._config_file_path: Path | None = None

    def load_from_file(self, config_path: str | Path) -> Config:
        """Read and validate a YAML configuration file.

        An empty file yields the defaults.

        Raises:
            ConfigurationFileError: If file cannot be read or parsed
            ConfigurationValidationError: If configuration validation fails
        """
        config_path = Path(config_path)

        if not config_path.is_file():
            raise ConfigurationFileError(
                f"Configuration file not found: {config_path}", str(config_path)
            )

        try:
            with open(config_path, encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationFileError(
                f"Failed to parse YAML configuration: {e}", str(config_path)
            ) from e
        except OSError as e:
            raise ConfigurationFileError(
                f"Failed to read configuration file: {e}", str(config_path)
            ) from e

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigurationFileError(
                "Configuration file must contain a mapping", str(config_path)
            )

        config = self.load_from_dict(config_data)
        self._config_file_path = config_path.resolve()
        logger.debug(f"Loaded configuration from {self._config_file_path}")
        return config

    def load_from_dict(self, config_data: dict[str, Any]) -> Config:
        """Validate an already parsed configuration mapping.

        Raises:
            ConfigurationValidationError: If configuration validation fails
        """
        try:
            self._config = Config(**config_data)
        except ValidationError as e:
            raise ConfigurationValidationError(
                f"Configuration validation failed: {e}",
                validation_errors=e.errors(),
            ) from e
        return self._config

    def load_default(self) -> Config:
        """Configuration made of defaults and the process environment."""
        return self.load_from_dict({})

    def find_config_file(self, filename: str = DEFAULT_CONFIG_FILENAME) -> Path | None:
        """First existing configuration file, or ``None``.

        Search order:
        1. Current working directory
        2. REPOWATCH_CONFIG_PATH environment variable (file or directory)
        3. ~/.repowatch/
        """
        search_paths = [Path.cwd() / filename]

        env_path_str = os.getenv(CONFIG_PATH_ENV_VAR)
        if env_path_str:
            env_path = Path(env_path_str)
            search_paths.append(env_path if env_path.is_file() else env_path / filename)

        search_paths.append(Path.home() / ".repowatch" / filename)

        for path in search_paths:
            if path.is_file():
                return path
        return None

    @property
    def config(self) -> Config | None:
        return self._config

    @property
    def config_file_path(self) -> Path | None:
        return self._config_file_path


def load_config(
    config_path: str | Path | None = None, auto_discover: bool = True
) -> Config:
    """Load configuration from file, auto-discovery, or defaults.

    Args:
        config_path: Explicit path to configuration file
        auto_discover: Search the standard locations when no path is given

    Raises:
        ConfigurationError: If configuration cannot be loaded or is invalid
    """
    loader = ConfigurationLoader()

    try:
        if config_path:
            return loader.load_from_file(config_path)
        if auto_discover:
            found = loader.find_config_file()
            if found is not None:
                return loader.load_from_file(found)
        logger.debug("No configuration file found, using defaults")
        return loader.load_default()
    except (ConfigurationFileError, ConfigurationValidationError):
        raise
    except ValueError as e:
        raise ConfigurationError(f"Failed to load configuration: {e}") from e
