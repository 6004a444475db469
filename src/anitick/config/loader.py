"""Settings loader and singleton manager.

This module handles:
- Environment variable loading from .env files
- Configuration file loading from TOML
- Thread-safe singleton pattern for the Settings instance
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from dotenv import load_dotenv

from anitick.config.models.settings import Settings
from anitick.shared.constants import FileSystem
from anitick.shared.errors import ApplicationError, ErrorCode, ErrorContext

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "ANITICK_CONFIG"


class SettingsLoader:
    """Thread-safe singleton manager for Settings.

    Uses double-checked locking to keep the common path lock-free.
    """

    _instance: Settings | None = None
    _lock: threading.RLock = threading.RLock()

    def get_config(self) -> Settings:
        """Get the global settings instance, loading it if necessary."""
        if self._instance is None:
            with self._lock:
                if self._instance is None:
                    self._instance = load_settings()

        return self._instance

    def reload_config(self, config_path: str | Path | None = None) -> Settings:
        """Reload the global settings instance from configuration files."""
        with self._lock:
            self._instance = load_settings(config_path)

        return self._instance


def _load_env_file(env_file: Path = Path(".env")) -> None:
    """Load a .env file into the environment when present."""
    if env_file.exists():
        load_dotenv(env_file, override=False)
        logger.debug("Loaded environment from %s", env_file)


def default_config_paths() -> list[Path]:
    """Configuration files probed in order when no path is given."""
    return [
        Path("config/config.toml"),
        Path(FileSystem.CONFIG_FILE),
        Path.home() / FileSystem.HOME_DIR / FileSystem.CONFIG_FILE,
    ]


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from a TOML configuration file or the environment.

    Args:
        config_path: Optional path to a TOML configuration file. Falls back to
            ``$ANITICK_CONFIG`` and then to the default locations.

    Returns:
        Settings instance loaded from the first available source

    Raises:
        ApplicationError: If an explicitly requested file is missing or invalid
    """
    _load_env_file()

    explicit = config_path or os.environ.get(CONFIG_PATH_ENV)
    if explicit:
        try:
            return Settings.from_toml_file(explicit)
        except (FileNotFoundError, ValueError) as e:
            raise ApplicationError(
                code=ErrorCode.CONFIGURATION_ERROR,
                message=f"Cannot load configuration: {e}",
                context=ErrorContext(
                    operation="load_settings",
                    additional_data={"config_path": str(explicit)},
                ),
                original_error=e,
            ) from e

    for candidate in default_config_paths():
        if candidate.exists():
            return Settings.from_toml_file(candidate)

    return Settings()


# Global loader instance
_loader = SettingsLoader()


def get_config() -> Settings:
    """Get the global settings instance (thread-safe)."""
    return _loader.get_config()


def reload_config(config_path: str | Path | None = None) -> Settings:
    """Reload the global settings instance from configuration files."""
    return _loader.reload_config(config_path)


__all__ = [
    "SettingsLoader",
    "get_config",
    "load_settings",
    "reload_config",
]
