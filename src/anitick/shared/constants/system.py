"""
System Constants

Base time units and application identity shared by every constant module.
"""

from pathlib import Path

BASE_SECOND = 1.0
BASE_MINUTE = 60 * BASE_SECOND
MILLISECONDS_PER_SECOND = 1000


class Application:
    """Application identity."""

    NAME = "AniTick"
    VERSION = "1.0.0"
    USER_AGENT = f"AniTick/{VERSION}"


class FileSystem:
    """Default file system locations."""

    HOME_DIR = ".anitick"
    DATA_FILE = "anitick.json"
    CONFIG_FILE = "config.toml"
    LOG_FILE = "anitick.log"

    @staticmethod
    def default_data_path() -> Path:
        """Default location of the persisted watchlist document."""
        return Path.home() / FileSystem.HOME_DIR / FileSystem.DATA_FILE
