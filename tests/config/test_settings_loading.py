"""Tests for Settings models and the settings loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from anitick.config import Settings, load_settings
from anitick.config.loader import CONFIG_PATH_ENV, SettingsLoader
from anitick.shared.errors import ApplicationError, ErrorCode


@pytest.fixture
def temp_config(tmp_path: Path) -> Path:
    """Create temporary config file."""
    config_file = tmp_path / "config.toml"
    config_file.write_text(
        """
[logging]
level = "DEBUG"

[api.anilist]
max_requests = 30
batch_size = 25

[storage]
path = "data/anitick.json"

[scheduler]
notification_interval = 2
""",
        encoding="utf-8",
    )
    return config_file


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep real config files and ANITICK_* variables out of these tests."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    monkeypatch.delenv("ANITICK_API__ANILIST__MAX_REQUESTS", raising=False)


class TestSettings:
    """Test cases for the Settings model."""

    def test_defaults(self):
        settings = Settings()

        assert settings.api.anilist.max_requests == 90
        assert settings.api.anilist.window_seconds == 60
        assert settings.api.anilist.batch_size == 50
        assert settings.cache.details_ttl == 86400
        assert settings.scheduler.notification_interval == 5
        assert settings.notifications.quiet_period == 1800

    def test_from_toml_file(self, temp_config: Path):
        settings = Settings.from_toml_file(temp_config)

        assert settings.logging.level == "DEBUG"
        assert settings.api.anilist.max_requests == 30
        assert settings.api.anilist.batch_size == 25
        assert settings.api.anilist.window_seconds == 60
        assert settings.storage.path == Path("data/anitick.json")
        assert settings.scheduler.notification_interval == 2

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            Settings.from_toml_file(tmp_path / "missing.toml")

    def test_batch_size_capped(self):
        with pytest.raises(ValueError):
            Settings(api={"anilist": {"batch_size": 51}})

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("ANITICK_API__ANILIST__MAX_REQUESTS", "45")

        assert Settings().api.anilist.max_requests == 45

    def test_toml_round_trip(self, tmp_path: Path):
        path = tmp_path / "out" / "config.toml"
        original = Settings(api={"anilist": {"max_requests": 10}})

        original.to_toml_file(path)

        assert Settings.from_toml_file(path).api.anilist.max_requests == 10


class TestLoadSettings:
    """Test cases for load_settings."""

    def test_explicit_path(self, temp_config: Path):
        assert load_settings(temp_config).api.anilist.max_requests == 30

    def test_env_path(self, temp_config: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv(CONFIG_PATH_ENV, str(temp_config))

        assert load_settings().logging.level == "DEBUG"

    def test_missing_explicit_path(self, tmp_path: Path):
        with pytest.raises(ApplicationError) as exc_info:
            load_settings(tmp_path / "nope.toml")

        assert exc_info.value.code == ErrorCode.CONFIGURATION_ERROR

    def test_invalid_toml(self, tmp_path: Path):
        bad = tmp_path / "bad.toml"
        bad.write_text("[api\nmax = ", encoding="utf-8")

        with pytest.raises(ApplicationError):
            load_settings(bad)

    def test_default_location(self, tmp_path: Path):
        (tmp_path / "config.toml").write_text('[logging]\nlevel = "ERROR"\n', encoding="utf-8")

        assert load_settings().logging.level == "ERROR"

    def test_no_config_anywhere(self):
        assert load_settings() == Settings()

    def test_loader_caches_instance(self, temp_config: Path):
        loader = SettingsLoader()

        first = loader.reload_config(temp_config)

        assert loader.get_config() is first
