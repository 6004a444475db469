"""Persisted user settings."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from anitick.shared.constants import StorageKeys
from anitick.shared.errors import ErrorCode, create_storage_error
from anitick.shared.models import UserSettings
from anitick.shared.protocols import KeyValueStore

logger = logging.getLogger(__name__)


def _parse(raw: Any | None) -> UserSettings:
    if raw is None:
        return UserSettings()
    try:
        return UserSettings.model_validate(raw)
    except ValidationError as e:
        raise create_storage_error(
            f"Persisted settings are invalid: {e.errors()[0]['msg']}",
            key=StorageKeys.SETTINGS,
            operation="get_settings",
            code=ErrorCode.STORAGE_CORRUPTED,
            original_error=e,
        ) from e


class UserSettingsStore:
    """Reads and updates the ``settings`` document.

    Missing settings resolve to defaults. Updates go through
    ``UserSettings.merged`` so only known sections and fields are accepted.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def get(self) -> UserSettings:
        return _parse(await self._store.get(StorageKeys.SETTINGS))

    async def update(self, partial: dict[str, Any]) -> UserSettings:
        """Merge ``partial`` into the stored settings and persist the result.

        Raises:
            DomainError: If ``partial`` names an unknown section or field,
                or carries an invalid value. Nothing is written.
        """
        stored = await self._store.update(
            StorageKeys.SETTINGS,
            lambda raw: _parse(raw).merged(partial).to_payload(),
        )
        logger.info("Settings updated: %s", ", ".join(sorted(partial)))
        return UserSettings.model_validate(stored)

    async def seed_defaults(self) -> bool:
        """Write default settings on first run. Returns whether anything was written."""
        seeded = {"written": False}

        def seed(raw: Any | None) -> Any:
            if raw is not None:
                return raw
            seeded["written"] = True
            return UserSettings().to_payload()

        await self._store.update(StorageKeys.SETTINGS, seed)
        if seeded["written"]:
            logger.info("Seeded default settings")
        return seeded["written"]
