"""Persisted user settings.

The settings document has a fixed, enumerated set of sections. Updates are
merged section by section and field by field; unknown sections or fields
are rejected instead of being deep-merged blindly.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from anitick.shared.constants import NotificationConfig, TimerIntervals
from anitick.shared.errors import create_validation_error


class _SettingsSection(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class NotificationPreferences(_SettingsSection):
    enabled: bool = True
    before_airing: int = Field(
        default=int(NotificationConfig.BEFORE_AIRING),
        ge=0,
        description="Seconds before airing at which the upcoming notification fires",
    )
    on_release: bool = True


class DisplayPreferences(_SettingsSection):
    theme: Literal["dark", "light"] = "dark"
    sort_by: Literal["nextEpisode", "title", "addedAt"] = "nextEpisode"
    group_by: Literal["status", "none"] = "status"


class SearchPreferences(_SettingsSection):
    filter_latest_season: bool = True


class UpdatePreferences(_SettingsSection):
    frequency: int = Field(
        default=TimerIntervals.REFRESH_WATCHLIST,
        gt=0,
        description="Watchlist refresh interval in minutes",
    )
    auto_update: bool = True


def _aliased(model: type[BaseModel], changes: dict[str, Any]) -> dict[str, Any]:
    """Rewrite snake_case keys to their camelCase aliases; unknown keys pass through."""
    aliases = {name: field.alias or name for name, field in model.model_fields.items()}
    return {aliases.get(key, key): value for key, value in changes.items()}


class UserSettings(_SettingsSection):
    """Complete user settings document."""

    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)
    display: DisplayPreferences = Field(default_factory=DisplayPreferences)
    search: SearchPreferences = Field(default_factory=SearchPreferences)
    updates: UpdatePreferences = Field(default_factory=UpdatePreferences)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    def merged(self, partial: dict[str, Any]) -> UserSettings:
        """Return new settings with ``partial`` applied field by field.

        Args:
            partial: Mapping of section name to a mapping of field updates,
                using either camelCase or snake_case names.

        Raises:
            DomainError: If a section or field is unknown or a value is invalid
        """
        sections = type(self).model_fields
        by_alias = {field.alias or name: name for name, field in sections.items()}
        updated: dict[str, BaseModel] = {}

        for raw_name, changes in partial.items():
            name = by_alias.get(raw_name, raw_name)
            if name not in sections:
                raise create_validation_error(
                    f"Unknown settings section: {raw_name}",
                    field=str(raw_name),
                    operation="update_settings",
                )
            if not isinstance(changes, dict):
                raise create_validation_error(
                    f"Settings section '{raw_name}' must be a mapping",
                    field=str(raw_name),
                    operation="update_settings",
                )
            current: BaseModel = getattr(self, name)
            try:
                updated[name] = type(current).model_validate(
                    {**current.model_dump(by_alias=True), **_aliased(type(current), changes)},
                )
            except ValidationError as e:
                raise create_validation_error(
                    f"Invalid value in settings section '{raw_name}': {e.errors()[0]['msg']}",
                    field=str(raw_name),
                    operation="update_settings",
                    original_error=e,
                ) from e

        return self.model_copy(update=updated)
