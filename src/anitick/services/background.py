"""Background service: the core facade driven by timers and commands.

The service owns one instance of every stateful component (rate limiter,
response cache, notification ledger) and exposes two kinds of entry points:

- Periodic cycles (``refresh_cycle``, ``notification_cycle``) that are
  invoked by the timer capability. They never raise; a failed cycle is
  logged and the next firing starts fresh.
- Inbound commands (``search``, ``add_to_watchlist``, ...) that return a
  ``CommandResponse`` envelope carrying either data or the error.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, ValidationError

from anitick.config.models import (
    AniListSettings,
    CacheSettings,
    SchedulerSettings,
)
from anitick.services.anilist import AniListClient
from anitick.services.notifications import NotificationScheduler
from anitick.services.retry import retry_with_backoff
from anitick.services.settings_store import UserSettingsStore
from anitick.services.watchlist_store import WatchlistStore, epoch_ms
from anitick.shared.constants import CacheKeys, StorageKeys, TimerNames
from anitick.shared.errors import (
    AniTickError,
    ApplicationError,
    ErrorCode,
    ErrorContext,
    create_validation_error,
)
from anitick.shared.logging import (
    log_operation_error,
    log_operation_start,
    log_operation_success,
)
from anitick.shared.models import (
    AnimeDetails,
    AnimeSummary,
    SentNotification,
    TrackedAnime,
    UserSettings,
)
from anitick.shared.protocols import KeyValueStore, TimerScheduler

logger = logging.getLogger(__name__)


class CommandType(str, Enum):
    """Inbound command names."""

    SEARCH_ANIME = "SEARCH_ANIME"
    GET_ANIME_DETAILS = "GET_ANIME_DETAILS"
    ADD_TO_WATCHLIST = "ADD_TO_WATCHLIST"
    REMOVE_FROM_WATCHLIST = "REMOVE_FROM_WATCHLIST"
    GET_WATCHLIST = "GET_WATCHLIST"
    UPDATE_SETTINGS = "UPDATE_SETTINGS"
    GET_SETTINGS = "GET_SETTINGS"
    FORCE_UPDATE = "FORCE_UPDATE"
    SET_ANIME_NOTIFICATIONS = "SET_ANIME_NOTIFICATIONS"
    CHECK_NOTIFICATIONS = "CHECK_NOTIFICATIONS"
    CLEAR_CACHE = "CLEAR_CACHE"


def _serialize(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    if isinstance(value, SentNotification):
        return {
            "id": str(value.key),
            "title": value.content.title,
            "body": value.content.body,
            "icon": value.content.icon,
            "handle": value.handle,
        }
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if isinstance(value, dict):
        return {key: _serialize(item) for key, item in value.items()}
    return value


@dataclass
class CommandResponse:
    """Result envelope of an inbound command."""

    success: bool
    data: Any = None
    error: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": _serialize(self.data)}
        return {"success": False, "error": self.error}


@dataclass
class RefreshResult:
    tracked: int
    updated: int


class BackgroundService:
    """Ties the catalog client, stores and notification scheduler together.

    Args:
        store: Key-value persistence shared by every component
        client: AniList client (owns the rate limiter and response cache)
        watchlist: Watchlist store
        settings_store: User settings store
        scheduler: Notification scheduler (owns the dedup ledger)
        timers: Timer capability; optional for one-shot use
        api_settings: Retry budget for refreshes
        cache_settings: Whether the response cache is persisted
        scheduler_settings: Notification timer interval
        clock: Wall-clock time source in epoch seconds
        sleep: Coroutine used for retry backoff, injectable for tests
    """

    def __init__(
        self,
        store: KeyValueStore,
        client: AniListClient,
        watchlist: WatchlistStore,
        settings_store: UserSettingsStore,
        scheduler: NotificationScheduler,
        timers: TimerScheduler | None = None,
        api_settings: AniListSettings | None = None,
        cache_settings: CacheSettings | None = None,
        scheduler_settings: SchedulerSettings | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.client = client
        self.watchlist = watchlist
        self.settings_store = settings_store
        self.scheduler = scheduler
        self.timers = timers
        self.api_settings = api_settings or client.settings
        self.cache_settings = cache_settings or client.cache_settings
        self.scheduler_settings = scheduler_settings or SchedulerSettings()
        self._clock = clock
        self._sleep = sleep
        self._timers_armed = False

    # ==================== Lifecycle ====================

    async def install(self) -> None:
        """First-run and startup work: seed settings, arm timers, restore cache."""
        log_operation_start(logger, "install")
        await self.settings_store.seed_defaults()
        if self.timers is not None:
            await self.arm_timers()
        await self.restore_cache()
        logger.info("Background service installed")

    async def arm_timers(self) -> None:
        """(Re-)register both periodic timers, clearing earlier registrations."""
        if self.timers is None:
            raise ApplicationError(
                code=ErrorCode.CONFIGURATION_ERROR,
                message="No timer scheduler configured",
                context=ErrorContext(operation="arm_timers"),
            )

        settings = await self.settings_store.get()
        await self.timers.clear_all()
        self.timers.create(
            TimerNames.REFRESH_WATCHLIST,
            settings.updates.frequency,
            self.refresh_cycle,
        )
        self.timers.create(
            TimerNames.CHECK_NOTIFICATIONS,
            self.scheduler_settings.notification_interval,
            self.notification_cycle,
        )
        self._timers_armed = True

    async def restore_cache(self) -> int:
        if not self.cache_settings.persist:
            return 0
        return self.client.restore_cache(await self.store.get(StorageKeys.CACHE))

    async def persist_cache(self) -> None:
        if self.cache_settings.persist:
            await self.store.set(StorageKeys.CACHE, self.client.export_cache())

    # ==================== Periodic cycles ====================

    async def refresh_cycle(self) -> None:
        """Timer entry point for the watchlist refresh. Never raises."""
        try:
            settings = await self.settings_store.get()
            if not settings.updates.auto_update:
                logger.info("Automatic updates disabled, skipping refresh")
                return
            await self._refresh()
        except AniTickError as e:
            log_operation_error(logger=logger, error=e, operation="refresh_cycle")
        except Exception:
            logger.exception("Unexpected error during watchlist refresh")

    async def notification_cycle(self) -> None:
        """Timer entry point for notification evaluation. Never raises."""
        try:
            await self._check_notifications()
        except AniTickError as e:
            log_operation_error(logger=logger, error=e, operation="notification_cycle")
        except Exception:
            logger.exception("Unexpected error during notification check")

    async def _refresh(self) -> RefreshResult:
        ids = await self.watchlist.ids()
        if not ids:
            logger.info("Watchlist is empty, skipping update")
            return RefreshResult(tracked=0, updated=0)

        started = time.perf_counter()
        updates = await retry_with_backoff(
            lambda: self.client.bulk_refresh(ids),
            max_attempts=self.api_settings.retry_attempts,
            base_delay=self.api_settings.retry_base_delay,
            max_delay=self.api_settings.retry_max_delay,
            sleep=self._sleep,
        )
        updated = await self.watchlist.merge_refresh({update.id: update for update in updates})
        await self.store.set(StorageKeys.LAST_UPDATE, epoch_ms(self._clock))

        log_operation_success(
            logger=logger,
            operation="refresh_watchlist",
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
            result_info={"tracked": len(ids), "updated": updated},
        )
        logger.info("Watchlist updated: %d of %d entries refreshed", updated, len(ids))
        return RefreshResult(tracked=len(ids), updated=updated)

    async def _check_notifications(self) -> list[SentNotification]:
        settings = await self.settings_store.get()
        entries = await self.watchlist.entries()
        return await self.scheduler.evaluate(entries, settings)

    async def handle_notification_click(self, notification_id: str) -> None:
        """Acknowledge a clicked notification by dismissing it."""
        logger.info("Notification clicked: %s", notification_id)
        try:
            await self.scheduler.display.clear(notification_id)
        except AniTickError as e:
            log_operation_error(logger=logger, error=e, operation="clear_notification")

    # ==================== Inbound commands ====================

    async def dispatch(
        self,
        command_type: CommandType | str,
        payload: dict[str, Any] | None = None,
    ) -> CommandResponse:
        """Route a command by name to its handler.

        Args:
            command_type: A ``CommandType`` or its string value
            payload: Command arguments (``query``, ``id``, ``anime``, ``settings``)
        """
        payload = payload or {}
        try:
            command = CommandType(command_type)
        except ValueError:
            logger.warning("Unknown command type: %s", command_type)
            return CommandResponse(
                success=False,
                error=ApplicationError(
                    code=ErrorCode.UNKNOWN_COMMAND,
                    message=f"Unknown command type: {command_type}",
                    context=ErrorContext(operation="dispatch"),
                ).to_dict(),
            )

        logger.debug("Command received: %s", command.value)
        if command is CommandType.SEARCH_ANIME:
            return await self.search(payload.get("query", ""))
        if command is CommandType.GET_ANIME_DETAILS:
            return await self._respond("get_details", lambda: self._get_details(_require_id(payload)))
        if command is CommandType.ADD_TO_WATCHLIST:
            return await self._respond("add_to_watchlist", lambda: self._add(payload))
        if command is CommandType.REMOVE_FROM_WATCHLIST:
            return await self._respond(
                "remove_from_watchlist",
                lambda: self.watchlist.remove(_require_id(payload)),
            )
        if command is CommandType.GET_WATCHLIST:
            return await self.get_watchlist()
        if command is CommandType.UPDATE_SETTINGS:
            return await self.update_settings(payload.get("settings") or {})
        if command is CommandType.GET_SETTINGS:
            return await self.get_settings()
        if command is CommandType.FORCE_UPDATE:
            return await self.force_refresh()
        if command is CommandType.SET_ANIME_NOTIFICATIONS:
            return await self._respond(
                "set_anime_notifications",
                lambda: self.watchlist.set_notifications_enabled(
                    _require_id(payload),
                    _require_bool(payload, "enabled"),
                ),
            )
        if command is CommandType.CHECK_NOTIFICATIONS:
            return await self.check_notifications()
        return await self.clear_cache()

    async def search(self, query: str) -> CommandResponse:
        return await self._respond("search", lambda: self.client.search(query))

    async def get_details(self, media_id: int) -> CommandResponse:
        return await self._respond("get_details", lambda: self._get_details(media_id))

    async def add_to_watchlist(self, anime: AnimeSummary | int) -> CommandResponse:
        """Track ``anime``; an id is resolved through the catalog first."""
        if isinstance(anime, int):
            return await self._respond("add_to_watchlist", lambda: self._add({"id": anime}))
        return await self._respond("add_to_watchlist", lambda: self.watchlist.add(anime))

    async def remove_from_watchlist(self, media_id: int) -> CommandResponse:
        return await self._respond("remove_from_watchlist", lambda: self.watchlist.remove(media_id))

    async def set_anime_notifications(self, media_id: int, enabled: bool) -> CommandResponse:
        """Switch notifications for one tracked anime; data is None if it is not tracked."""
        return await self._respond(
            "set_anime_notifications",
            lambda: self.watchlist.set_notifications_enabled(media_id, enabled),
        )

    async def get_watchlist(self) -> CommandResponse:
        return await self._respond("get_watchlist", self.watchlist.entries)

    async def update_settings(self, partial: dict[str, Any]) -> CommandResponse:
        return await self._respond("update_settings", lambda: self._update_settings(partial))

    async def get_settings(self) -> CommandResponse:
        return await self._respond("get_settings", self.settings_store.get)

    async def force_refresh(self) -> CommandResponse:
        """Refresh now, regardless of ``updates.autoUpdate``; errors are reported."""
        return await self._respond("force_refresh", self._refresh_summary)

    async def check_notifications(self) -> CommandResponse:
        return await self._respond("check_notifications", self._check_notifications)

    async def clear_cache(self) -> CommandResponse:
        async def _clear() -> None:
            self.client.clear_cache()
            await self.persist_cache()

        return await self._respond("clear_cache", _clear)

    async def last_update(self) -> int | None:
        """Epoch ms of the last successful refresh, if any."""
        value = await self.store.get(StorageKeys.LAST_UPDATE)
        return int(value) if value is not None else None

    async def _respond(
        self,
        operation: str,
        func: Callable[[], Awaitable[Any]],
    ) -> CommandResponse:
        try:
            data = await func()
        except AniTickError as e:
            log_operation_error(logger=logger, error=e, operation=operation)
            return CommandResponse(success=False, error=e.to_dict())
        except Exception as e:
            logger.exception("Unexpected error in %s", operation)
            error = ApplicationError(
                code=ErrorCode.APPLICATION_ERROR,
                message=str(e) or type(e).__name__,
                context=ErrorContext(operation=operation),
                original_error=e,
            )
            return CommandResponse(success=False, error=error.to_dict())
        return CommandResponse(success=True, data=data)

    async def _get_details(self, media_id: int) -> AnimeDetails:
        was_cached = CacheKeys.anime_details(media_id) in self.client.cache
        details = await self.client.get_details(media_id)
        if not was_cached:
            await self.persist_cache()
        return details

    async def _add(self, payload: dict[str, Any]) -> TrackedAnime:
        raw = payload.get("anime")
        if raw is not None:
            try:
                anime = AnimeSummary.model_validate(raw)
            except ValidationError as e:
                raise create_validation_error(
                    f"Invalid anime record: {e.errors()[0]['msg']}",
                    field="anime",
                    operation="add_to_watchlist",
                    original_error=e,
                ) from e
        else:
            anime = await self._get_details(_require_id(payload))
        return await self.watchlist.add(anime)

    async def _update_settings(self, partial: dict[str, Any]) -> UserSettings:
        updated = await self.settings_store.update(partial)
        if self._timers_armed and ("updates" in partial):
            await self.arm_timers()
        return updated

    async def _refresh_summary(self) -> dict[str, int]:
        result = await self._refresh()
        return {"tracked": result.tracked, "updated": result.updated}


def _require_id(payload: dict[str, Any]) -> int:
    raw = payload.get("id")
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise create_validation_error(
            f"Command requires an integer 'id', got: {raw!r}",
            field="id",
            operation="dispatch",
            original_error=e,
        ) from e


def _require_bool(payload: dict[str, Any], field: str) -> bool:
    raw = payload.get(field)
    if not isinstance(raw, bool):
        raise create_validation_error(
            f"Command requires a boolean '{field}', got: {raw!r}",
            field=field,
            operation="dispatch",
        )
    return raw
