"""Dependency Injection container for AniTick.

This module provides a centralized DI container using dependency-injector
to wire the tracker's components together.

The container manages:
- Settings (Singleton)
- Persistence (JsonFileStore)
- AniList access (SlidingWindowRateLimiter, ResponseCache, AiohttpTransport, AniListClient)
- Watchlist and user settings stores
- Notification ledger, scheduler and display
- Timer scheduler and the BackgroundService facade

Stateful components are singletons so that one process shares one rate
window, one response cache and one notification ledger.
"""

from __future__ import annotations

from dependency_injector import containers, providers

from anitick.adapters import AsyncioTimerScheduler, RichConsoleNotifier
from anitick.config.loader import load_settings
from anitick.services import (
    AniListClient,
    BackgroundService,
    NotificationLedger,
    NotificationScheduler,
    ResponseCache,
    SlidingWindowRateLimiter,
    UserSettingsStore,
    WatchlistStore,
)
from anitick.services.anilist import AiohttpTransport
from anitick.storage import JsonFileStore


class Container(containers.DeclarativeContainer):
    """Dependency Injection container for AniTick services.

    Example:
        >>> container = Container()
        >>> container.config.override(providers.Object(Settings()))
        >>> service = container.background_service()
        >>> await service.install()
    """

    # Configuration
    config = providers.Singleton(load_settings)

    anilist_settings = providers.Callable(lambda config: config.api.anilist, config=config)
    cache_settings = providers.Callable(lambda config: config.cache, config=config)
    notification_settings = providers.Callable(lambda config: config.notifications, config=config)

    # Persistence
    store = providers.Singleton(
        JsonFileStore,
        path=providers.Callable(lambda config: config.storage.path, config=config),
        lock_timeout=providers.Callable(lambda config: config.storage.lock_timeout, config=config),
    )

    # AniList access
    rate_limiter = providers.Singleton(
        SlidingWindowRateLimiter,
        max_requests=providers.Callable(lambda s: s.max_requests, s=anilist_settings),
        time_window=providers.Callable(lambda s: s.window_seconds, s=anilist_settings),
    )

    response_cache = providers.Singleton(ResponseCache)

    transport = providers.Singleton(
        AiohttpTransport,
        url=providers.Callable(lambda s: s.url, s=anilist_settings),
        timeout=providers.Callable(lambda s: s.timeout, s=anilist_settings),
    )

    anilist_client = providers.Singleton(
        AniListClient,
        transport=transport,
        rate_limiter=rate_limiter,
        cache=response_cache,
        settings=anilist_settings,
        cache_settings=cache_settings,
    )

    # Stores
    watchlist_store = providers.Singleton(WatchlistStore, store=store)
    user_settings_store = providers.Singleton(UserSettingsStore, store=store)

    # Notifications
    notification_ledger = providers.Singleton(
        NotificationLedger,
        quiet_period=providers.Callable(lambda s: s.quiet_period, s=notification_settings),
        retention=providers.Callable(lambda s: s.ledger_retention, s=notification_settings),
    )

    notifier = providers.Singleton(RichConsoleNotifier)

    notification_scheduler = providers.Singleton(
        NotificationScheduler,
        display=notifier,
        ledger=notification_ledger,
        fallback_icon=providers.Callable(lambda s: s.fallback_icon, s=notification_settings),
        store=store,
    )

    timer_scheduler = providers.Singleton(AsyncioTimerScheduler)

    # Facade
    background_service = providers.Singleton(
        BackgroundService,
        store=store,
        client=anilist_client,
        watchlist=watchlist_store,
        settings_store=user_settings_store,
        scheduler=notification_scheduler,
        timers=timer_scheduler,
        api_settings=anilist_settings,
        cache_settings=cache_settings,
        scheduler_settings=providers.Callable(lambda config: config.scheduler, config=config),
    )
