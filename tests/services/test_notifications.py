"""Tests for notification formatting, the dedup ledger and the scheduler."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from anitick.services.notifications import (
    NotificationLedger,
    NotificationScheduler,
    format_time_until,
)
from anitick.shared.constants import NotificationConfig, StorageKeys
from anitick.shared.models import (
    NotificationContent,
    NotificationKey,
    NotificationKind,
    TrackedAnime,
    UserSettings,
)
from anitick.storage import InMemoryStore, JsonFileStore
from conftest import BASE_TIME, FakeClock, RecordingDisplay, make_media

NOW = int(BASE_TIME)


def tracked(
    media_id: int,
    airing_at: int | None,
    episode: int = 5,
    *,
    enabled: bool = True,
    cover: str | None = None,
    title: str | None = None,
) -> TrackedAnime:
    media = make_media(media_id, title=title, next_episode=episode, airing_at=airing_at, cover=cover)
    return TrackedAnime.model_validate(
        {**media, "addedAt": NOW * 1000, "lastChecked": NOW * 1000, "notificationsEnabled": enabled},
    )


def settings(**notifications) -> UserSettings:
    return UserSettings().merged({"notifications": notifications}) if notifications else UserSettings()


class TestFormatTimeUntil:
    """Test cases for format_time_until."""

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (0, "less than 1 minute"),
            (59, "less than 1 minute"),
            (60, "1 minute"),
            (1800, "30 minutes"),
            (3600, "1 hour"),
            (5400, "1h 30m"),
            (7200, "2 hours"),
            (86400, "1 day"),
            (90000, "1d 1h"),
            (3 * 86400, "3 days"),
        ],
    )
    def test_format(self, seconds, expected):
        assert format_time_until(seconds) == expected


class TestNotificationLedger:
    """Test cases for NotificationLedger."""

    def test_quiet_period(self):
        """Test that a key is suppressed only within the quiet period."""
        ledger = NotificationLedger(quiet_period=1800, retention=86400)
        key = NotificationKey(NotificationKind.UPCOMING, 1, 5)

        ledger.record(key, 1000)

        assert ledger.was_sent_recently(key, 1000 + 1799)
        assert not ledger.was_sent_recently(key, 1000 + 1800)
        assert not ledger.was_sent_recently(NotificationKey(NotificationKind.UPCOMING, 1, 6), 1000)

    def test_retention_prunes_on_record(self):
        """Test that old entries are dropped when a new one is recorded."""
        ledger = NotificationLedger(quiet_period=1800, retention=86400)
        old = NotificationKey(NotificationKind.RELEASE, 1, 1)
        new = NotificationKey(NotificationKind.RELEASE, 2, 1)

        ledger.record(old, 0)
        ledger.record(new, 86401)

        assert old not in ledger
        assert new in ledger
        assert len(ledger) == 1

    def test_round_trip_skips_malformed(self):
        """Test that from_dict rebuilds entries and drops malformed ones."""
        ledger = NotificationLedger.from_dict(
            {"upcoming_1_5": 100, "bogus": 1, "release_x_1": 2, "release_2_3": "not-a-time"},
        )

        assert ledger.to_dict() == {"upcoming_1_5": 100.0}
        assert ledger.quiet_period == NotificationConfig.QUIET_PERIOD

    def test_replace(self):
        ledger = NotificationLedger()
        ledger.record(NotificationKey(NotificationKind.UPCOMING, 1, 1), 10)

        ledger.replace(NotificationLedger.from_dict({"release_9_9": 5}))

        assert ledger.to_dict() == {"release_9_9": 5.0}


@pytest.fixture
def scheduler(display: RecordingDisplay, clock: FakeClock) -> NotificationScheduler:
    return NotificationScheduler(display, clock=clock)


class TestNotificationScheduler:
    """Test cases for NotificationScheduler.evaluate."""

    @pytest.mark.asyncio
    async def test_upcoming_fires_once(self, scheduler, display, clock):
        """Test that an episode 30 minutes out is announced once, not again 2 minutes later."""
        watchlist = [tracked(1, NOW + 1800, title="Frieren")]

        first = await scheduler.evaluate(watchlist, settings())
        clock.advance(120)
        second = await scheduler.evaluate(watchlist, settings())

        assert len(first) == 1
        assert second == []
        [(notification_id, content)] = display.created
        assert notification_id == "upcoming_1_5"
        assert content.title == "Episode airing soon"
        assert content.body == "Frieren EP 5 airs in 30 minutes"

    @pytest.mark.asyncio
    async def test_outside_window_not_announced(self, scheduler, display):
        """Test that an episode beyond beforeAiring is ignored."""
        await scheduler.evaluate([tracked(1, NOW + 3601)], settings())

        assert display.created == []

    @pytest.mark.asyncio
    async def test_window_boundary_inclusive(self, scheduler, display):
        await scheduler.evaluate([tracked(1, NOW + 3600)], settings())

        assert len(display.created) == 1

    @pytest.mark.asyncio
    async def test_release_notification(self, scheduler, display):
        """Test that an episode that has aired produces a release notification."""
        sent = await scheduler.evaluate([tracked(2, NOW - 10, episode=7, title="Dandadan")], settings())

        assert [str(s.key) for s in sent] == ["release_2_7"]
        assert sent[0].content.body == "Dandadan EP 7 is now available"
        assert sent[0].handle == "handle-release_2_7"

    @pytest.mark.asyncio
    async def test_release_disabled(self, scheduler, display):
        await scheduler.evaluate([tracked(2, NOW - 10)], settings(onRelease=False))

        assert display.created == []

    @pytest.mark.asyncio
    async def test_globally_disabled(self, scheduler, display):
        """Test that nothing is shown when notifications are turned off."""
        sent = await scheduler.evaluate(
            [tracked(1, NOW + 60), tracked(2, NOW - 60)],
            settings(enabled=False),
        )

        assert sent == []
        assert display.created == []

    @pytest.mark.asyncio
    async def test_per_item_disabled(self, scheduler, display):
        """Test that a muted entry is skipped while others are announced."""
        sent = await scheduler.evaluate(
            [tracked(1, NOW + 60, enabled=False), tracked(2, NOW + 60)],
            settings(),
        )

        assert [s.key.media_id for s in sent] == [2]

    @pytest.mark.asyncio
    async def test_no_next_airing(self, scheduler, display):
        await scheduler.evaluate([tracked(1, None)], settings())

        assert display.created == []

    @pytest.mark.asyncio
    async def test_display_failure_is_isolated(self, clock):
        """Test that one failing notification neither stops others nor gets recorded."""
        display = RecordingDisplay(fail_ids={"upcoming_1_5"})
        scheduler = NotificationScheduler(display, clock=clock)

        sent = await scheduler.evaluate([tracked(1, NOW + 60), tracked(2, NOW + 60)], settings())

        assert [s.key.media_id for s in sent] == [2]
        assert NotificationKey(NotificationKind.UPCOMING, 1, 5) not in scheduler.ledger

        display.fail_ids.clear()
        retried = await scheduler.evaluate([tracked(1, NOW + 60)], settings())
        assert [s.key.media_id for s in retried] == [1]

    @pytest.mark.asyncio
    async def test_unexpected_display_error_is_isolated(self, clock, mocker):
        display = RecordingDisplay()
        scheduler = NotificationScheduler(display, clock=clock)
        mocker.patch.object(display, "create", side_effect=RuntimeError("boom"))

        assert await scheduler.evaluate([tracked(1, NOW + 60)], settings()) == []
        assert len(scheduler.ledger) == 0

    @pytest.mark.asyncio
    async def test_next_episode_is_a_new_key(self, scheduler, display, clock):
        """Test that a refreshed next episode becomes eligible again."""
        await scheduler.evaluate([tracked(1, NOW + 60, episode=5)], settings())
        clock.advance(300)
        await scheduler.evaluate([tracked(1, NOW + 7 * 86400, episode=6)], settings())
        clock.advance(7 * 86400 - 400)
        await scheduler.evaluate([tracked(1, NOW + 7 * 86400, episode=6)], settings())

        assert [nid for nid, _ in display.created] == ["upcoming_1_5", "upcoming_1_6"]

    @pytest.mark.asyncio
    async def test_quiet_period_expiry(self, scheduler, display, clock):
        """Test that a release is repeated once the quiet period has passed."""
        anime = [tracked(1, NOW - 10)]

        await scheduler.evaluate(anime, settings())
        clock.advance(NotificationConfig.QUIET_PERIOD)
        await scheduler.evaluate(anime, settings())

        assert len(display.created) == 2

    @pytest.mark.asyncio
    async def test_icon_fallback(self, scheduler, display):
        await scheduler.evaluate(
            [tracked(1, NOW + 60, cover="https://img/1.png"), tracked(2, NOW + 60)],
            settings(),
        )

        icons = [content.icon for _, content in display.created]
        assert icons == ["https://img/1.png", NotificationConfig.FALLBACK_ICON]

    @pytest.mark.asyncio
    async def test_explicit_now(self, scheduler, display):
        sent = await scheduler.evaluate([tracked(1, 1000)], settings(), now=500)

        assert [s.key.kind for s in sent] == [NotificationKind.UPCOMING]


class GatedDisplay(RecordingDisplay):
    """Display that holds every notification until released."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def create(self, notification_id: str, content: NotificationContent) -> str:
        self.entered.set()
        await self.release.wait()
        return await super().create(notification_id, content)


class TestSharedLedger:
    """Test cases for schedulers sharing a persisted ledger."""

    @pytest.mark.asyncio
    async def test_claimed_before_display(self, data_file: Path, clock):
        """Test that a second scheduler skips a notification still being shown by the first."""
        daemon_display = GatedDisplay()
        check_display = RecordingDisplay()
        daemon = NotificationScheduler(daemon_display, clock=clock, store=JsonFileStore(data_file))
        check = NotificationScheduler(check_display, clock=clock, store=JsonFileStore(data_file))
        watchlist = [tracked(1, NOW + 600)]

        pending = asyncio.create_task(daemon.evaluate(watchlist, settings()))
        await daemon_display.entered.wait()

        assert await check.evaluate(watchlist, settings()) == []

        daemon_display.release.set()
        assert [s.key.media_id for s in await pending] == [1]
        assert check_display.created == []

    @pytest.mark.asyncio
    async def test_ledger_written_to_store(self, clock):
        store = InMemoryStore()
        scheduler = NotificationScheduler(RecordingDisplay(), clock=clock, store=store)

        await scheduler.evaluate([tracked(1, NOW - 10)], settings())

        assert store.snapshot()[StorageKeys.NOTIFICATION_LEDGER] == {"release_1_5": float(NOW)}
        assert NotificationKey(NotificationKind.RELEASE, 1, 5) in scheduler.ledger

    @pytest.mark.asyncio
    async def test_failed_display_releases_claim(self, clock):
        """Test that a notification that could not be shown is removed from the stored ledger."""
        store = InMemoryStore({StorageKeys.NOTIFICATION_LEDGER: {"upcoming_9_1": float(NOW - 60)}})
        display = RecordingDisplay(fail_ids={"upcoming_1_5"})
        scheduler = NotificationScheduler(display, clock=clock, store=store)

        assert await scheduler.evaluate([tracked(1, NOW + 60)], settings()) == []
        assert store.snapshot()[StorageKeys.NOTIFICATION_LEDGER] == {"upcoming_9_1": float(NOW - 60)}

        display.fail_ids.clear()
        assert len(await scheduler.evaluate([tracked(1, NOW + 60)], settings())) == 1

    @pytest.mark.asyncio
    async def test_non_mapping_ledger_is_reset(self, clock):
        store = InMemoryStore({StorageKeys.NOTIFICATION_LEDGER: ["garbage"]})
        scheduler = NotificationScheduler(RecordingDisplay(), clock=clock, store=store)

        sent = await scheduler.evaluate([tracked(1, NOW + 60)], settings())

        assert len(sent) == 1
        assert store.snapshot()[StorageKeys.NOTIFICATION_LEDGER] == {"upcoming_1_5": float(NOW)}
