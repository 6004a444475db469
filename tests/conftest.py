"""
Pytest configuration and shared fixtures for AniTick tests.

Every time-dependent component takes an injectable clock and sleep, so the
fixtures here provide a manual clock, a sleep that advances it, a scripted
AniList transport and recording notification and timer capabilities.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from anitick.shared.errors import ErrorCode, NotificationDisplayError
from anitick.shared.models import NotificationContent
from anitick.shared.protocols import TransportResponse
from anitick.storage import InMemoryStore

# 2026-10-19T12:00:00Z
BASE_TIME = 1_792_411_200.0


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = BASE_TIME) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Async sleep that records the delay and advances the clock instead of waiting."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.advance(seconds)


class FakeTransport:
    """Scripted AniList transport.

    Responses are served in order; a callable entry receives the payload
    and returns the response. When the script runs out, ``default`` is used.
    """

    def __init__(
        self,
        responses: list[Any] | None = None,
        default: TransportResponse | Callable[[dict[str, Any]], TransportResponse] | None = None,
    ) -> None:
        self.responses = list(responses or [])
        self.default = default
        self.payloads: list[dict[str, Any]] = []

    @property
    def call_count(self) -> int:
        return len(self.payloads)

    async def __call__(self, payload: dict[str, Any]) -> TransportResponse:
        self.payloads.append(payload)
        entry = self.responses.pop(0) if self.responses else self.default
        if entry is None:
            raise AssertionError("FakeTransport ran out of responses")
        if isinstance(entry, BaseException):
            raise entry
        if callable(entry):
            return entry(payload)
        return entry


class RecordingDisplay:
    """Notification display that records what it shows."""

    def __init__(self, fail_ids: set[str] | None = None) -> None:
        self.fail_ids = fail_ids or set()
        self.created: list[tuple[str, NotificationContent]] = []
        self.cleared: list[str] = []

    async def create(self, notification_id: str, content: NotificationContent) -> str:
        if notification_id in self.fail_ids:
            raise NotificationDisplayError(
                ErrorCode.NOTIFICATION_DISPLAY_FAILED,
                f"cannot show {notification_id}",
            )
        self.created.append((notification_id, content))
        return f"handle-{notification_id}"

    async def clear(self, notification_id: str) -> None:
        self.cleared.append(notification_id)


class RecordingTimers:
    """Timer capability that records registrations without running them."""

    def __init__(self) -> None:
        self.timers: dict[str, tuple[float, Any]] = {}
        self.clear_calls = 0

    async def clear_all(self) -> None:
        self.clear_calls += 1
        self.timers.clear()

    def create(self, name: str, period_minutes: float, callback: Any) -> None:
        self.timers[name] = (period_minutes, callback)


def make_media(
    media_id: int,
    *,
    title: str | None = None,
    status: str = "RELEASING",
    episodes: int | None = 12,
    next_episode: int | None = None,
    airing_at: int | None = None,
    cover: str | None = None,
) -> dict[str, Any]:
    """AniList-shaped media record."""
    media: dict[str, Any] = {
        "id": media_id,
        "title": {"romaji": title or f"Anime {media_id}", "english": None, "native": None},
        "status": status,
        "episodes": episodes,
        "nextAiringEpisode": None,
        "coverImage": {"large": None, "medium": cover},
        "genres": ["Action"],
    }
    if next_episode is not None and airing_at is not None:
        media["nextAiringEpisode"] = {"episode": next_episode, "airingAt": airing_at}
    return media


def ok(data: dict[str, Any], headers: dict[str, str] | None = None) -> TransportResponse:
    return TransportResponse(status=200, body={"data": data}, headers=headers or {})


def page_of(ids: list[int]) -> TransportResponse:
    return ok({"Page": {"media": [make_media(i) for i in ids]}})


def bulk_responder(known_ids: set[int] | None = None) -> Callable[[dict[str, Any]], TransportResponse]:
    """Answer bulk status queries with a record for every requested (known) id."""

    def respond(payload: dict[str, Any]) -> TransportResponse:
        ids = payload["variables"]["ids"]
        return page_of([i for i in ids if known_ids is None or i in known_ids])

    return respond


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleep(clock: FakeClock) -> FakeSleep:
    return FakeSleep(clock)


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def display() -> RecordingDisplay:
    return RecordingDisplay()


@pytest.fixture
def timers() -> RecordingTimers:
    return RecordingTimers()


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    return tmp_path / "anitick.json"
