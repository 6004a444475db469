"""Tests for the rich console notifier and the asyncio timer scheduler."""

from __future__ import annotations

import asyncio
import io

import pytest
from rich.console import Console

from anitick.adapters import AsyncioTimerScheduler, RichConsoleNotifier
from anitick.shared.errors import ErrorCode, NotificationDisplayError
from anitick.shared.models import NotificationContent

CONTENT = NotificationContent(
    title="New episode available!",
    body="Frieren EP 5 is now available",
    icon="assets/icons/icon-128.png",
)


class TestRichConsoleNotifier:
    """Test cases for RichConsoleNotifier."""

    @pytest.mark.asyncio
    async def test_create_prints_panel(self):
        output = io.StringIO()
        notifier = RichConsoleNotifier(Console(file=output, width=80, color_system=None))

        handle = await notifier.create("release_1_5", CONTENT)

        assert handle == "release_1_5"
        assert "Frieren EP 5 is now available" in output.getvalue()
        assert "New episode available!" in output.getvalue()
        assert notifier.active == frozenset({"release_1_5"})

    @pytest.mark.asyncio
    async def test_clear(self):
        notifier = RichConsoleNotifier(Console(file=io.StringIO()))
        await notifier.create("release_1_5", CONTENT)

        await notifier.clear("release_1_5")
        await notifier.clear("unknown")

        assert notifier.active == frozenset()

    @pytest.mark.asyncio
    async def test_console_failure_raises_display_error(self, mocker):
        console = Console(file=io.StringIO())
        mocker.patch.object(console, "print", side_effect=OSError("broken pipe"))
        notifier = RichConsoleNotifier(console)

        with pytest.raises(NotificationDisplayError) as exc_info:
            await notifier.create("upcoming_1_5", CONTENT)

        assert exc_info.value.code == ErrorCode.NOTIFICATION_DISPLAY_FAILED
        assert notifier.active == frozenset()


class YieldingSleep:
    """Records requested periods and yields to the loop instead of waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)


async def spin(times: int = 10) -> None:
    for _ in range(times):
        await asyncio.sleep(0)


class TestAsyncioTimerScheduler:
    """Test cases for AsyncioTimerScheduler."""

    @pytest.mark.asyncio
    async def test_timer_fires_repeatedly(self):
        sleep = YieldingSleep()
        timers = AsyncioTimerScheduler(sleep=sleep)
        fired: list[int] = []

        async def callback() -> None:
            fired.append(1)

        timers.create("refresh-watchlist", 30, callback)
        await spin()
        await timers.clear_all()

        assert len(fired) >= 2
        assert set(sleep.calls) == {1800}
        assert timers.names == []

    @pytest.mark.asyncio
    async def test_failing_callback_keeps_timer_alive(self):
        timers = AsyncioTimerScheduler(sleep=YieldingSleep())
        calls: list[int] = []

        async def callback() -> None:
            calls.append(1)
            raise RuntimeError("cycle failed")

        timers.create("check-notifications", 5, callback)
        await spin()
        await timers.clear_all()

        assert len(calls) >= 2

    @pytest.mark.asyncio
    async def test_recreate_replaces_registration(self):
        timers = AsyncioTimerScheduler(sleep=YieldingSleep())
        first: list[int] = []
        second: list[int] = []

        async def first_callback() -> None:
            first.append(1)

        async def second_callback() -> None:
            second.append(1)

        timers.create("refresh-watchlist", 30, first_callback)
        timers.create("refresh-watchlist", 60, second_callback)
        await spin()
        await timers.clear_all()

        assert timers.names == []
        assert first == []
        assert second

    @pytest.mark.asyncio
    async def test_wait_returns_after_clear(self):
        timers = AsyncioTimerScheduler(sleep=YieldingSleep())

        async def callback() -> None:
            return None

        timers.create("a", 1, callback)
        await timers.clear_all()

        await asyncio.wait_for(timers.wait(), timeout=1)
