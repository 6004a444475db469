"""Named periodic timers on the running asyncio loop."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable
from typing import Callable

from anitick.shared.constants import BASE_MINUTE
from anitick.shared.protocols import TimerCallback

logger = logging.getLogger(__name__)


class AsyncioTimerScheduler:
    """One asyncio task per named timer.

    Each task sleeps for the period, awaits the callback to completion and
    sleeps again, so firings of one timer never overlap and ticks missed
    while a callback runs are not queued. Re-creating a name replaces the
    previous registration.

    Args:
        sleep: Coroutine used to wait, injectable for tests
    """

    def __init__(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
        self._sleep = sleep
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def create(self, name: str, period_minutes: float, callback: TimerCallback) -> None:
        previous = self._tasks.pop(name, None)
        if previous is not None:
            previous.cancel()

        period = period_minutes * BASE_MINUTE
        self._tasks[name] = asyncio.create_task(
            self._run(name, period, callback),
            name=f"timer:{name}",
        )
        logger.info("Timer '%s' armed every %.1f minutes", name, period_minutes)

    async def clear_all(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    @property
    def names(self) -> list[str]:
        return list(self._tasks)

    async def wait(self) -> None:
        """Block until every registered timer has stopped."""
        if self._tasks:
            await asyncio.gather(*self._tasks.values())

    async def _run(self, name: str, period: float, callback: TimerCallback) -> None:
        while True:
            await self._sleep(period)
            logger.debug("Timer '%s' fired", name)
            try:
                await callback()
            except Exception:
                logger.exception("Timer '%s' callback failed", name)
