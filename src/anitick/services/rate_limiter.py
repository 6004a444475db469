"""Sliding Window Rate Limiter implementation.

This module provides an asyncio rate limiter for controlling request rates
to the AniList API. It keeps the timestamps of recent acquisitions and
blocks callers until the trailing window has room again.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable
from typing import Callable

from anitick.shared.constants import AniListConfig
from anitick.shared.errors import ApplicationError, ErrorCode, ErrorContext

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


class SlidingWindowRateLimiter:
    """Asyncio sliding window rate limiter.

    At most ``max_requests`` acquisitions complete within any trailing
    ``time_window`` seconds. Callers that would exceed the cap are
    suspended (``asyncio.sleep``) until the oldest acquisition leaves the
    window; requests are never dropped. Acquisitions are serialized by a
    lock, so the cap holds even when several tasks share one instance.

    Args:
        max_requests: Maximum acquisitions per window (default: 90)
        time_window: Window length in seconds (default: 60)
        clock: Monotonic time source, injectable for tests
        sleep: Coroutine used to wait, injectable for tests
    """

    def __init__(
        self,
        max_requests: int = AniListConfig.MAX_REQUESTS,
        time_window: float = AniListConfig.TIME_WINDOW,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        context = ErrorContext(
            operation="rate_limiter_init",
            additional_data={"max_requests": max_requests, "time_window": time_window},
        )

        if max_requests <= 0:
            raise ApplicationError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"max_requests must be positive, got: {max_requests}",
                context=context,
            )

        if time_window <= 0:
            raise ApplicationError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"time_window must be positive, got: {time_window}",
                context=context,
            )

        self.max_requests = max_requests
        self.time_window = time_window
        self._clock = clock
        self._sleep = sleep
        self._requests: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _prune(self, now: float) -> None:
        while self._requests and now - self._requests[0] >= self.time_window:
            self._requests.popleft()

    async def acquire(self) -> None:
        """Wait for a free slot in the window, then record the acquisition."""
        async with self._lock:
            while True:
                now = self._clock()
                self._prune(now)

                if len(self._requests) < self.max_requests:
                    self._requests.append(now)
                    return

                wait_time = self.time_window - (now - self._requests[0])
                logger.debug(
                    "Rate limit window full (%d/%d), waiting %.2fs",
                    len(self._requests),
                    self.max_requests,
                    wait_time,
                )
                await self._sleep(wait_time)

    def get_requests_in_window(self) -> int:
        """Number of acquisitions inside the current trailing window."""
        self._prune(self._clock())
        return len(self._requests)

    def get_available_slots(self) -> int:
        """Number of acquisitions that would complete without waiting."""
        return self.max_requests - self.get_requests_in_window()

    def reset(self) -> None:
        """Forget every recorded acquisition."""
        self._requests.clear()
