"""Exponential backoff retry for transient network failures.

The catalog client never retries ``NetworkError`` on its own; callers that
need resilience wrap a call in ``retry_with_backoff`` with an explicit
attempt budget. Only failures that may succeed on a second try are
retried: timeouts, connection failures and 5xx answers. Rejected
requests, malformed payloads and an exhausted rate-limit budget fail on
the first attempt.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from anitick.shared.errors import ApplicationError, ErrorCode, ErrorContext, NetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERROR_CODES = frozenset(
    {
        ErrorCode.NETWORK_ERROR,
        ErrorCode.API_TIMEOUT,
        ErrorCode.API_SERVER_ERROR,
    },
)


def is_transient_network_error(exception: BaseException) -> bool:
    """Check if ``exception`` is a network failure worth another attempt."""
    return isinstance(exception, NetworkError) and exception.code in TRANSIENT_ERROR_CODES


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_attempts: int,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    retry_predicate: Callable[[BaseException], bool] = is_transient_network_error,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Call ``func`` until it succeeds or ``max_attempts`` is used up.

    Delays grow as ``base_delay * 2**n`` and are capped at ``max_delay``.

    Args:
        func: Zero-argument coroutine function to call
        max_attempts: Total number of calls allowed (at least 1)
        base_delay: Delay in seconds before the first retry
        max_delay: Upper bound for any single delay
        retry_predicate: Decides whether an error triggers a retry; others propagate
        sleep: Coroutine used to wait, injectable for tests

    Returns:
        The first successful result

    Raises:
        ApplicationError: If ``max_attempts`` is less than 1
        Exception: The last error once attempts are exhausted
    """
    if max_attempts < 1:
        raise ApplicationError(
            code=ErrorCode.VALIDATION_ERROR,
            message=f"max_attempts must be at least 1, got: {max_attempts}",
            context=ErrorContext(operation="retry_with_backoff"),
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay, max=max_delay),
        retry=retry_if_exception(retry_predicate),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        sleep=sleep,
        reraise=True,
    )
    return await retrying(func)
