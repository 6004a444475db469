"""AniList API client with rate limiting, response caching and 429 recovery.

This module provides the catalog client used by the tracker: free-text
search, cached single-anime details and batched status refreshes. Every
outbound request goes through the shared sliding window rate limiter.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Iterable, Iterator
from typing import Any, Callable, TypeVar

from pydantic import BaseModel, ValidationError

from anitick.config.models import AniListSettings, CacheSettings
from anitick.services.rate_limiter import SlidingWindowRateLimiter
from anitick.services.response_cache import ResponseCache
from anitick.shared.constants import CacheKeys, HTTPHeaders, HTTPStatusCodes
from anitick.shared.errors import (
    ErrorCode,
    ErrorContext,
    NetworkError,
    NotFoundError,
    RateLimitSignal,
)
from anitick.shared.logging import (
    log_api_call,
    log_operation_error,
    log_operation_success,
)
from anitick.shared.models import AnimeDetails, AnimeStatusUpdate, AnimeSummary
from anitick.shared.protocols import Transport, TransportResponse

from .queries import ANIME_DETAILS_QUERY, BULK_STATUS_QUERY, SEARCH_ANIME_QUERY

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def chunked(ids: list[int], size: int) -> Iterator[list[int]]:
    """Split ``ids`` into consecutive batches of at most ``size``."""
    for start in range(0, len(ids), size):
        yield ids[start : start + size]


class AniListClient:
    """AniList GraphQL client.

    Args:
        transport: Callable that performs one HTTP request
        rate_limiter: Shared sliding window limiter for every request
        cache: Response cache for detail lookups
        settings: API settings (batch size, 429 wait, retry budget)
        cache_settings: Cache TTLs
        sleep: Coroutine used for the 429 wait, injectable for tests
    """

    def __init__(
        self,
        transport: Transport,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        cache: ResponseCache | None = None,
        settings: AniListSettings | None = None,
        cache_settings: CacheSettings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or AniListSettings()
        self.cache_settings = cache_settings or CacheSettings()
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter(
            max_requests=self.settings.max_requests,
            time_window=self.settings.window_seconds,
        )
        self.cache = cache if cache is not None else ResponseCache()
        self._transport = transport
        self._sleep = sleep

    async def search(self, query: str) -> list[AnimeSummary]:
        """Search anime by title. Results are never cached.

        Args:
            query: Free-text search term

        Returns:
            Matching anime, at most ``search_page_size`` entries
        """
        if not query.strip():
            return []

        data = await self._make_request(
            SEARCH_ANIME_QUERY,
            {"search": query, "perPage": self.settings.search_page_size},
            operation="search",
        )
        media = (data.get("Page") or {}).get("media") or []
        results = [self._validate(AnimeSummary, item, "search") for item in media]

        log_operation_success(
            logger=logger,
            operation="search",
            duration_ms=0,
            result_info={"results": len(results)},
            context={"query": query},
        )
        return results

    async def get_details(self, media_id: int) -> AnimeDetails:
        """Get the full record for one anime, served from cache when fresh.

        Args:
            media_id: AniList anime id

        Returns:
            The detail record

        Raises:
            NotFoundError: If AniList has no anime with this id
            NetworkError: If the request fails
        """
        cache_key = CacheKeys.anime_details(media_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for %s", cache_key)
            return self._validate(AnimeDetails, cached, "get_details")

        data = await self._make_request(
            ANIME_DETAILS_QUERY,
            {"id": media_id},
            operation="get_details",
            not_found_id=media_id,
        )
        media = data.get("Media")
        if not media:
            raise NotFoundError(media_id)

        details = self._validate(AnimeDetails, media, "get_details")
        self.cache.put(cache_key, media, self.cache_settings.details_ttl)
        return details

    async def bulk_refresh(self, ids: Iterable[int]) -> list[AnimeStatusUpdate]:
        """Fetch status, episode count and next airing for many anime.

        Ids are split into batches of at most ``batch_size`` and requested
        one batch at a time. Ids AniList no longer knows are simply missing
        from the result.

        Args:
            ids: AniList anime ids; duplicates are requested once

        Returns:
            Partial records for every id that still exists
        """
        unique_ids = list(dict.fromkeys(ids))
        if not unique_ids:
            return []

        results: list[AnimeStatusUpdate] = []
        for batch in chunked(unique_ids, self.settings.batch_size):
            data = await self._make_request(
                BULK_STATUS_QUERY,
                {"ids": batch, "perPage": len(batch)},
                operation="bulk_refresh",
            )
            media = (data.get("Page") or {}).get("media") or []
            results.extend(
                self._validate(AnimeStatusUpdate, item, "bulk_refresh") for item in media
            )

        log_operation_success(
            logger=logger,
            operation="bulk_refresh",
            duration_ms=0,
            result_info={"requested": len(unique_ids), "returned": len(results)},
        )
        return results

    def clear_cache(self) -> None:
        self.cache.clear()

    def export_cache(self) -> dict[str, Any]:
        """Serializable snapshot of the response cache for persistence."""
        return self.cache.to_dict()

    def restore_cache(self, raw: dict[str, Any] | None) -> int:
        """Load a snapshot produced by ``export_cache``."""
        loaded = self.cache.load(raw)
        logger.debug("Restored %d cache entries", loaded)
        return loaded

    async def _make_request(
        self,
        query: str,
        variables: dict[str, Any],
        operation: str,
        not_found_id: int | None = None,
    ) -> dict[str, Any]:
        """Send one rate-limited request and return its ``data`` object.

        A 429 answer triggers a fixed wait and a re-issue of the same
        request, at most ``max_rate_limit_retries`` attempts in total.

        Raises:
            NetworkError: On transport failure, error status or exhausted 429 budget
            NotFoundError: On 404 when ``not_found_id`` is given
        """
        payload = {"query": query, "variables": variables}
        max_attempts = self.settings.max_rate_limit_retries
        last_signal: RateLimitSignal | None = None

        for attempt in range(1, max_attempts + 1):
            await self.rate_limiter.acquire()

            started = time.perf_counter()
            response = await self._transport(payload)
            log_api_call(
                logger,
                endpoint=self.settings.url,
                status_code=response.status,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                context={"operation": operation, "attempt": attempt},
            )

            try:
                return self._parse_response(response, operation, not_found_id)
            except RateLimitSignal as signal:
                last_signal = signal
                if attempt == max_attempts:
                    break
                wait = max(self.settings.rate_limit_wait, signal.retry_after or 0.0)
                logger.warning(
                    "Rate limit exceeded during %s, waiting %.0fs (attempt %d/%d)",
                    operation,
                    wait,
                    attempt,
                    max_attempts,
                )
                await self._sleep(wait)

        error = NetworkError(
            f"Rate limit still exceeded after {max_attempts} attempts",
            code=ErrorCode.API_RATE_LIMIT,
            context=ErrorContext(
                operation=operation,
                additional_data={"attempts": max_attempts},
            ),
            original_error=last_signal,
            status_code=HTTPStatusCodes.TOO_MANY_REQUESTS,
        )
        log_operation_error(logger=logger, error=error, operation=operation)
        raise error

    def _parse_response(
        self,
        response: TransportResponse,
        operation: str,
        not_found_id: int | None,
    ) -> dict[str, Any]:
        context = ErrorContext(
            operation=operation,
            additional_data={"status_code": response.status},
        )

        if response.status == HTTPStatusCodes.TOO_MANY_REQUESTS:
            raise RateLimitSignal(
                retry_after=self._extract_retry_after(response),
                context=context,
            )

        if response.status == HTTPStatusCodes.NOT_FOUND and not_found_id is not None:
            raise NotFoundError(not_found_id)

        if not HTTPStatusCodes.is_success(response.status):
            code = (
                ErrorCode.API_SERVER_ERROR
                if HTTPStatusCodes.is_server_error(response.status)
                else ErrorCode.API_REQUEST_FAILED
            )
            raise NetworkError(
                f"HTTP error! status: {response.status}",
                code=code,
                context=context,
                status_code=response.status,
            )

        body = response.body
        if not isinstance(body, dict):
            raise NetworkError(
                "Response body is not a JSON object",
                code=ErrorCode.API_INVALID_RESPONSE,
                context=context,
                status_code=response.status,
            )

        data = body.get("data")
        errors = body.get("errors")
        if errors and not data:
            first = errors[0]
            message = first.get("message", "unknown error") if isinstance(first, dict) else str(first)
            raise NetworkError(
                f"GraphQL error: {message}",
                code=ErrorCode.API_REQUEST_FAILED,
                context=context,
                status_code=response.status,
            )

        return data or {}

    def _extract_retry_after(self, response: TransportResponse) -> float | None:
        raw = response.headers.get(HTTPHeaders.RETRY_AFTER) or response.headers.get(
            HTTPHeaders.RETRY_AFTER.lower(),
        )
        if not raw:
            return None
        try:
            return float(raw)
        except ValueError:
            logger.debug("Ignoring non-numeric Retry-After header: %s", raw)
            return None

    @staticmethod
    def _validate(model: type[ModelT], raw: Any, operation: str) -> ModelT:
        try:
            return model.model_validate(raw)
        except ValidationError as e:
            raise NetworkError(
                f"Unexpected {model.__name__} payload: {e.errors()[0]['msg']}",
                code=ErrorCode.API_INVALID_RESPONSE,
                context=ErrorContext(operation=operation),
                original_error=e,
            ) from e

    def get_stats(self) -> dict[str, Any]:
        """Current limiter and cache statistics."""
        return {
            "rate_limiter": {
                "requests_in_window": self.rate_limiter.get_requests_in_window(),
                "available_slots": self.rate_limiter.get_available_slots(),
                "max_requests": self.rate_limiter.max_requests,
                "time_window": self.rate_limiter.time_window,
            },
            "cache": {"entries": len(self.cache)},
        }
