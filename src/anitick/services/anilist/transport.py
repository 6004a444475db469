"""aiohttp transport for the AniList GraphQL endpoint."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from anitick.shared.constants import (
    AniListConfig,
    Application,
    ContentTypes,
    HTTPHeaders,
)
from anitick.shared.errors import ErrorCode, ErrorContext, NetworkError
from anitick.shared.protocols import TransportResponse

logger = logging.getLogger(__name__)


class AiohttpTransport:
    """POSTs GraphQL payloads and returns the raw status, body and headers.

    HTTP error statuses are returned to the caller; only connection
    failures and timeouts are raised, as NetworkError.

    Args:
        url: GraphQL endpoint
        timeout: Total request timeout in seconds
        session: Optional externally managed ClientSession
    """

    def __init__(
        self,
        url: str = AniListConfig.API_URL,
        timeout: float = AniListConfig.REQUEST_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={
                    HTTPHeaders.CONTENT_TYPE: ContentTypes.JSON,
                    HTTPHeaders.ACCEPT: ContentTypes.JSON,
                    HTTPHeaders.USER_AGENT: Application.USER_AGENT,
                },
            )
            self._owns_session = True
        return self._session

    async def __call__(self, payload: dict[str, Any]) -> TransportResponse:
        session = await self._get_session()
        try:
            async with session.post(self.url, json=payload) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None
                return TransportResponse(
                    status=response.status,
                    body=body,
                    headers=dict(response.headers),
                )
        except asyncio.TimeoutError as e:
            raise NetworkError(
                f"Request to {self.url} timed out after {self.timeout}s",
                code=ErrorCode.API_TIMEOUT,
                context=ErrorContext(operation="transport_post", additional_data={"url": self.url}),
                original_error=e,
            ) from e
        except aiohttp.ClientError as e:
            raise NetworkError(
                f"Request to {self.url} failed: {e}",
                context=ErrorContext(operation="transport_post", additional_data={"url": self.url}),
                original_error=e,
            ) from e

    async def close(self) -> None:
        """Close the session if this transport created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> AiohttpTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
