"""Tests for AniListClient: batching, caching, 429 recovery and error mapping."""

from __future__ import annotations

import pytest

from anitick.config.models import AniListSettings, CacheSettings
from anitick.services.anilist import AniListClient
from anitick.services.rate_limiter import SlidingWindowRateLimiter
from anitick.services.response_cache import ResponseCache
from anitick.shared.errors import ErrorCode, NetworkError, NotFoundError
from anitick.shared.models import AiringStatus
from anitick.shared.protocols import TransportResponse
from conftest import FakeClock, FakeSleep, FakeTransport, bulk_responder, make_media, ok


@pytest.fixture
def make_client(clock: FakeClock, fake_sleep: FakeSleep):
    def factory(transport: FakeTransport, **settings_overrides) -> AniListClient:
        settings = AniListSettings(**settings_overrides)
        limiter = SlidingWindowRateLimiter(
            max_requests=settings.max_requests,
            time_window=settings.window_seconds,
            clock=clock,
            sleep=fake_sleep,
        )
        return AniListClient(
            transport,
            rate_limiter=limiter,
            cache=ResponseCache(clock=clock),
            settings=settings,
            cache_settings=CacheSettings(),
            sleep=fake_sleep,
        )

    return factory


def too_many(retry_after: str | None = None) -> TransportResponse:
    headers = {"Retry-After": retry_after} if retry_after else {}
    return TransportResponse(status=429, body=None, headers=headers)


class TestSearch:
    """Test cases for AniListClient.search."""

    @pytest.mark.asyncio
    async def test_search_returns_summaries(self, make_client):
        """Test that search maps Page.media into AnimeSummary records."""
        transport = FakeTransport([ok({"Page": {"media": [make_media(1), make_media(2)]}})])
        client = make_client(transport)

        results = await client.search("frieren")

        assert [r.id for r in results] == [1, 2]
        assert transport.payloads[0]["variables"] == {"search": "frieren", "perPage": 10}

    @pytest.mark.asyncio
    async def test_search_is_not_cached(self, make_client):
        """Test that repeating a search always hits the transport."""
        transport = FakeTransport(default=ok({"Page": {"media": []}}))
        client = make_client(transport)

        await client.search("x")
        await client.search("x")

        assert transport.call_count == 2
        assert len(client.cache) == 0

    @pytest.mark.asyncio
    async def test_blank_query_skips_the_request(self, make_client):
        """Test that an empty query returns no results without a request."""
        transport = FakeTransport()
        client = make_client(transport)

        assert await client.search("   ") == []
        assert transport.call_count == 0


class TestGetDetails:
    """Test cases for AniListClient.get_details."""

    @pytest.mark.asyncio
    async def test_second_call_within_ttl_uses_cache(self, make_client):
        """Test that two lookups within the TTL issue exactly one request."""
        transport = FakeTransport([ok({"Media": make_media(7, title="Frieren")})])
        client = make_client(transport)

        first = await client.get_details(7)
        second = await client.get_details(7)

        assert transport.call_count == 1
        assert first == second
        assert second.display_title == "Frieren"

    @pytest.mark.asyncio
    async def test_expired_entry_is_refetched(self, make_client, clock):
        """Test that a lookup after the TTL goes upstream again."""
        transport = FakeTransport(default=ok({"Media": make_media(7)}))
        client = make_client(transport)

        await client.get_details(7)
        clock.advance(CacheSettings().details_ttl + 1)
        await client.get_details(7)

        assert transport.call_count == 2

    @pytest.mark.asyncio
    async def test_null_media_raises_not_found(self, make_client):
        """Test that a response without a record raises NotFoundError."""
        client = make_client(FakeTransport([ok({"Media": None})]))

        with pytest.raises(NotFoundError) as exc_info:
            await client.get_details(99)

        assert exc_info.value.media_id == 99
        assert len(client.cache) == 0

    @pytest.mark.asyncio
    async def test_http_404_raises_not_found(self, make_client):
        """Test that HTTP 404 maps to NotFoundError."""
        transport = FakeTransport(
            [TransportResponse(status=404, body={"data": {"Media": None}, "errors": [{"message": "Not Found."}]})],
        )
        client = make_client(transport)

        with pytest.raises(NotFoundError):
            await client.get_details(99)

    @pytest.mark.asyncio
    async def test_invalid_payload_is_not_cached(self, make_client):
        """Test that a record failing validation raises NetworkError and is not stored."""
        client = make_client(FakeTransport([ok({"Media": {"id": "not-a-number"}})]))

        with pytest.raises(NetworkError) as exc_info:
            await client.get_details(5)

        assert exc_info.value.code == ErrorCode.API_INVALID_RESPONSE
        assert len(client.cache) == 0

    @pytest.mark.asyncio
    async def test_export_and_restore_cache(self, make_client):
        """Test that a restored cache serves details without a request."""
        source = make_client(FakeTransport([ok({"Media": make_media(3)})]))
        await source.get_details(3)

        transport = FakeTransport()
        target = make_client(transport)
        assert target.restore_cache(source.export_cache()) == 1

        details = await target.get_details(3)

        assert details.id == 3
        assert transport.call_count == 0


class TestBulkRefresh:
    """Test cases for AniListClient.bulk_refresh."""

    @pytest.mark.asyncio
    async def test_120_ids_use_three_batches(self, make_client, mocker):
        """Test that 120 ids are split into 3 rate-limited requests of at most 50."""
        transport = FakeTransport(default=bulk_responder())
        client = make_client(transport)
        acquire = mocker.spy(client.rate_limiter, "acquire")

        results = await client.bulk_refresh(range(1, 121))

        batch_sizes = [len(p["variables"]["ids"]) for p in transport.payloads]
        assert batch_sizes == [50, 50, 20]
        assert [p["variables"]["perPage"] for p in transport.payloads] == [50, 50, 20]
        assert acquire.call_count == 3
        assert sorted(r.id for r in results) == list(range(1, 121))

    @pytest.mark.asyncio
    async def test_missing_ids_are_omitted(self, make_client):
        """Test that ids without an upstream record are simply absent."""
        client = make_client(FakeTransport(default=bulk_responder(known_ids={1, 3})))

        results = await client.bulk_refresh([1, 2, 3])

        assert {r.id for r in results} == {1, 3}

    @pytest.mark.asyncio
    async def test_duplicates_requested_once(self, make_client):
        """Test that repeated ids are deduplicated before batching."""
        transport = FakeTransport(default=bulk_responder())
        client = make_client(transport)

        await client.bulk_refresh([5, 5, 6, 5])

        assert transport.payloads[0]["variables"]["ids"] == [5, 6]

    @pytest.mark.asyncio
    async def test_empty_ids(self, make_client):
        """Test that an empty id list makes no request."""
        transport = FakeTransport()
        client = make_client(transport)

        assert await client.bulk_refresh([]) == []
        assert transport.call_count == 0

    @pytest.mark.asyncio
    async def test_partial_records_carry_airing_fields(self, make_client):
        """Test that status, episodes and next airing are parsed."""
        media = make_media(8, status="NOT_YET_RELEASED", episodes=None, next_episode=1, airing_at=2_000_000_000)
        client = make_client(FakeTransport([ok({"Page": {"media": [media]}})]))

        [update] = await client.bulk_refresh([8])

        assert update.status is AiringStatus.NOT_YET_RELEASED
        assert update.episodes is None
        assert update.next_airing_episode.episode == 1
        assert update.next_airing_episode.airing_at == 2_000_000_000


class TestRateLimitRecovery:
    """Test cases for HTTP 429 handling."""

    @pytest.mark.asyncio
    async def test_429_waits_fixed_time_then_retries(self, make_client, fake_sleep):
        """Test that a 429 triggers one fixed wait and a re-issue of the same request."""
        transport = FakeTransport([too_many(), ok({"Media": make_media(1)})])
        client = make_client(transport)

        details = await client.get_details(1)

        assert details.id == 1
        assert transport.call_count == 2
        assert transport.payloads[0] == transport.payloads[1]
        assert fake_sleep.calls == [60]

    @pytest.mark.asyncio
    async def test_wait_does_not_grow(self, make_client, fake_sleep):
        """Test that consecutive 429s use the same fixed wait."""
        transport = FakeTransport([too_many(), too_many(), too_many(), ok({"Media": make_media(1)})])
        client = make_client(transport)

        await client.get_details(1)

        assert fake_sleep.calls == [60, 60, 60]

    @pytest.mark.asyncio
    async def test_larger_retry_after_is_honoured(self, make_client, fake_sleep):
        """Test that a numeric Retry-After longer than the fixed wait is used."""
        transport = FakeTransport([too_many("90"), ok({"Media": make_media(1)})])
        client = make_client(transport)

        await client.get_details(1)

        assert fake_sleep.calls == [90]

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_network_error(self, make_client, fake_sleep):
        """Test that the 429 loop is bounded and ends in NetworkError."""
        transport = FakeTransport(default=too_many())
        client = make_client(transport)

        with pytest.raises(NetworkError) as exc_info:
            await client.bulk_refresh([1, 2])

        assert exc_info.value.code == ErrorCode.API_RATE_LIMIT
        assert transport.call_count == 5
        assert len(fake_sleep.calls) == 4

    @pytest.mark.asyncio
    async def test_custom_retry_budget(self, make_client):
        """Test that max_rate_limit_retries caps the attempts."""
        transport = FakeTransport(default=too_many())
        client = make_client(transport, max_rate_limit_retries=2)

        with pytest.raises(NetworkError):
            await client.search("x")

        assert transport.call_count == 2


class TestErrorMapping:
    """Test cases for non-recoverable responses."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "code"),
        [(500, ErrorCode.API_SERVER_ERROR), (503, ErrorCode.API_SERVER_ERROR), (400, ErrorCode.API_REQUEST_FAILED)],
    )
    async def test_error_status_raises_network_error(self, make_client, status, code):
        """Test that other non-2xx statuses raise NetworkError without retry."""
        transport = FakeTransport([TransportResponse(status=status, body=None)])
        client = make_client(transport)

        with pytest.raises(NetworkError) as exc_info:
            await client.bulk_refresh([1])

        assert exc_info.value.code == code
        assert exc_info.value.status_code == status
        assert transport.call_count == 1

    @pytest.mark.asyncio
    async def test_404_on_bulk_is_a_network_error(self, make_client):
        """Test that 404 only means NotFound for single-item lookups."""
        client = make_client(FakeTransport([TransportResponse(status=404, body=None)]))

        with pytest.raises(NetworkError):
            await client.bulk_refresh([1])

    @pytest.mark.asyncio
    async def test_graphql_errors_raise_network_error(self, make_client):
        """Test that a 200 body with errors and no data raises NetworkError."""
        body = {"data": None, "errors": [{"message": "Invalid query"}]}
        client = make_client(FakeTransport([TransportResponse(status=200, body=body)]))

        with pytest.raises(NetworkError, match="Invalid query"):
            await client.search("x")

    @pytest.mark.asyncio
    async def test_non_object_body(self, make_client):
        """Test that an unparseable body raises NetworkError."""
        client = make_client(FakeTransport([TransportResponse(status=200, body=None)]))

        with pytest.raises(NetworkError) as exc_info:
            await client.search("x")

        assert exc_info.value.code == ErrorCode.API_INVALID_RESPONSE

    @pytest.mark.asyncio
    async def test_transport_failure_propagates(self, make_client):
        """Test that a transport NetworkError is not retried by the client."""
        transport = FakeTransport([NetworkError("connection reset")])
        client = make_client(transport)

        with pytest.raises(NetworkError, match="connection reset"):
            await client.search("x")

        assert transport.call_count == 1


def test_get_stats(make_client):
    """Test that stats expose limiter and cache state."""
    client = make_client(FakeTransport())

    stats = client.get_stats()

    assert stats["rate_limiter"]["max_requests"] == 90
    assert stats["rate_limiter"]["available_slots"] == 90
    assert stats["cache"]["entries"] == 0
