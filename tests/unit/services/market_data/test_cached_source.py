"""Unit tests for CachedMarketDataSource.

Tests cover every terminal state of the read path:
- CACHE_FRESH: served from Redis without touching the source
- FETCH_SUCCESS: fetched and written through
- FALLBACK_STALE_CACHE: source failed, stale cache served
- FALLBACK_EMPTY: nothing anywhere, default returned
"""

from __future__ import annotations

import asyncio
from datetime import date, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from price_discovery.cache.market_data import MarketDataCache
from price_discovery.cache.redis import RedisConnectionManager
from price_discovery.core.exceptions import SourceUnavailableError
from price_discovery.services.market_data import (
    CachedMarketDataSource,
    FetchOutcome,
)
from price_discovery.sources.constants import DEFAULT_LOCATIONS, DEFAULT_PRODUCTS
from price_discovery.sources.protocol import MarketDataSource
from tests.factories.settings import SettingsFactory
from tests.fixtures.market_data import FakeRedis, make_history, make_record


pytestmark = pytest.mark.unit

DAY = date(2024, 1, 15)


@pytest.fixture
def source() -> MagicMock:
    """Strict inner source; every read fails unless a test says otherwise."""
    mock = MagicMock()
    mock.initialize = AsyncMock()
    mock.shutdown = AsyncMock()
    mock.fetch_current_prices = AsyncMock(side_effect=SourceUnavailableError("down"))
    mock.fetch_historical = AsyncMock(side_effect=SourceUnavailableError("down"))
    mock.list_locations = AsyncMock(side_effect=SourceUnavailableError("down"))
    mock.list_products = AsyncMock(side_effect=SourceUnavailableError("down"))
    mock.check_health = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def cached_source(source, market_cache) -> CachedMarketDataSource:
    return CachedMarketDataSource(source, market_cache)


class TestConstruction:
    def test_implements_protocol(self, cached_source):
        assert isinstance(cached_source, MarketDataSource)

    def test_from_settings(self, source, market_cache):
        settings = SettingsFactory.build()

        cached = CachedMarketDataSource.from_settings(source, market_cache, settings)

        assert str(cached.market_tz) == "Asia/Kolkata"
        assert cached.source is source

    async def test_lifecycle_delegates(self, cached_source, source):
        await cached_source.initialize()
        await cached_source.shutdown()

        source.initialize.assert_awaited_once()
        source.shutdown.assert_awaited_once()


class TestCurrentPrices:
    """Tests for read_current_prices."""

    async def test_fresh_cache_hit_skips_source(self, cached_source, market_cache, source):
        records = [make_record("Tomato", 25.0)]
        await market_cache.set_prices("delhi", DAY, records)

        result = await cached_source.read_current_prices("delhi", DAY)

        assert result.outcome == FetchOutcome.CACHE_FRESH
        assert result.value == records
        source.fetch_current_prices.assert_not_awaited()

    async def test_only_fresh_cached_records_are_served(self, cached_source, market_cache):
        fresh = make_record("Tomato", 25.0)
        stale = make_record("Onion", 30.0, age=timedelta(hours=13))
        await market_cache.set_prices("delhi", DAY, [fresh, stale])

        result = await cached_source.read_current_prices("delhi", DAY)

        assert result.outcome == FetchOutcome.CACHE_FRESH
        assert result.value == [fresh]

    async def test_miss_fetches_and_writes_through(self, cached_source, market_cache, source):
        records = [make_record("Tomato", 25.0)]
        source.fetch_current_prices = AsyncMock(return_value=records)

        result = await cached_source.read_current_prices("delhi", DAY)

        assert result.outcome == FetchOutcome.FETCH_SUCCESS
        assert result.value == records
        assert await market_cache.get_prices("delhi", DAY) == records

    async def test_stale_cache_is_refetched(self, cached_source, market_cache, source):
        await market_cache.set_prices("delhi", DAY, [make_record(age=timedelta(hours=13))])
        fresh = [make_record("Tomato", 27.0)]
        source.fetch_current_prices = AsyncMock(return_value=fresh)

        result = await cached_source.read_current_prices("delhi", DAY)

        assert result.outcome == FetchOutcome.FETCH_SUCCESS
        assert result.value == fresh

    async def test_failure_falls_back_to_stale_cache(self, cached_source, market_cache):
        stale = [make_record(age=timedelta(hours=13))]
        await market_cache.set_prices("delhi", DAY, stale)

        result = await cached_source.read_current_prices("delhi", DAY)

        assert result.outcome == FetchOutcome.FALLBACK_STALE_CACHE
        assert result.value == stale

    async def test_failure_without_cache_is_empty(self, cached_source):
        result = await cached_source.read_current_prices("delhi", DAY)

        assert result.outcome == FetchOutcome.FALLBACK_EMPTY
        assert result.value == []

    async def test_empty_answer_is_not_cached(self, cached_source, market_cache, source):
        source.fetch_current_prices = AsyncMock(return_value=[])

        result = await cached_source.read_current_prices("delhi", DAY)

        assert result.outcome == FetchOutcome.FALLBACK_EMPTY
        assert await market_cache.get_prices("delhi", DAY) is None

    async def test_protocol_method_returns_value(self, cached_source, source):
        records = [make_record()]
        source.fetch_current_prices = AsyncMock(return_value=records)

        assert await cached_source.fetch_current_prices("delhi", DAY) == records


class TestHistorical:
    async def test_hit(self, cached_source, market_cache, source):
        points = make_history([20, 21, 22])
        await market_cache.set_historical("tomato", "delhi", 30, points)

        result = await cached_source.read_historical("tomato", "delhi", 30)

        assert result.outcome == FetchOutcome.CACHE_FRESH
        assert result.value == points
        source.fetch_historical.assert_not_awaited()

    async def test_miss_fetches(self, cached_source, market_cache, source):
        points = make_history([20, 21])
        source.fetch_historical = AsyncMock(return_value=points)

        assert await cached_source.fetch_historical("tomato", "delhi", 30) == points
        assert await market_cache.get_historical("tomato", "delhi", 30) == points

    async def test_failure_is_empty(self, cached_source):
        result = await cached_source.read_historical("tomato", "delhi", 30)
        assert result.outcome == FetchOutcome.FALLBACK_EMPTY
        assert result.value == []


class TestCatalogs:
    async def test_locations_default_when_everything_fails(self, cached_source):
        result = await cached_source.read_locations()

        assert result.outcome == FetchOutcome.FALLBACK_EMPTY
        assert result.value == list(DEFAULT_LOCATIONS)

    async def test_products_from_cache(self, cached_source, market_cache, source):
        await market_cache.set_products(["Onion"])

        assert await cached_source.list_products() == ["Onion"]
        source.list_products.assert_not_awaited()

    async def test_products_fetched_and_cached(self, cached_source, market_cache, source):
        source.list_products = AsyncMock(return_value=["Rice"])

        assert await cached_source.list_products() == ["Rice"]
        assert await market_cache.get_products() == ["Rice"]

    async def test_products_default(self, cached_source):
        assert await cached_source.list_products() == list(DEFAULT_PRODUCTS)


class TestHealth:
    async def test_health_result_is_cached(self, cached_source, source):
        assert await cached_source.check_health() is True
        assert await cached_source.check_health() is True

        source.check_health.assert_awaited_once()

    async def test_cached_unhealthy_flag_is_served(self, cached_source, market_cache, source):
        await market_cache.set_health(False)

        result = await cached_source.read_health()

        assert result.outcome == FetchOutcome.CACHE_FRESH
        assert result.value is False
        source.check_health.assert_not_awaited()

    async def test_health_failure_is_unhealthy(self, cached_source, source):
        source.check_health = AsyncMock(side_effect=SourceUnavailableError("down"))
        assert await cached_source.check_health() is False


class TestSingleFlight:
    async def test_concurrent_reads_share_one_fetch(self, cached_source, source):
        release = asyncio.Event()
        records = [make_record()]

        async def slow_fetch(location, day):
            await release.wait()
            return records

        source.fetch_current_prices = AsyncMock(side_effect=slow_fetch)

        tasks = [
            asyncio.create_task(cached_source.fetch_current_prices("delhi", DAY))
            for _ in range(3)
        ]
        await asyncio.sleep(0.01)
        release.set()

        assert await asyncio.gather(*tasks) == [records, records, records]
        assert source.fetch_current_prices.await_count == 1

    async def test_disabled(self, source, market_cache):
        cached = CachedMarketDataSource(source, market_cache, single_flight=False)
        source.fetch_current_prices = AsyncMock(return_value=[])

        await asyncio.gather(
            cached.fetch_current_prices("delhi", DAY),
            cached.fetch_current_prices("delhi", DAY),
        )

        assert source.fetch_current_prices.await_count == 2


class TestWithoutRedis:
    async def test_reads_go_to_source(self, source):
        manager = RedisConnectionManager("redis://localhost", client_factory=FakeRedis)
        cached = CachedMarketDataSource(source, MarketDataCache(manager))
        records = [make_record()]
        source.fetch_current_prices = AsyncMock(return_value=records)

        first = await cached.read_current_prices("delhi", DAY)
        second = await cached.read_current_prices("delhi", DAY)

        assert first.outcome == second.outcome == FetchOutcome.FETCH_SUCCESS
        assert source.fetch_current_prices.await_count == 2


class TestMaintenance:
    async def test_stats_and_clear(self, cached_source, market_cache):
        await market_cache.set_prices("delhi", DAY, [make_record()])
        await market_cache.set_locations(["Delhi"])

        stats = await cached_source.get_cache_stats()
        assert stats.key_count == 2

        assert await cached_source.clear_cache() == 2

    async def test_invalidate_prices(self, cached_source, market_cache):
        await market_cache.set_prices("delhi", DAY, [make_record()])

        assert await cached_source.invalidate_prices("delhi") == 1
        assert await market_cache.get_prices("delhi", DAY) is None
