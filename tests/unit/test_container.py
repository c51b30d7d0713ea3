"""Unit tests for subsystem wiring and lifecycle."""

from __future__ import annotations

import pytest

from price_discovery.ai.mock import MockAIEstimator
from price_discovery.cache.market_data import MarketDataCache
from price_discovery.cache.redis import RedisConnectionManager
from price_discovery.container import PriceDiscoveryContainer, lifespan
from price_discovery.services.market_data import CachedMarketDataSource
from price_discovery.services.price_discovery import PriceDiscoveryService
from price_discovery.sources.government import GovernmentMarketDataSource
from price_discovery.sources.mock import MockMarketDataSource
from tests.factories.settings import SettingsFactory
from tests.fixtures.market_data import FakeRedis, make_query


pytestmark = pytest.mark.unit


class TestFromSettings:
    """Tests for component construction."""

    def test_mock_wiring(self, settings):
        container = PriceDiscoveryContainer.from_settings(settings)

        assert isinstance(container.source, MockMarketDataSource)
        assert isinstance(container.ai, MockAIEstimator)
        assert container.engine.source is container.source
        assert container.engine.ai is container.ai
        assert container.redis is None
        assert container.cache is None

    def test_cached_wiring(self):
        container = PriceDiscoveryContainer.from_settings(SettingsFactory.cached())

        assert isinstance(container.source, CachedMarketDataSource)
        assert isinstance(container.source.source, GovernmentMarketDataSource)
        assert container.source.cache is container.cache
        assert isinstance(container.redis, RedisConnectionManager)
        assert container.redis.max_reconnect_attempts == 2
        assert container.engine.source is container.source


class TestLifecycle:
    async def test_start_and_stop(self, settings):
        container = PriceDiscoveryContainer.from_settings(settings)

        await container.start()
        assert container.started
        price = await container.engine.get_current_price(make_query())
        await container.stop()

        assert price.current == 32.0
        assert not container.started
        assert len(container.engine.price_cache) == 0

    async def test_start_is_idempotent(self, settings):
        container = PriceDiscoveryContainer.from_settings(settings)

        await container.start()
        await container.start()

        assert container.started
        await container.stop()
        await container.stop()

    async def test_redis_failure_is_not_fatal(self, settings):
        """Should start with a degraded cache when Redis is down."""
        fake_redis = FakeRedis()
        fake_redis.fail = True
        redis = RedisConnectionManager(
            "redis://localhost:6379/0",
            max_reconnect_attempts=1,
            reconnect_base_delay=0.001,
            client_factory=lambda: fake_redis,
        )
        cache = MarketDataCache(redis)
        source = CachedMarketDataSource(MockMarketDataSource(prices={"tomato": 25}), cache)
        container = PriceDiscoveryContainer(
            settings,
            source=source,
            engine=PriceDiscoveryService(source),
            redis=redis,
            cache=cache,
        )

        async with container:
            assert container.started
            assert not redis.connected
            price = await container.engine.get_current_price(make_query())

        assert price.current == 25
        assert not container.started

    async def test_lifespan(self, settings):
        async with lifespan(settings) as container:
            assert container.started
            assert await container.engine.check_health() == {
                "market_data": True,
                "ai": True,
            }

        assert not container.started
