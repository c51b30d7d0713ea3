"""Shared test fixtures for the price discovery tests."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from price_discovery.cache.market_data import MarketDataCache
from price_discovery.cache.redis import RedisConnectionManager
from price_discovery.core.config import Settings
from price_discovery.schemas.pricing import ProductQuery
from tests.factories.settings import SettingsFactory
from tests.fixtures.market_data import FakeRedis, make_query


@pytest.fixture
def settings() -> Settings:
    """Settings pinned to the mock source and mock AI."""
    return SettingsFactory.build()


@pytest.fixture
def query() -> ProductQuery:
    """Tomato, vegetables, Delhi, 1 kg."""
    return make_query()


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 1, 15, 10, 0, tzinfo=UTC)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
async def redis_manager(fake_redis: FakeRedis) -> RedisConnectionManager:
    """Connected manager handing out the in-memory Redis."""
    manager = RedisConnectionManager(
        "redis://localhost:6379/0",
        max_reconnect_attempts=2,
        reconnect_base_delay=0.001,
        client_factory=lambda: fake_redis,
    )
    await manager.connect()
    return manager


@pytest.fixture
def market_cache(redis_manager: RedisConnectionManager) -> MarketDataCache:
    return MarketDataCache(redis_manager, price_ttl=1800, metadata_ttl=86400, health_ttl=300)
