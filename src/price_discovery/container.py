"""Explicit wiring of the price discovery subsystem.

Every collaborator is constructed once, from settings, and handed to the
objects that need it. The container owns their lifecycle:

    async with PriceDiscoveryContainer.from_settings() as container:
        price = await container.engine.get_current_price(query)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Self

from price_discovery.ai import create_ai_estimator
from price_discovery.cache.market_data import MarketDataCache
from price_discovery.cache.redis import RedisConnectionManager
from price_discovery.core.config import MarketDataProvider, Settings, get_settings
from price_discovery.observability.logging import get_logger, setup_logging
from price_discovery.services.market_data import CachedMarketDataSource
from price_discovery.services.price_discovery import PriceDiscoveryService
from price_discovery.sources import create_market_data_source


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from types import TracebackType

    from price_discovery.ai.protocol import AIEstimator
    from price_discovery.sources.protocol import MarketDataSource


logger = get_logger(__name__)


class PriceDiscoveryContainer:
    """Holds the single instance of every subsystem component.

    Attributes:
        settings: Settings the components were built from.
        redis: Redis connection manager, None unless the cached provider is used.
        cache: Market data cache, None unless the cached provider is used.
        source: Market data source handed to the engine.
        ai: AI estimator, None when AI estimation is off.
        engine: The price discovery engine.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        source: MarketDataSource,
        engine: PriceDiscoveryService,
        ai: AIEstimator | None = None,
        redis: RedisConnectionManager | None = None,
        cache: MarketDataCache | None = None,
    ) -> None:
        self.settings = settings
        self.redis = redis
        self.cache = cache
        self.source = source
        self.ai = ai
        self.engine = engine
        self._started = False

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> PriceDiscoveryContainer:
        """Build every component from ``settings`` (default: ``get_settings()``)."""
        settings = settings or get_settings()

        redis: RedisConnectionManager | None = None
        cache: MarketDataCache | None = None
        source = create_market_data_source(settings)
        if settings.market_data.provider == MarketDataProvider.CACHED:
            redis = RedisConnectionManager.from_settings(settings)
            cache = MarketDataCache.from_settings(redis, settings.cache)
            source = CachedMarketDataSource.from_settings(source, cache, settings)

        ai = create_ai_estimator(settings)
        engine = PriceDiscoveryService.from_settings(source, ai, settings)
        return cls(settings, source=source, engine=engine, ai=ai, redis=redis, cache=cache)

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Configure logging, connect Redis and initialize the engine.

        A Redis connection failure is not fatal: the cache runs degraded and
        every read goes to the source.
        """
        if self._started:
            return
        settings = self.settings
        setup_logging(
            log_level=settings.logging.level,
            log_format=settings.logging.format,
            is_development=settings.is_development,
        )
        logger.info(
            "Starting price discovery",
            app_name=settings.app.name,
            environment=settings.APP_ENV,
            provider=settings.market_data.provider,
        )

        if self.redis is not None and not await self.redis.connect():
            logger.warning("Redis unavailable - continuing with degraded cache")

        await self.engine.initialize()
        self._started = True
        logger.info("Price discovery startup complete")

    async def stop(self) -> None:
        """Shut the engine down and close the Redis connection."""
        if not self._started:
            return
        logger.info("Shutting down price discovery")
        await self.engine.shutdown()
        if self.redis is not None:
            await self.redis.disconnect()
        self._started = False
        logger.info("Price discovery shutdown complete")

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()


@asynccontextmanager
async def lifespan(settings: Settings | None = None) -> AsyncGenerator[PriceDiscoveryContainer]:
    """Build, start and finally stop a container.

    Yields:
        The started container.
    """
    container = PriceDiscoveryContainer.from_settings(settings)
    await container.start()
    try:
        yield container
    finally:
        await container.stop()
