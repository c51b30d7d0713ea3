"""Cache-backed market data source with a tiered fallback policy.

Every read walks the same state machine:

    CacheLookup ──fresh hit──────────────────────────────▶ CACHE_FRESH
        │
        └─stale/miss─▶ SourceFetch ──data──▶ write-through ─▶ FETCH_SUCCESS
                           │
                           └─failure or no data─▶ StaleFallback
                                   ├─cached value─▶ FALLBACK_STALE_CACHE
                                   └─nothing──────▶ FALLBACK_EMPTY

Current prices are checked against a time-of-day freshness rule. Historical
series, catalogs and the health flag are fresh until their TTL expires.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo
from enum import StrEnum
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

from price_discovery.core.exceptions import SourceUnavailableError
from price_discovery.observability.logging import get_logger
from price_discovery.services.market_data.freshness import is_cached_price_fresh
from price_discovery.services.market_data.singleflight import SingleFlight
from price_discovery.sources.constants import DEFAULT_LOCATIONS, DEFAULT_PRODUCTS


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import date

    from price_discovery.cache.market_data import CacheStats, MarketDataCache
    from price_discovery.core.config import Settings
    from price_discovery.schemas.pricing import HistoricalPoint, RawPriceRecord
    from price_discovery.sources.protocol import MarketDataSource


logger = get_logger(__name__)


class FetchOutcome(StrEnum):
    """Terminal state of one orchestrated read."""

    CACHE_FRESH = "cache_fresh"
    FETCH_SUCCESS = "fetch_success"
    FALLBACK_STALE_CACHE = "fallback_stale_cache"
    FALLBACK_EMPTY = "fallback_empty"


@dataclass(frozen=True, slots=True)
class FetchResult[T]:
    """Value produced by a read together with the path that produced it."""

    value: T
    outcome: FetchOutcome


class CachedMarketDataSource:
    """Wraps any ``MarketDataSource`` with the Redis cache and fallback chain.

    Implements ``MarketDataSource`` itself, so the engine does not know
    whether it talks to a raw source or to this orchestrator. The inner
    source should be strict (raise ``SourceUnavailableError``) so failures
    can be told apart from empty answers; a lenient source still works, with
    empty answers treated the same way as failures.
    """

    def __init__(
        self,
        source: MarketDataSource,
        cache: MarketDataCache,
        *,
        market_tz: tzinfo = UTC,
        single_flight: bool = True,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            source: Inner market data source.
            cache: Typed market data cache.
            market_tz: Timezone used to decide market hours.
            single_flight: Coalesce concurrent identical reads.
        """
        self._source = source
        self._cache = cache
        self.market_tz = market_tz
        self._flights = SingleFlight() if single_flight else None

    @classmethod
    def from_settings(
        cls,
        source: MarketDataSource,
        cache: MarketDataCache,
        settings: Settings,
    ) -> CachedMarketDataSource:
        """Build the orchestrator from the ``market_data`` settings section."""
        return cls(
            source,
            cache,
            market_tz=ZoneInfo(settings.market_data.market_timezone),
            single_flight=settings.market_data.single_flight,
        )

    @property
    def source(self) -> MarketDataSource:
        """The wrapped source."""
        return self._source

    @property
    def cache(self) -> MarketDataCache:
        return self._cache

    async def initialize(self) -> None:
        """Initialize the wrapped source."""
        await self._source.initialize()
        logger.info(
            "CachedMarketDataSource initialized",
            cache_connected=self._cache.is_connected,
        )

    async def shutdown(self) -> None:
        """Shut down the wrapped source."""
        await self._source.shutdown()
        logger.info("CachedMarketDataSource shutdown")

    # =========================================================================
    # Fallback chain
    # =========================================================================

    async def _coalesce[T](self, key: str, call: Callable[[], Awaitable[T]]) -> T:
        if self._flights is None:
            return await call()
        return await self._flights.do(key, call)

    async def _read[T](
        self,
        kind: str,
        *,
        lookup: Callable[[], Awaitable[T | None]],
        select_fresh: Callable[[T], T | None],
        fetch: Callable[[], Awaitable[T]],
        store: Callable[[T], Awaitable[None]],
        has_data: Callable[[T], bool],
        default: Callable[[], T],
        context: dict[str, Any],
    ) -> FetchResult[T]:
        cached = await lookup()
        if cached is not None:
            fresh = select_fresh(cached)
            if fresh is not None:
                logger.debug("Serving cached market data", kind=kind, **context)
                return FetchResult(fresh, FetchOutcome.CACHE_FRESH)
            logger.debug("Cached market data is stale", kind=kind, **context)

        error: str | None = None
        try:
            value = await fetch()
        except SourceUnavailableError as e:
            error = e.message
        else:
            if has_data(value):
                await store(value)
                return FetchResult(value, FetchOutcome.FETCH_SUCCESS)
            error = "source returned no data"

        stale = await lookup()
        if stale is not None and has_data(stale):
            logger.warning(
                "Returning stale cached data as fallback",
                kind=kind,
                error=error,
                **context,
            )
            return FetchResult(stale, FetchOutcome.FALLBACK_STALE_CACHE)

        logger.warning(
            "No market data available, returning default",
            kind=kind,
            error=error,
            **context,
        )
        return FetchResult(default(), FetchOutcome.FALLBACK_EMPTY)

    # =========================================================================
    # Reads with outcome
    # =========================================================================

    async def read_current_prices(
        self, location: str, day: date | datetime
    ) -> FetchResult[list[RawPriceRecord]]:
        """Current prices for a location and day, with the fallback outcome."""

        def select_fresh(records: list[RawPriceRecord]) -> list[RawPriceRecord] | None:
            now = datetime.now(UTC)
            fresh = [r for r in records if self.validate_data_freshness(r, now)]
            return fresh or None

        async def read() -> FetchResult[list[RawPriceRecord]]:
            return await self._read(
                "current_prices",
                lookup=lambda: self._cache.get_prices(location, day),
                select_fresh=select_fresh,
                fetch=lambda: self._source.fetch_current_prices(location, day),
                store=lambda records: self._cache.set_prices(location, day, records),
                has_data=bool,
                default=list,
                context={"location": location, "day": f"{day:%Y-%m-%d}"},
            )

        return await self._coalesce(f"prices:{location.lower()}:{day:%Y-%m-%d}", read)

    async def read_historical(
        self, product: str, location: str, days: int
    ) -> FetchResult[list[HistoricalPoint]]:
        """Historical series, with the fallback outcome."""

        async def read() -> FetchResult[list[HistoricalPoint]]:
            return await self._read(
                "historical",
                lookup=lambda: self._cache.get_historical(product, location, days),
                select_fresh=lambda points: points or None,
                fetch=lambda: self._source.fetch_historical(product, location, days),
                store=lambda points: self._cache.set_historical(
                    product, location, days, points
                ),
                has_data=bool,
                default=list,
                context={"product": product, "location": location, "days": days},
            )

        key = f"historical:{product.lower()}:{location.lower()}:{days}"
        return await self._coalesce(key, read)

    async def read_locations(self) -> FetchResult[list[str]]:
        """Location catalog, with the fallback outcome."""
        return await self._coalesce(
            "locations",
            lambda: self._read(
                "locations",
                lookup=self._cache.get_locations,
                select_fresh=lambda names: names or None,
                fetch=self._source.list_locations,
                store=self._cache.set_locations,
                has_data=bool,
                default=lambda: list(DEFAULT_LOCATIONS),
                context={},
            ),
        )

    async def read_products(self) -> FetchResult[list[str]]:
        """Product catalog, with the fallback outcome."""
        return await self._coalesce(
            "products",
            lambda: self._read(
                "products",
                lookup=self._cache.get_products,
                select_fresh=lambda names: names or None,
                fetch=self._source.list_products,
                store=self._cache.set_products,
                has_data=bool,
                default=lambda: list(DEFAULT_PRODUCTS),
                context={},
            ),
        )

    async def read_health(self) -> FetchResult[bool]:
        """Source health, cached briefly, with the fallback outcome."""

        async def check() -> bool:
            try:
                return await self._source.check_health()
            except SourceUnavailableError as e:
                logger.warning("Health check failed", error=e.message)
                return False

        return await self._coalesce(
            "health",
            lambda: self._read(
                "health",
                lookup=self._cache.get_health,
                select_fresh=lambda healthy: healthy,
                fetch=check,
                store=self._cache.set_health,
                has_data=lambda _: True,
                default=lambda: False,
                context={},
            ),
        )

    # =========================================================================
    # MarketDataSource interface
    # =========================================================================

    async def fetch_current_prices(
        self, location: str, day: date | datetime
    ) -> list[RawPriceRecord]:
        result = await self.read_current_prices(location, day)
        logger.info(
            "Resolved current prices",
            location=location,
            outcome=result.outcome,
            count=len(result.value),
        )
        return result.value

    async def fetch_historical(
        self, product: str, location: str, days: int
    ) -> list[HistoricalPoint]:
        result = await self.read_historical(product, location, days)
        logger.info(
            "Resolved historical prices",
            product=product,
            location=location,
            outcome=result.outcome,
            count=len(result.value),
        )
        return result.value

    async def check_health(self) -> bool:
        return (await self.read_health()).value

    async def list_locations(self) -> list[str]:
        return (await self.read_locations()).value

    async def list_products(self) -> list[str]:
        return (await self.read_products()).value

    def validate_data_freshness(
        self, record: RawPriceRecord, now: datetime | None = None
    ) -> bool:
        """Baseline freshness tightened by the market-hours age limit."""
        return is_cached_price_fresh(record, now, self.market_tz)

    # =========================================================================
    # Cache maintenance
    # =========================================================================

    async def get_cache_stats(self) -> CacheStats:
        """Connectivity and size of the backing cache."""
        return await self._cache.stats()

    async def clear_cache(self) -> int:
        """Remove every cached market data entry."""
        return await self._cache.clear_all()

    async def invalidate_prices(self, location: str | None = None) -> int:
        """Drop cached current prices for a location, or for all locations."""
        return await self._cache.invalidate_prices(location)
