"""Typed Redis cache for market data.

Each data kind has its own key layout and TTL class:

| Kind                 | Key                                   | TTL              |
|----------------------|---------------------------------------|------------------|
| current prices       | ``prices:<location>:<date>``          | price_ttl        |
| historical series    | ``historical:<product>:<location>:<days>`` | 2 x price_ttl |
| location catalog     | ``locations:all``                     | metadata_ttl     |
| product catalog      | ``products:all``                      | metadata_ttl     |
| source health        | ``health:status``                     | health_ttl       |

Values are stored as a ``CacheEntry`` JSON envelope carrying ``cachedAt``.
Every operation degrades to a miss or no-op when Redis is unavailable.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final, TypeVar

from pydantic import ValidationError as PydanticValidationError
from redis.exceptions import RedisError

from price_discovery.core.exceptions import CacheUnavailableError
from price_discovery.observability.logging import get_logger
from price_discovery.schemas.cache import CacheEntry
from price_discovery.schemas.pricing import HistoricalPoint, RawPriceRecord


if TYPE_CHECKING:
    from datetime import date, datetime

    from redis.asyncio import Redis

    from price_discovery.cache.redis import RedisConnectionManager
    from price_discovery.core.config.settings import CacheSettings


logger = get_logger(__name__)

T = TypeVar("T")

PRICES_PREFIX: Final[str] = "prices"
HISTORICAL_PREFIX: Final[str] = "historical"
LOCATIONS_PREFIX: Final[str] = "locations"
PRODUCTS_PREFIX: Final[str] = "products"
HEALTH_PREFIX: Final[str] = "health"

ALL_PREFIXES: Final[tuple[str, ...]] = (
    PRICES_PREFIX,
    HISTORICAL_PREFIX,
    LOCATIONS_PREFIX,
    PRODUCTS_PREFIX,
    HEALTH_PREFIX,
)

_WHITESPACE = re.compile(r"\s+")

PricesEntry = CacheEntry[list[RawPriceRecord]]
HistoricalEntry = CacheEntry[list[HistoricalPoint]]
CatalogEntry = CacheEntry[list[str]]
HealthEntry = CacheEntry[bool]


def normalize_key_part(value: str) -> str:
    """Lower-case an identifier and collapse whitespace runs into hyphens."""
    return _WHITESPACE.sub("-", value.strip().lower())


def prices_key(location: str, day: date | datetime) -> str:
    """Key for current prices at a location on a calendar day."""
    return f"{PRICES_PREFIX}:{normalize_key_part(location)}:{day:%Y-%m-%d}"


def historical_key(product: str, location: str, days: int) -> str:
    """Key for a historical series window."""
    return (
        f"{HISTORICAL_PREFIX}:{normalize_key_part(product)}:"
        f"{normalize_key_part(location)}:{days}"
    )


LOCATIONS_KEY: Final[str] = f"{LOCATIONS_PREFIX}:all"
PRODUCTS_KEY: Final[str] = f"{PRODUCTS_PREFIX}:all"
HEALTH_KEY: Final[str] = f"{HEALTH_PREFIX}:status"


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Snapshot of cache connectivity and size."""

    connected: bool
    key_count: int = 0
    memory_usage: str | None = None


class MarketDataCache:
    """Typed get/set/delete over Redis for each market data kind.

    Reads return ``None`` on a miss, on a decode failure, and whenever Redis
    is unavailable. Writes and deletes silently become no-ops in the same
    situations. Connectivity errors are reported to the connection manager,
    which handles reconnection.
    """

    def __init__(
        self,
        connection: RedisConnectionManager,
        *,
        price_ttl: int = 1800,
        historical_ttl: int | None = None,
        metadata_ttl: int = 86400,
        health_ttl: int = 300,
        key_prefix: str = "",
    ) -> None:
        """Initialize the cache.

        Args:
            connection: Manager providing the Redis client.
            price_ttl: TTL for current prices in seconds.
            historical_ttl: TTL for historical series (default 2 x price_ttl).
            metadata_ttl: TTL for location/product catalogs.
            health_ttl: TTL for the source health flag.
            key_prefix: Optional namespace prepended as ``<prefix>:``.
        """
        self._connection = connection
        self.price_ttl = price_ttl
        self.historical_ttl = historical_ttl or price_ttl * 2
        self.metadata_ttl = metadata_ttl
        self.health_ttl = health_ttl
        self.key_prefix = key_prefix

    @classmethod
    def from_settings(
        cls,
        connection: RedisConnectionManager,
        settings: CacheSettings,
    ) -> MarketDataCache:
        """Build a cache using the TTLs from the ``cache`` settings section."""
        return cls(
            connection,
            price_ttl=settings.price_ttl,
            historical_ttl=settings.historical_ttl,
            metadata_ttl=settings.metadata_ttl,
            health_ttl=settings.health_ttl,
            key_prefix=settings.key_prefix,
        )

    @property
    def is_connected(self) -> bool:
        """Whether Redis is currently reachable."""
        return self._connection.connected

    # =========================================================================
    # Raw operations
    # =========================================================================

    def _full_key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}" if self.key_prefix else key

    def _client(self, operation: str, key: str) -> Redis[Any] | None:
        try:
            return self._connection.require_client()
        except CacheUnavailableError as e:
            logger.warning(
                "Skipping cache operation",
                operation=operation,
                key=key,
                error=e.message,
                error_code=e.error_code,
            )
            return None

    def _on_error(self, operation: str, key: str, error: Exception) -> None:
        logger.warning(
            "Cache operation failed",
            operation=operation,
            key=key,
            error=str(error),
        )
        self._connection.report_failure(error)

    async def _read(self, key: str, entry_type: type[CacheEntry[T]]) -> T | None:
        full_key = self._full_key(key)
        client = self._client("get", full_key)
        if client is None:
            return None

        try:
            raw = await client.get(full_key)
        except (RedisError, OSError) as e:
            self._on_error("get", full_key, e)
            return None

        if raw is None:
            logger.debug("Cache miss", key=full_key)
            return None

        try:
            entry = entry_type.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.warning("Discarding undecodable cache entry", key=full_key, error=str(e))
            return None

        logger.debug("Cache hit", key=full_key, cached_at=entry.cached_at.isoformat())
        return entry.payload

    async def _write(
        self,
        key: str,
        payload: Any,
        ttl: int,
        entry_type: type[CacheEntry[Any]],
    ) -> None:
        full_key = self._full_key(key)
        client = self._client("set", full_key)
        if client is None:
            return

        entry = entry_type(payload=payload)
        try:
            await client.setex(full_key, ttl, entry.model_dump_json(by_alias=True))
        except (RedisError, OSError) as e:
            self._on_error("set", full_key, e)
            return
        logger.debug("Cached value", key=full_key, ttl=ttl)

    async def _delete(self, *keys: str) -> int:
        if not keys:
            return 0
        full_keys = [self._full_key(k) for k in keys]
        client = self._client("delete", full_keys[0])
        if client is None:
            return 0
        try:
            return int(await client.delete(*full_keys))
        except (RedisError, OSError) as e:
            self._on_error("delete", full_keys[0], e)
            return 0

    async def _delete_pattern(self, pattern: str) -> int:
        full_pattern = self._full_key(pattern)
        client = self._client("delete_pattern", full_pattern)
        if client is None:
            return 0
        try:
            keys = [key async for key in client.scan_iter(match=full_pattern)]
            if not keys:
                return 0
            return int(await client.delete(*keys))
        except (RedisError, OSError) as e:
            self._on_error("delete_pattern", full_pattern, e)
            return 0

    # =========================================================================
    # Current prices
    # =========================================================================

    async def get_prices(
        self, location: str, day: date | datetime
    ) -> list[RawPriceRecord] | None:
        """Cached price records for a location and day."""
        return await self._read(prices_key(location, day), PricesEntry)

    async def set_prices(
        self, location: str, day: date | datetime, records: list[RawPriceRecord]
    ) -> None:
        """Cache price records for a location and day."""
        await self._write(
            prices_key(location, day), records, self.price_ttl, PricesEntry
        )

    async def delete_prices(self, location: str, day: date | datetime) -> None:
        """Remove cached price records for a location and day."""
        await self._delete(prices_key(location, day))

    async def invalidate_prices(self, location: str | None = None) -> int:
        """Remove cached prices for one location (all days) or for every location.

        Returns:
            Number of keys removed.
        """
        if location is None:
            pattern = f"{PRICES_PREFIX}:*"
        else:
            pattern = f"{PRICES_PREFIX}:{normalize_key_part(location)}:*"
        removed = await self._delete_pattern(pattern)
        logger.info("Invalidated cached prices", location=location, removed=removed)
        return removed

    # =========================================================================
    # Historical series
    # =========================================================================

    async def get_historical(
        self, product: str, location: str, days: int
    ) -> list[HistoricalPoint] | None:
        """Cached historical series for a product, location and window."""
        return await self._read(
            historical_key(product, location, days), HistoricalEntry
        )

    async def set_historical(
        self, product: str, location: str, days: int, points: list[HistoricalPoint]
    ) -> None:
        """Cache a historical series."""
        await self._write(
            historical_key(product, location, days),
            points,
            self.historical_ttl,
            HistoricalEntry,
        )

    async def delete_historical(self, product: str, location: str, days: int) -> None:
        """Remove a cached historical series."""
        await self._delete(historical_key(product, location, days))

    # =========================================================================
    # Catalogs
    # =========================================================================

    async def get_locations(self) -> list[str] | None:
        """Cached location catalog."""
        return await self._read(LOCATIONS_KEY, CatalogEntry)

    async def set_locations(self, locations: list[str]) -> None:
        """Cache the location catalog."""
        await self._write(LOCATIONS_KEY, locations, self.metadata_ttl, CatalogEntry)

    async def delete_locations(self) -> None:
        """Remove the cached location catalog."""
        await self._delete(LOCATIONS_KEY)

    async def get_products(self) -> list[str] | None:
        """Cached product catalog."""
        return await self._read(PRODUCTS_KEY, CatalogEntry)

    async def set_products(self, products: list[str]) -> None:
        """Cache the product catalog."""
        await self._write(PRODUCTS_KEY, products, self.metadata_ttl, CatalogEntry)

    async def delete_products(self) -> None:
        """Remove the cached product catalog."""
        await self._delete(PRODUCTS_KEY)

    # =========================================================================
    # Source health
    # =========================================================================

    async def get_health(self) -> bool | None:
        """Cached source health flag."""
        return await self._read(HEALTH_KEY, HealthEntry)

    async def set_health(self, healthy: bool) -> None:
        """Cache the source health flag."""
        await self._write(HEALTH_KEY, healthy, self.health_ttl, HealthEntry)

    async def delete_health(self) -> None:
        """Remove the cached health flag."""
        await self._delete(HEALTH_KEY)

    # =========================================================================
    # Maintenance
    # =========================================================================

    async def clear_all(self) -> int:
        """Delete every market data key.

        Returns:
            Number of keys removed.
        """
        removed = 0
        for prefix in ALL_PREFIXES:
            removed += await self._delete_pattern(f"{prefix}:*")
        logger.info("Cleared all market data cache", removed=removed)
        return removed

    async def stats(self) -> CacheStats:
        """Report connectivity, market data key count and Redis memory usage."""
        client = self._connection.client
        if client is None:
            return CacheStats(connected=False)

        key_count = 0
        try:
            for prefix in ALL_PREFIXES:
                pattern = self._full_key(f"{prefix}:*")
                key_count += len([key async for key in client.scan_iter(match=pattern)])
        except (RedisError, OSError) as e:
            self._on_error("stats", "*", e)
            return CacheStats(connected=False)

        memory_usage: str | None = None
        try:
            info = await client.info("memory")
            if "used_memory_human" in info:
                memory_usage = str(info["used_memory_human"]).strip()
        except (RedisError, OSError) as e:
            logger.debug("Memory info unavailable", error=str(e))

        return CacheStats(connected=True, key_count=key_count, memory_usage=memory_usage)
