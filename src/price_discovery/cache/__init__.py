"""Caching layers: Redis-backed market data cache and in-process TTL cache."""

from price_discovery.cache.local import TTLCache
from price_discovery.cache.market_data import CacheStats, MarketDataCache
from price_discovery.cache.redis import RedisConnectionManager


__all__ = [
    "CacheStats",
    "MarketDataCache",
    "RedisConnectionManager",
    "TTLCache",
]
