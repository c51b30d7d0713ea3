"""Cache-backed market data orchestration.

Provides:
- CachedMarketDataSource: cache -> source -> stale cache -> default read path
- FetchOutcome / FetchResult: which tier served a read
- SingleFlight: coalescing of concurrent identical reads
"""

from price_discovery.services.market_data.freshness import (
    is_cached_price_fresh,
    max_cached_price_age,
)
from price_discovery.services.market_data.service import (
    CachedMarketDataSource,
    FetchOutcome,
    FetchResult,
)
from price_discovery.services.market_data.singleflight import SingleFlight


__all__ = [
    "CachedMarketDataSource",
    "FetchOutcome",
    "FetchResult",
    "SingleFlight",
    "is_cached_price_fresh",
    "max_cached_price_age",
]
