"""Market data sources.

Provides:
- MarketDataSource: protocol every source variant implements
- GovernmentMarketDataSource: HTTP client for the government mandi API
- MockMarketDataSource: deterministic offline source
- RetryPolicy: exponential backoff policy used by HTTP sources
- create_market_data_source: builds the source selected by settings
"""

from price_discovery.sources.factory import create_market_data_source
from price_discovery.sources.government import GovernmentMarketDataSource
from price_discovery.sources.mock import MockMarketDataSource
from price_discovery.sources.protocol import MarketDataSource, is_record_fresh
from price_discovery.sources.retry import RetryPolicy, is_transient_http_error


__all__ = [
    "GovernmentMarketDataSource",
    "MarketDataSource",
    "MockMarketDataSource",
    "RetryPolicy",
    "create_market_data_source",
    "is_record_fresh",
    "is_transient_http_error",
]
