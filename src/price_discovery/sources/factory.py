"""Construction of the configured raw market data source."""

from __future__ import annotations

from typing import TYPE_CHECKING

from price_discovery.core.config import MarketDataProvider
from price_discovery.observability.logging import get_logger
from price_discovery.sources.government import GovernmentMarketDataSource
from price_discovery.sources.mock import MockMarketDataSource


if TYPE_CHECKING:
    import httpx

    from price_discovery.core.config import Settings
    from price_discovery.sources.protocol import MarketDataSource


logger = get_logger(__name__)


def create_market_data_source(
    settings: Settings,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> MarketDataSource:
    """Build the source selected by ``settings.market_data.provider``.

    The ``cached`` provider yields a strict government source, meant to be
    wrapped by ``CachedMarketDataSource`` so that provider failures reach the
    fallback chain as errors instead of empty answers.
    """
    provider = settings.market_data.provider
    logger.info("Creating market data source", provider=provider)

    match provider:
        case MarketDataProvider.MOCK:
            return MockMarketDataSource()
        case MarketDataProvider.GOVERNMENT:
            return GovernmentMarketDataSource.from_settings(settings, http_client=http_client)
        case MarketDataProvider.CACHED:
            return GovernmentMarketDataSource.from_settings(
                settings, strict=True, http_client=http_client
            )
    msg = f"Unknown market data provider: {provider}"
    raise ValueError(msg)
