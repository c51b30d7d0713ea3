"""Deterministic in-process market data source.

Used for local development and tests. Current prices are dated "now" and
verified; historical series are generated from a seeded RNG so the same
product and location always yield the same series.
"""

from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Final

from price_discovery.observability.logging import get_logger
from price_discovery.schemas.pricing import HistoricalPoint, RawPriceRecord
from price_discovery.sources.constants import MOCK_SOURCE_TAG
from price_discovery.sources.protocol import is_record_fresh


if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import date


logger = get_logger(__name__)

MOCK_PRICES: Final[dict[str, float]] = {
    "Onion": 25.50,
    "Potato": 18.75,
    "Tomato": 32.00,
}

MOCK_LOCATIONS: Final[tuple[str, ...]] = (
    "Delhi",
    "Mumbai",
    "Bangalore",
    "Chennai",
    "Kolkata",
    "Hyderabad",
    "Pune",
    "Ahmedabad",
)

MOCK_PRODUCTS: Final[tuple[str, ...]] = (
    "Onion",
    "Potato",
    "Tomato",
    "Rice",
    "Wheat",
    "Garlic",
    "Ginger",
    "Turmeric",
)


class MockMarketDataSource:
    """Market data source that never touches the network.

    Args:
        prices: Product name to price for current records.
        history_prices: Fixed series (oldest first) returned for every
            historical request instead of generated data.
        base_price: Centre of the generated historical series.
        healthy: Value reported by ``check_health``.
    """

    def __init__(
        self,
        *,
        prices: Mapping[str, float] | None = None,
        history_prices: Sequence[float] | None = None,
        base_price: float = 25.0,
        healthy: bool = True,
    ) -> None:
        self.prices = dict(MOCK_PRICES if prices is None else prices)
        self.history_prices = list(history_prices) if history_prices is not None else None
        self.base_price = base_price
        self.healthy = healthy

    async def initialize(self) -> None:
        logger.debug("MockMarketDataSource initialized")

    async def shutdown(self) -> None:
        logger.debug("MockMarketDataSource shutdown")

    async def fetch_current_prices(
        self, location: str, day: date | datetime
    ) -> list[RawPriceRecord]:
        logger.debug("Mock: fetching mandi prices", location=location, day=str(day))
        now = datetime.now(UTC)
        return [
            RawPriceRecord(
                product=product,
                location=location,
                price=price,
                date=now,
                source_tag=MOCK_SOURCE_TAG,
                verified=True,
            )
            for product, price in self.prices.items()
        ]

    async def fetch_historical(
        self, product: str, location: str, days: int
    ) -> list[HistoricalPoint]:
        logger.debug(
            "Mock: fetching historical data",
            product=product,
            location=location,
            days=days,
        )
        today = datetime.now(UTC)

        if self.history_prices is not None:
            series = self.history_prices[-days:] if days > 0 else []
            return [
                HistoricalPoint(
                    date=today - timedelta(days=len(series) - 1 - i),
                    price=price,
                    volume=100,
                    location=location,
                )
                for i, price in enumerate(series)
            ]

        rng = random.Random(f"{product.lower()}|{location.lower()}")  # noqa: S311
        points = [
            HistoricalPoint(
                date=today - timedelta(days=offset),
                price=round(self.base_price + (rng.random() - 0.5) * 10, 2),
                volume=rng.randint(100, 1099),
                location=location,
            )
            for offset in range(days)
        ]
        points.reverse()
        return points

    async def check_health(self) -> bool:
        return self.healthy

    async def list_locations(self) -> list[str]:
        return list(MOCK_LOCATIONS)

    async def list_products(self) -> list[str]:
        return list(MOCK_PRODUCTS)

    def validate_data_freshness(
        self, record: RawPriceRecord, now: datetime | None = None
    ) -> bool:
        return is_record_fresh(record, now)
