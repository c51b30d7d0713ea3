"""Market data source protocol and the baseline freshness rule.

Every source variant (mock, government HTTP, cache-backed) implements
``MarketDataSource`` so the engine can be wired with any of them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from price_discovery.schemas.base import as_utc
from price_discovery.sources.constants import MAX_RECORD_AGE


if TYPE_CHECKING:
    from datetime import date

    from price_discovery.schemas.pricing import HistoricalPoint, RawPriceRecord


def is_record_fresh(record: RawPriceRecord, now: datetime | None = None) -> bool:
    """True iff the record is younger than 24h, verified and positively priced."""
    now = as_utc(now) if now else datetime.now(UTC)
    age = now - as_utc(record.date)
    return age < MAX_RECORD_AGE and record.verified and record.price > 0


@runtime_checkable
class MarketDataSource(Protocol):
    """Protocol for market data source implementations.

    Reads never raise for provider failures: prices and history degrade to
    an empty list, catalogs to the default catalog. Callers treat an empty
    result as "unknown", not as an error.
    """

    async def initialize(self) -> None:
        """Acquire resources (HTTP connections, cache connections)."""
        ...

    async def shutdown(self) -> None:
        """Release resources."""
        ...

    async def fetch_current_prices(
        self, location: str, day: date | datetime
    ) -> list[RawPriceRecord]:
        """Current price records for a location on a day."""
        ...

    async def fetch_historical(
        self, product: str, location: str, days: int
    ) -> list[HistoricalPoint]:
        """Historical points for the last ``days`` days, oldest first."""
        ...

    async def check_health(self) -> bool:
        """Whether the provider is reachable and healthy."""
        ...

    async def list_locations(self) -> list[str]:
        """Supported mandi locations."""
        ...

    async def list_products(self) -> list[str]:
        """Supported products."""
        ...

    def validate_data_freshness(
        self, record: RawPriceRecord, now: datetime | None = None
    ) -> bool:
        """Whether ``record`` may be served as current data."""
        ...
