"""Market data builders and an in-memory Redis stand-in for unit tests."""

from __future__ import annotations

import fnmatch
from datetime import UTC, datetime, timedelta
from typing import Any

from redis.exceptions import ConnectionError as RedisConnectionError

from price_discovery.schemas.pricing import HistoricalPoint, ProductQuery, RawPriceRecord


def make_query(
    name: str = "tomato",
    category: str = "vegetables",
    location: str = "delhi",
    quantity: float = 1,
    unit: str = "kg",
) -> ProductQuery:
    """Build a well-formed product query."""
    return ProductQuery(
        name=name,
        category=category,
        location=location,
        quantity=quantity,
        unit=unit,
    )


def make_history(
    prices: list[float],
    *,
    end: datetime | None = None,
    location: str = "delhi",
    volume: float = 100,
) -> list[HistoricalPoint]:
    """Daily points, oldest first, the last one dated ``end`` (default now)."""
    end = end or datetime.now(UTC)
    return [
        HistoricalPoint(
            date=end - timedelta(days=len(prices) - 1 - i),
            price=price,
            volume=volume,
            location=location,
        )
        for i, price in enumerate(prices)
    ]


def make_record(
    product: str = "Tomato",
    price: float = 25.0,
    *,
    location: str = "delhi",
    age: timedelta = timedelta(0),
    verified: bool = True,
    now: datetime | None = None,
) -> RawPriceRecord:
    """A raw price record dated ``age`` before ``now``."""
    return RawPriceRecord(
        product=product,
        location=location,
        price=price,
        date=(now or datetime.now(UTC)) - age,
        source_tag="government_api",
        verified=verified,
    )


class FakeRedis:
    """Dict-backed async Redis covering the commands the cache uses.

    Set ``fail`` to make every command raise a connection error.
    """

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail = False
        self.closed = False
        self.ping_count = 0

    def _check(self) -> None:
        if self.fail:
            msg = "Connection refused"
            raise RedisConnectionError(msg)

    async def ping(self) -> bool:
        self.ping_count += 1
        self._check()
        return True

    async def get(self, key: str) -> str | None:
        self._check()
        return self.store.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self._check()
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                self.ttls.pop(key, None)
                removed += 1
        return removed

    async def scan_iter(self, match: str = "*") -> Any:
        self._check()
        for key in list(self.store):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def info(self, section: str | None = None) -> dict[str, Any]:
        self._check()
        return {"used_memory_human": "1.5M"}

    async def aclose(self) -> None:
        self.closed = True
