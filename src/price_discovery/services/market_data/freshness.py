"""Freshness rules for cached current-price records."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, tzinfo
from typing import Final

from price_discovery.schemas.base import as_utc
from price_discovery.schemas.pricing import RawPriceRecord
from price_discovery.sources.protocol import is_record_fresh


MARKET_OPEN_HOUR: Final[int] = 6
MARKET_CLOSE_HOUR: Final[int] = 18  # Inclusive
MARKET_HOURS_MAX_AGE: Final[timedelta] = timedelta(hours=6)
OFF_HOURS_MAX_AGE: Final[timedelta] = timedelta(hours=12)


def max_cached_price_age(now: datetime, market_tz: tzinfo = UTC) -> timedelta:
    """Allowed age of a cached price at ``now``.

    Tighter during market hours (06:00 to 18:59 local), looser outside them.
    """
    hour = now.astimezone(market_tz).hour
    if MARKET_OPEN_HOUR <= hour <= MARKET_CLOSE_HOUR:
        return MARKET_HOURS_MAX_AGE
    return OFF_HOURS_MAX_AGE


def is_cached_price_fresh(
    record: RawPriceRecord,
    now: datetime | None = None,
    market_tz: tzinfo = UTC,
) -> bool:
    """Baseline freshness plus the time-of-day age limit."""
    now = as_utc(now) if now else datetime.now(UTC)
    if not is_record_fresh(record, now):
        return False
    return now - as_utc(record.date) <= max_cached_price_age(now, market_tz)
