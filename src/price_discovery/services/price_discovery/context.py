"""Calendar and volatility signals for estimation and sentiment.

Months are 1-based calendar months taken from ``now`` (UTC unless a
timezone-aware ``now`` is supplied).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from price_discovery.schemas.enums import Seasonality, Trend
from price_discovery.schemas.market import MarketContext
from price_discovery.services.price_discovery.analytics import calculate_volatility
from price_discovery.services.price_discovery.constants import (
    HIGH_VOLATILITY,
    SUPPLY_DISRUPTION_VOLATILITY,
)


if TYPE_CHECKING:
    from collections.abc import Sequence

    from price_discovery.schemas.pricing import HistoricalPoint, PriceHistory


VEGETABLE_PEAK_MONTHS: Final[frozenset[int]] = frozenset({11, 12, 1, 2})
MONSOON_MONTHS: Final[frozenset[int]] = frozenset({6, 7, 8, 9})
FRUIT_PEAK_MONTHS: Final[frozenset[int]] = frozenset({3, 4, 5, 6})
# Post-harvest surplus, then pre-harvest demand
GRAIN_OFF_SEASON_MONTHS: Final[frozenset[int]] = frozenset({10, 11, 12})
GRAIN_PEAK_MONTHS: Final[frozenset[int]] = frozenset({3, 4, 5})
# Navratri, Dussehra, Diwali
FESTIVAL_MONTHS: Final[frozenset[int]] = frozenset({9, 10, 11})

SUPPLY_DISRUPTION_FACTOR: Final[str] = "High price volatility indicating supply issues"
FESTIVAL_DEMAND_FACTOR: Final[str] = "Festival season increased demand"


def seasonality_for(category: str, month: int) -> Seasonality:
    """Seasonal supply position of ``category`` in ``month``."""
    match category.strip().lower():
        case "vegetables":
            if month in VEGETABLE_PEAK_MONTHS:
                return Seasonality.PEAK
            if month in MONSOON_MONTHS:
                return Seasonality.OFF_SEASON
        case "fruits":
            if month in FRUIT_PEAK_MONTHS:
                return Seasonality.PEAK
        case "grains":
            if month in GRAIN_OFF_SEASON_MONTHS:
                return Seasonality.OFF_SEASON
            if month in GRAIN_PEAK_MONTHS:
                return Seasonality.PEAK
    return Seasonality.NORMAL


def is_festival_season(month: int) -> bool:
    return month in FESTIVAL_MONTHS


def build_market_context(
    category: str,
    history: Sequence[HistoricalPoint],
    now: datetime | None = None,
) -> MarketContext:
    """Derive seasonality, festival and supply-disruption signals.

    Args:
        category: Product category of the query.
        history: Historical points backing the estimate, possibly empty.
        now: Reference time (default: current UTC time).
    """
    month = (now or datetime.now(UTC)).month
    festival = is_festival_season(month)

    disruptions: list[str] = []
    if history and calculate_volatility(history) > SUPPLY_DISRUPTION_VOLATILITY:
        disruptions.append(SUPPLY_DISRUPTION_FACTOR)

    return MarketContext(
        seasonality=seasonality_for(category, month),
        festival_season=festival,
        supply_disruptions=disruptions,
        demand_factors=[FESTIVAL_DEMAND_FACTOR] if festival else [],
    )


def detect_external_factors(
    category: str,
    history: PriceHistory,
    now: datetime | None = None,
) -> list[str]:
    """External factors handed to the AI sentiment analysis."""
    month = (now or datetime.now(UTC)).month
    factors: list[str] = []

    if category.strip().lower() == "vegetables" and month in MONSOON_MONTHS:
        factors.append("Monsoon season affecting supply")

    if history.volatility > HIGH_VOLATILITY:
        factors.append("High market volatility")

    if history.trend == Trend.RISING:
        factors.append("Upward price trend")
    elif history.trend == Trend.FALLING:
        factors.append("Downward price trend")

    return factors
