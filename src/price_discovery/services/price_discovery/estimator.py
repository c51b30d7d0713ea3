"""Non-AI estimation tiers.

``estimate_from_history`` is the statistical fallback used when the AI
estimator is unavailable; ``estimate_from_category`` is the last-resort
baseline. ``statistical_sentiment`` plays the same role for sentiment.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from price_discovery.schemas.enums import EstimationMethod, PriceSource, Sentiment, Trend
from price_discovery.schemas.market import MarketSentiment
from price_discovery.schemas.pricing import EstimatedPrice
from price_discovery.services.price_discovery.analytics import (
    history_confidence,
    mean,
    trend_multiplier,
)
from price_discovery.services.price_discovery.constants import (
    BASELINE_CONFIDENCE,
    BASELINE_MAX_FACTOR,
    BASELINE_MIN_FACTOR,
    CATEGORY_BASE_PRICES,
    DEFAULT_BASE_PRICE,
    HIGH_VOLATILITY,
    HISTORICAL_MAX_FACTOR,
    HISTORICAL_MIN_FACTOR,
    LIMITED_DATA_POINTS,
    LOW_VOLATILITY,
    SENTIMENT_BASE_CONFIDENCE,
    SENTIMENT_MAX_DATA_BONUS,
    SUFFICIENT_DATA_POINTS,
    TREND_WINDOW,
    UNCERTAIN_VOLATILITY,
)
from price_discovery.validation.formatting import round_half_up


if TYPE_CHECKING:
    from collections.abc import Sequence

    from price_discovery.schemas.pricing import HistoricalPoint, PriceHistory, ProductQuery


def category_base_price(category: str) -> float:
    return CATEGORY_BASE_PRICES.get(category.strip().lower(), DEFAULT_BASE_PRICE)


def estimate_from_history(
    history: Sequence[HistoricalPoint],
    now: datetime | None = None,
) -> EstimatedPrice:
    """Historical average adjusted by the recent trend.

    current = average x (second-half / first-half mean of the last 7 prices),
    bounded by the observed minimum less 10% and maximum plus 10%.

    Raises:
        ValueError: If ``history`` is empty.
    """
    if not history:
        msg = "Statistical estimation needs at least one historical point"
        raise ValueError(msg)

    prices = [p.price for p in history]
    average = mean(prices)
    multiplier = trend_multiplier(prices[-TREND_WINDOW:])

    minimum = round_half_up(min(prices) * HISTORICAL_MIN_FACTOR)
    maximum = round_half_up(max(prices) * HISTORICAL_MAX_FACTOR)
    current = min(max(round_half_up(average * multiplier), minimum), maximum)

    return EstimatedPrice(
        current=current,
        minimum=minimum,
        maximum=maximum,
        average=round_half_up(average),
        confidence=history_confidence(len(history), SUFFICIENT_DATA_POINTS),
        source=PriceSource.ESTIMATED,
        last_updated=now or datetime.now(UTC),
        estimation_method=EstimationMethod.HISTORICAL_AVERAGE_WITH_TREND,
        historical_basis=list(history),
    )


def estimate_from_category(category: str, now: datetime | None = None) -> EstimatedPrice:
    """Fixed per-category baseline with low confidence and no historical basis."""
    base = category_base_price(category)
    return EstimatedPrice(
        current=base,
        minimum=base * BASELINE_MIN_FACTOR,
        maximum=base * BASELINE_MAX_FACTOR,
        average=base,
        confidence=BASELINE_CONFIDENCE,
        source=PriceSource.ESTIMATED,
        last_updated=now or datetime.now(UTC),
        estimation_method=EstimationMethod.CATEGORY_BASELINE,
        historical_basis=[],
    )


def classify_sentiment(history: PriceHistory) -> Sentiment:
    """Rising and calm is bullish, falling and calm is bearish, else neutral."""
    if history.trend == Trend.RISING and history.volatility < LOW_VOLATILITY:
        return Sentiment.BULLISH
    if history.trend == Trend.FALLING and history.volatility < LOW_VOLATILITY:
        return Sentiment.BEARISH
    # High volatility is too uncertain to call
    return Sentiment.NEUTRAL


def identify_market_factors(history: PriceHistory) -> list[str]:
    factors: list[str] = []
    if history.trend == Trend.RISING:
        factors.append("Increasing demand")
    elif history.trend == Trend.FALLING:
        factors.append("Seasonal surplus")
    else:
        factors.append("Stable market conditions")

    if history.volatility > UNCERTAIN_VOLATILITY:
        factors.append("Market uncertainty")
    if len(history.points) < LIMITED_DATA_POINTS:
        factors.append("Limited data availability")
    return factors


def sentiment_confidence(history: PriceHistory) -> float:
    """0.5 + min(points/30, 0.3) + max(0.2 - volatility, 0), capped at 1."""
    confidence = SENTIMENT_BASE_CONFIDENCE
    confidence += min(len(history.points) / SUFFICIENT_DATA_POINTS, SENTIMENT_MAX_DATA_BONUS)
    confidence += max(HIGH_VOLATILITY - history.volatility, 0.0)
    return min(confidence, 1.0)


def statistical_sentiment(
    query: ProductQuery,
    history: PriceHistory,
    now: datetime | None = None,
) -> MarketSentiment:
    """Sentiment derived from the trend and volatility of ``history``."""
    return MarketSentiment(
        product=query.name,
        location=query.location,
        sentiment=classify_sentiment(history),
        confidence=sentiment_confidence(history),
        factors=identify_market_factors(history),
        last_analyzed=now or datetime.now(UTC),
    )
