"""Pure price-series arithmetic: trend, volatility and confidence.

Series are ordered oldest to newest. None of these functions perform I/O.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from price_discovery.schemas.enums import (
    PredictedDirection,
    Trend,
    TrendClassification,
)
from price_discovery.schemas.market import TrendAnalysis
from price_discovery.services.price_discovery.constants import (
    MAX_STATISTICAL_CONFIDENCE,
    SUFFICIENT_DATA_POINTS,
    TREND_THRESHOLD,
    TREND_WINDOW,
    VOLATILE_TREND_THRESHOLD,
)


if TYPE_CHECKING:
    from collections.abc import Sequence

    from price_discovery.schemas.pricing import HistoricalPoint


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0 for an empty sequence."""
    return sum(values) / len(values) if values else 0.0


def coefficient_of_variation(prices: Sequence[float]) -> float:
    """Population standard deviation over the mean.

    Returns 0 for fewer than two prices or a non-positive mean.
    """
    if len(prices) < 2:
        return 0.0
    avg = mean(prices)
    if avg <= 0:
        return 0.0
    variance = sum((p - avg) ** 2 for p in prices) / len(prices)
    return math.sqrt(variance) / avg


def calculate_volatility(points: Sequence[HistoricalPoint]) -> float:
    """Coefficient of variation of the series prices."""
    return coefficient_of_variation([p.price for p in points])


def relative_change(points: Sequence[HistoricalPoint], window: int = TREND_WINDOW) -> float:
    """Change of the last-``window`` mean against the first-``window`` mean."""
    if len(points) < 2:
        return 0.0
    recent = mean([p.price for p in points[-window:]])
    older = mean([p.price for p in points[:window]])
    if older <= 0:
        return 0.0
    return (recent - older) / older


def calculate_trend(points: Sequence[HistoricalPoint]) -> Trend:
    """Classify a series as rising, falling or stable (±5% threshold)."""
    change = relative_change(points)
    if change > TREND_THRESHOLD:
        return Trend.RISING
    if change < -TREND_THRESHOLD:
        return Trend.FALLING
    return Trend.STABLE


def trend_multiplier(recent_prices: Sequence[float]) -> float:
    """Second-half average over first-half average; 1 for fewer than 2 prices."""
    if len(recent_prices) < 2:
        return 1.0
    middle = len(recent_prices) // 2
    first_avg = mean(recent_prices[:middle])
    if first_avg <= 0:
        return 1.0
    return mean(recent_prices[middle:]) / first_avg


def history_confidence(data_points: int, max_points: int = SUFFICIENT_DATA_POINTS) -> float:
    """Data-sufficiency ratio scaled to at most 0.8, rounded to 2 places."""
    sufficiency = min(data_points / max_points, 1.0)
    return round(sufficiency * MAX_STATISTICAL_CONFIDENCE, 2)


def classify_trend(
    points: Sequence[HistoricalPoint],
) -> tuple[TrendClassification, PredictedDirection, float]:
    """Trend label with volatility flag, predicted direction and the change.

    Moves beyond ±15% are labelled volatile while keeping their direction.
    """
    change = relative_change(points)
    if abs(change) < TREND_THRESHOLD:
        return TrendClassification.STABLE, PredictedDirection.STABLE, change
    if change > VOLATILE_TREND_THRESHOLD:
        return TrendClassification.VOLATILE, PredictedDirection.UP, change
    if change < -VOLATILE_TREND_THRESHOLD:
        return TrendClassification.VOLATILE, PredictedDirection.DOWN, change
    if change > 0:
        return TrendClassification.RISING, PredictedDirection.UP, change
    return TrendClassification.FALLING, PredictedDirection.DOWN, change


_TREND_FACTORS: dict[TrendClassification, list[str]] = {
    TrendClassification.RISING: ["Increased demand", "Supply constraints", "Seasonal factors"],
    TrendClassification.FALLING: ["Market surplus", "Reduced demand", "Harvest season"],
    TrendClassification.VOLATILE: [
        "Market uncertainty",
        "Weather variations",
        "Supply disruptions",
    ],
    TrendClassification.STABLE: ["Stable market conditions", "Balanced supply-demand"],
}


def analyze_trend(
    points: Sequence[HistoricalPoint],
    category: str = "",
    *,
    time_horizon: int = 14,
) -> TrendAnalysis:
    """Statistical trend analysis of a series."""
    if len(points) < 2:
        return TrendAnalysis(
            trend=TrendClassification.STABLE,
            confidence=0.3,
            predicted_direction=PredictedDirection.STABLE,
            time_horizon=7,
            factors=["Insufficient historical data"],
            reasoning="Not enough data points to determine trend",
        )

    trend, direction, change = classify_trend(points)
    factors = list(_TREND_FACTORS[trend])
    match category.lower():
        case "vegetables":
            factors.append("Weather-dependent supply")
        case "grains":
            factors.append("Government policy impact")

    if change > 0:
        movement = "upward"
    elif change < 0:
        movement = "downward"
    else:
        movement = "stable"

    return TrendAnalysis(
        trend=trend,
        confidence=min(MAX_STATISTICAL_CONFIDENCE, len(points) / SUFFICIENT_DATA_POINTS),
        predicted_direction=direction,
        time_horizon=time_horizon,
        factors=factors,
        reasoning=(
            f"Based on {len(points)} data points, the trend shows {movement} movement."
        ),
    )
