"""Estimation method selection and confidence scoring for AI estimates."""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from price_discovery.schemas.enums import EstimationMethod, Seasonality
from price_discovery.services.price_discovery.analytics import coefficient_of_variation


if TYPE_CHECKING:
    from collections.abc import Sequence

    from price_discovery.schemas.market import MarketContext
    from price_discovery.schemas.pricing import HistoricalPoint


MIN_CONFIDENCE: Final[float] = 0.1
MAX_CONFIDENCE: Final[float] = 0.9

_METHOD_ADJUSTMENTS: Final[dict[str, float]] = {
    EstimationMethod.LLM_WITH_HISTORICAL: 0.1,
    EstimationMethod.LLM_SEASONAL_ADJUSTED: 0.05,
    EstimationMethod.LLM_CATEGORY_BASED: -0.1,
}


def select_estimation_method(
    history: Sequence[HistoricalPoint],
    context: MarketContext | None = None,
) -> EstimationMethod:
    """Pick the AI estimation method from data volume and seasonality."""
    if len(history) >= 10:
        if context is not None and context.seasonality != Seasonality.NORMAL:
            return EstimationMethod.LLM_SEASONAL_ADJUSTED
        return EstimationMethod.LLM_WITH_HISTORICAL
    if len(history) >= 3:
        return EstimationMethod.LLM_MARKET_SENTIMENT
    return EstimationMethod.LLM_CATEGORY_BASED


def days_since_last_point(
    history: Sequence[HistoricalPoint], now: datetime | None = None
) -> int | None:
    """Whole days between the newest point and ``now``, None for no history."""
    if not history:
        return None
    elapsed = (now or datetime.now(UTC)) - history[-1].date
    return math.floor(elapsed.total_seconds() / 86400)


def calculate_confidence_score(
    history: Sequence[HistoricalPoint],
    method: EstimationMethod | str,
    now: datetime | None = None,
) -> float:
    """Score an AI estimate in [0.1, 0.9].

    Starts at 0.5 and adjusts for data volume, recency of the newest point,
    the estimation method and the consistency (CV) of the prices.
    """
    confidence = 0.5

    points = len(history)
    if points >= 30:
        confidence += 0.2
    elif points >= 10:
        confidence += 0.1
    elif points < 3:
        confidence -= 0.2

    age = days_since_last_point(history, now)
    if age is not None:
        if age <= 7:
            confidence += 0.15
        elif age <= 30:
            confidence += 0.05
        else:
            confidence -= 0.1

    confidence += _METHOD_ADJUSTMENTS.get(str(method), 0.0)

    if points > 1:
        cv = coefficient_of_variation([p.price for p in history])
        if cv < 0.2:
            confidence += 0.1
        elif cv > 0.5:
            confidence -= 0.15

    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))
