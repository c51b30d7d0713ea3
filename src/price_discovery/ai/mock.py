"""Deterministic AI estimator for development and tests.

Produces plausible estimates without any network access: a category base
price, or the mean of the latest prices, adjusted by the market context.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from price_discovery.ai.confidence import days_since_last_point
from price_discovery.observability.logging import get_logger
from price_discovery.schemas.enums import (
    EstimationMethod,
    PriceSource,
    Seasonality,
    Sentiment,
)
from price_discovery.schemas.market import MarketSentiment
from price_discovery.schemas.pricing import EstimatedPrice
from price_discovery.services.price_discovery.analytics import (
    analyze_trend,
    coefficient_of_variation,
    mean,
)
from price_discovery.validation.formatting import round_half_up


if TYPE_CHECKING:
    from collections.abc import Sequence

    from price_discovery.schemas.market import MarketContext, TrendAnalysis
    from price_discovery.schemas.pricing import HistoricalPoint, ProductQuery


logger = get_logger(__name__)

MOCK_CATEGORY_PRICES: Final[dict[str, float]] = {
    "vegetables": 30,
    "fruits": 50,
    "grains": 25,
    "pulses": 80,
    "spices": 200,
    "dairy": 60,
    "meat": 300,
    "fish": 250,
}
MOCK_DEFAULT_PRICE: Final[float] = 50
MOCK_VARIATION: Final[float] = 0.1

SEASONAL_ADJUSTMENTS: Final[dict[str, float]] = {
    Seasonality.PEAK: 1.2,
    Seasonality.OFF_SEASON: 0.8,
}
FESTIVAL_ADJUSTMENT: Final[float] = 1.15
DISRUPTION_ADJUSTMENT: Final[float] = 1.1

_SENTIMENT_FACTORS: Final[dict[Sentiment, list[str]]] = {
    Sentiment.BULLISH: ["Positive price momentum", "Strong demand indicators"],
    Sentiment.BEARISH: ["Declining price trend", "Oversupply concerns"],
    Sentiment.NEUTRAL: ["Mixed market signals", "Balanced market conditions"],
}


class MockAIEstimator:
    """AI estimator that never calls out and is always healthy."""

    async def initialize(self) -> None:
        logger.debug("MockAIEstimator initialized")

    async def shutdown(self) -> None:
        logger.debug("MockAIEstimator shutdown")

    async def estimate_price_with_ai(
        self,
        query: ProductQuery,
        history: Sequence[HistoricalPoint],
        context: MarketContext | None = None,
    ) -> EstimatedPrice:
        logger.info(
            "Mock AI price estimation",
            product=query.name,
            historical_points=len(history),
        )
        base = MOCK_CATEGORY_PRICES.get(query.category.lower(), MOCK_DEFAULT_PRICE)
        if history:
            base = mean([p.price for p in history[-5:]])

        if context is not None:
            base *= SEASONAL_ADJUSTMENTS.get(context.seasonality, 1.0)
            if context.festival_season:
                base *= FESTIVAL_ADJUSTMENT
            if context.supply_disruptions:
                base *= DISRUPTION_ADJUSTMENT

        current = round_half_up(base)
        minimum = round_half_up(current * (1 - MOCK_VARIATION))
        maximum = round_half_up(current * (1 + MOCK_VARIATION))

        return EstimatedPrice(
            current=current,
            minimum=minimum,
            maximum=maximum,
            average=round_half_up((minimum + maximum) / 2),
            confidence=self.calculate_confidence_score(history, EstimationMethod.MOCK_AI),
            source=PriceSource.ESTIMATED,
            last_updated=datetime.now(UTC),
            estimation_method=EstimationMethod.MOCK_AI,
            historical_basis=list(history[-10:]),
        )

    async def analyze_market_trends(
        self,
        query: ProductQuery,
        history: Sequence[HistoricalPoint],
    ) -> TrendAnalysis:
        logger.info("Mock AI trend analysis", product=query.name, points=len(history))
        return analyze_trend(history, query.category)

    async def generate_market_sentiment(
        self,
        query: ProductQuery,
        history: Sequence[HistoricalPoint],
        external_factors: Sequence[str] | None = None,
    ) -> MarketSentiment:
        logger.info(
            "Mock AI sentiment analysis",
            product=query.name,
            external_factors=len(external_factors or []),
        )
        if len(history) < 2:
            return MarketSentiment(
                product=query.name,
                location=query.location,
                sentiment=Sentiment.NEUTRAL,
                confidence=0.3,
                factors=["Insufficient data for sentiment analysis"],
                last_analyzed=datetime.now(UTC),
            )

        prices = [p.price for p in history]
        avg = mean(prices)
        volatility = coefficient_of_variation(prices)
        recent = prices[-5:]
        movement = recent[-1] - recent[0]

        if volatility > 0.2:
            sentiment = Sentiment.NEUTRAL
        elif movement > avg * 0.1:
            sentiment = Sentiment.BULLISH
        elif movement < -avg * 0.1:
            sentiment = Sentiment.BEARISH
        else:
            sentiment = Sentiment.NEUTRAL

        factors = list(_SENTIMENT_FACTORS[sentiment])
        if volatility > 0.2:
            factors.append("High price volatility")
        elif volatility < 0.1:
            factors.append("Stable price environment")
        factors.extend(list(external_factors or [])[:2])

        return MarketSentiment(
            product=query.name,
            location=query.location,
            sentiment=sentiment,
            confidence=min(0.7, len(history) / 20),
            factors=factors,
            last_analyzed=datetime.now(UTC),
        )

    def calculate_confidence_score(
        self,
        history: Sequence[HistoricalPoint],
        method: EstimationMethod | str,
        now: datetime | None = None,
    ) -> float:
        """Lower-ceiling variant of the LLM score, in [0.1, 0.7]."""
        confidence = 0.4
        points = len(history)
        if points >= 20:
            confidence += 0.2
        elif points >= 10:
            confidence += 0.1
        elif points < 3:
            confidence -= 0.1

        age = days_since_last_point(history, now)
        if age is not None:
            if age <= 7:
                confidence += 0.1
            elif age > 30:
                confidence -= 0.1

        confidence *= 0.8
        return max(0.1, min(0.7, confidence))

    async def check_health(self) -> bool:
        return True
