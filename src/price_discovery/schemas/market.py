"""Market analysis schemas: sentiment, seasonal context and trend analysis."""

from __future__ import annotations

from pydantic import Field

from price_discovery.schemas.base import DomainModel, UtcDatetime
from price_discovery.schemas.enums import (
    PredictedDirection,
    Seasonality,
    Sentiment,
    TrendClassification,
)


class MarketSentiment(DomainModel):
    """Sentiment for one product at one location."""

    product: str
    location: str
    sentiment: Sentiment
    confidence: float = Field(..., ge=0.0, le=1.0)
    factors: list[str] = Field(default_factory=list)
    last_analyzed: UtcDatetime


class MarketContext(DomainModel):
    """Calendar and volatility signals handed to the estimators."""

    seasonality: Seasonality = Seasonality.NORMAL
    weather_conditions: str | None = None
    festival_season: bool = False
    supply_disruptions: list[str] = Field(default_factory=list)
    demand_factors: list[str] = Field(default_factory=list)


class TrendAnalysis(DomainModel):
    """Trend classification with a short-horizon directional prediction."""

    trend: TrendClassification
    confidence: float = Field(..., ge=0.0, le=1.0)
    predicted_direction: PredictedDirection
    time_horizon: int = Field(default=7, description="Prediction horizon in days")
    factors: list[str] = Field(default_factory=list)
    reasoning: str = ""
