"""Enumeration types for price discovery schemas."""

from __future__ import annotations

from enum import StrEnum


class PriceSource(StrEnum):
    """Origin of a PriceInfo value."""

    OFFICIAL = "official"  # Backed by a verified mandi record
    ESTIMATED = "estimated"  # Derived by the estimator


class Trend(StrEnum):
    """Direction of a price series."""

    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


class TrendClassification(StrEnum):
    """Trend label used by trend analysis, which may also flag volatility."""

    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"
    VOLATILE = "volatile"


class PredictedDirection(StrEnum):
    """Expected short-term price movement."""

    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class Sentiment(StrEnum):
    """Market sentiment classification."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class Seasonality(StrEnum):
    """Seasonal supply position of a product category."""

    PEAK = "peak"
    OFF_SEASON = "off-season"
    NORMAL = "normal"


class EstimationMethod(StrEnum):
    """How an EstimatedPrice was produced.

    The ``llm_*`` methods come from the AI estimator; the other two are the
    non-AI fallbacks, with ``category_baseline`` the least trustworthy.
    """

    LLM_WITH_HISTORICAL = "llm_with_historical"
    LLM_CATEGORY_BASED = "llm_category_based"
    LLM_MARKET_SENTIMENT = "llm_market_sentiment"
    LLM_SEASONAL_ADJUSTED = "llm_seasonal_adjusted"
    MOCK_AI = "mock_ai_estimation"
    HISTORICAL_AVERAGE_WITH_TREND = "historical_average_with_trend"
    CATEGORY_BASELINE = "category_baseline"


class ProductCategory(StrEnum):
    """Recognized product categories."""

    VEGETABLES = "vegetables"
    FRUITS = "fruits"
    GRAINS = "grains"
    PULSES = "pulses"
    SPICES = "spices"
    DAIRY = "dairy"
    MEAT = "meat"
    FISH = "fish"
    OILS = "oils"
    NUTS = "nuts"
    HERBS = "herbs"


class Unit(StrEnum):
    """Recognized units of measurement."""

    KG = "kg"
    GRAM = "gram"
    QUINTAL = "quintal"
    TON = "ton"
    LITER = "liter"
    ML = "ml"
    PIECE = "piece"
    DOZEN = "dozen"
    BAG = "bag"
    BOX = "box"
    BUNDLE = "bundle"
