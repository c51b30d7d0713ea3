"""Pydantic schemas for the price discovery subsystem."""

from price_discovery.schemas.cache import CacheEntry
from price_discovery.schemas.enums import (
    EstimationMethod,
    PredictedDirection,
    PriceSource,
    ProductCategory,
    Seasonality,
    Sentiment,
    Trend,
    TrendClassification,
    Unit,
)
from price_discovery.schemas.market import MarketContext, MarketSentiment, TrendAnalysis
from price_discovery.schemas.pricing import (
    EstimatedPrice,
    HistoricalPoint,
    PriceHistory,
    PriceInfo,
    ProductQuery,
    RawPriceRecord,
)


__all__ = [
    "CacheEntry",
    "EstimatedPrice",
    "EstimationMethod",
    "HistoricalPoint",
    "MarketContext",
    "MarketSentiment",
    "PredictedDirection",
    "PriceHistory",
    "PriceInfo",
    "PriceSource",
    "ProductCategory",
    "ProductQuery",
    "RawPriceRecord",
    "Seasonality",
    "Sentiment",
    "Trend",
    "TrendAnalysis",
    "TrendClassification",
    "Unit",
]
