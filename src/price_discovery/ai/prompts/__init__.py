"""AI prompt templates."""

from price_discovery.ai.prompts.base import BasePrompt
from price_discovery.ai.prompts.market_sentiment import (
    AISentimentResult,
    MarketSentimentPrompt,
)
from price_discovery.ai.prompts.price_estimation import (
    AIPriceEstimate,
    PriceEstimationPrompt,
)
from price_discovery.ai.prompts.trend_analysis import AITrendResult, TrendAnalysisPrompt


__all__ = [
    "AIPriceEstimate",
    "AISentimentResult",
    "AITrendResult",
    "BasePrompt",
    "MarketSentimentPrompt",
    "PriceEstimationPrompt",
    "TrendAnalysisPrompt",
]
