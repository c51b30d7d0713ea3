"""Trend analysis prompt."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, Field

from price_discovery.ai.prompts.base import BasePrompt, require
from price_discovery.schemas.base import DownstreamResponse
from price_discovery.schemas.enums import PredictedDirection, TrendClassification


class AITrendResult(DownstreamResponse):
    """Output schema for trend analysis (camelCase keys accepted)."""

    trend: TrendClassification = TrendClassification.STABLE
    confidence: float = Field(default=0.5, ge=0, le=1)
    predicted_direction: PredictedDirection = PredictedDirection.STABLE
    time_horizon: int = Field(default=7, ge=1)
    factors: list[str] = Field(default_factory=list)
    reasoning: str = "No reasoning provided"


class TrendAnalysisPrompt(BasePrompt[AITrendResult]):
    """Prompt for classifying the trend of a price series."""

    output_schema: ClassVar[type[BaseModel]] = AITrendResult

    system_prompt: ClassVar[str | None] = (
        "You are a market analyst specializing in agricultural commodities in India. "
        "Analyze price trends and provide insights in JSON format."
    )

    temperature: ClassVar[float] = 0.1
    max_tokens: ClassVar[int | None] = 600

    def format(self, **kwargs: Any) -> str:
        """Format the prompt.

        Args:
            **kwargs: Must contain 'product' and 'history'.

        Raises:
            ValueError: If either argument is missing.
        """
        product = require(kwargs, "product")
        history = require(kwargs, "history")

        prompt = (
            f"Analyze the price trend for {product.name} in {product.location} "
            "based on the following historical data:\n\n"
        )
        prompt += "".join(
            f"{point.date:%Y-%m-%d}: ₹{point.price:g} (Volume: {point.volume:g})\n"
            for point in history
        )
        prompt += """
Please analyze the trend and provide insights in the following JSON format:
{
  "trend": "<rising|falling|stable|volatile>",
  "confidence": <0.0_to_1.0>,
  "predictedDirection": "<up|down|stable>",
  "timeHorizon": <days_for_prediction>,
  "factors": ["<factor1>", "<factor2>", "<factor3>"],
  "reasoning": "<detailed_explanation>"
}"""
        return prompt
