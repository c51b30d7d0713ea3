"""Price estimation prompt for AI-based mandi price estimates."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, Field, model_validator

from price_discovery.ai.prompts.base import BasePrompt, format_history_line, require
from price_discovery.schemas.base import DownstreamResponse


# Only the most recent points are shown to the model
MAX_PROMPT_POINTS = 10


class AIPriceEstimate(DownstreamResponse):
    """Output schema for a price estimate.

    Missing bounds default to ±20% around ``current`` and a missing average
    to ``current`` itself.
    """

    current: float = Field(..., gt=0, description="Estimated current price")
    minimum: float | None = Field(default=None, ge=0)
    maximum: float | None = Field(default=None, ge=0)
    average: float | None = Field(default=None, ge=0)
    reasoning: str = ""
    factors: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _fill_missing_bounds(self) -> AIPriceEstimate:
        if not self.minimum:
            self.minimum = self.current * 0.8
        if not self.maximum:
            self.maximum = self.current * 1.2
        if not self.average:
            self.average = self.current
        return self


class PriceEstimationPrompt(BasePrompt[AIPriceEstimate]):
    """Prompt for estimating the current price of a product at a mandi.

    Example output:
        {
            "current": 28.5,
            "minimum": 24.0,
            "maximum": 33.0,
            "average": 28.0,
            "reasoning": "Winter arrivals keep supply high",
            "factors": ["seasonal surplus", "stable demand"]
        }
    """

    output_schema: ClassVar[type[BaseModel]] = AIPriceEstimate

    system_prompt: ClassVar[
        str | None
    ] = """You are an expert agricultural market analyst specializing in Indian commodity markets.
Your task is to provide accurate price estimates for agricultural products based on historical data,
market conditions, and seasonal patterns.

Key principles:
- Consider seasonal variations in Indian agriculture
- Account for regional price differences
- Factor in supply-demand dynamics
- Consider weather patterns and their impact
- Be aware of festival seasons affecting demand
- Provide realistic price ranges with proper justification

Always respond in valid JSON format with the required fields."""

    temperature: ClassVar[float] = 0.2
    max_tokens: ClassVar[int | None] = 800

    def format(self, **kwargs: Any) -> str:
        """Format the prompt with product, history and market context.

        Args:
            **kwargs: Must contain 'product' (ProductQuery). May contain
                'history' (list of HistoricalPoint) and 'context'
                (MarketContext).

        Raises:
            ValueError: If 'product' is missing.
        """
        product = require(kwargs, "product")
        history = kwargs.get("history") or []
        context = kwargs.get("context")

        sections = [
            f"Estimate the current market price for {product.name} "
            f"({product.category}) in {product.location}.",
            "Product Details:\n"
            f"- Name: {product.name}\n"
            f"- Category: {product.category}\n"
            f"- Location: {product.location}\n"
            f"- Quantity: {product.quantity:g} {product.unit}",
        ]

        if history:
            lines = [
                f"- {format_history_line(point, product.unit)}"
                for point in history[-MAX_PROMPT_POINTS:]
            ]
            sections.append(
                f"Historical Price Data (last {len(history)} data points):\n"
                + "\n".join(lines)
            )

        if context is not None:
            lines = [
                "Market Context:",
                f"- Seasonality: {context.seasonality}",
                f"- Weather Conditions: {context.weather_conditions or 'Normal'}",
                f"- Festival Season: {'Yes' if context.festival_season else 'No'}",
            ]
            if context.supply_disruptions:
                lines.append(
                    f"- Supply Disruptions: {', '.join(context.supply_disruptions)}"
                )
            if context.demand_factors:
                lines.append(f"- Demand Factors: {', '.join(context.demand_factors)}")
            sections.append("\n".join(lines))

        sections.append(
            """Please provide a price estimate in the following JSON format:
{
  "current": <estimated_current_price>,
  "minimum": <minimum_expected_price>,
  "maximum": <maximum_expected_price>,
  "average": <average_price>,
  "reasoning": "<explanation_for_the_estimate>",
  "factors": ["<factor1>", "<factor2>", "<factor3>"]
}

Consider seasonal patterns, supply-demand dynamics, and regional market conditions in your analysis."""
        )
        return "\n\n".join(sections)
