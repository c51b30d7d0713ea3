"""Market sentiment prompt."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, Field

from price_discovery.ai.prompts.base import BasePrompt, format_history_line, require
from price_discovery.schemas.base import DownstreamResponse
from price_discovery.schemas.enums import Sentiment


SENTIMENT_PROMPT_POINTS = 7


class AISentimentResult(DownstreamResponse):
    """Output schema for sentiment analysis."""

    sentiment: Sentiment = Sentiment.NEUTRAL
    confidence: float = Field(default=0.5, ge=0, le=1)
    factors: list[str] = Field(default_factory=list)


class MarketSentimentPrompt(BasePrompt[AISentimentResult]):
    """Prompt for classifying market sentiment from recent prices."""

    output_schema: ClassVar[type[BaseModel]] = AISentimentResult

    system_prompt: ClassVar[str | None] = (
        "You are a market sentiment analyst for Indian agricultural markets. "
        "Analyze market conditions and sentiment in JSON format."
    )

    temperature: ClassVar[float] = 0.1
    max_tokens: ClassVar[int | None] = 500

    def format(self, **kwargs: Any) -> str:
        """Format the prompt.

        Args:
            **kwargs: Must contain 'product'. May contain 'history' and
                'external_factors' (list of str).

        Raises:
            ValueError: If 'product' is missing.
        """
        product = require(kwargs, "product")
        history = kwargs.get("history") or []
        external_factors = kwargs.get("external_factors") or []

        prompt = (
            f"Analyze market sentiment for {product.name} in {product.location}.\n\n"
            "Recent Price History:\n"
        )
        prompt += "".join(
            f"{format_history_line(point)}\n"
            for point in history[-SENTIMENT_PROMPT_POINTS:]
        )

        if external_factors:
            prompt += "\nExternal Factors:\n"
            prompt += "".join(f"- {factor}\n" for factor in external_factors)

        prompt += """
Provide sentiment analysis in JSON format:
{
  "sentiment": "<bullish|bearish|neutral>",
  "confidence": <0.0_to_1.0>,
  "factors": ["<factor1>", "<factor2>", "<factor3>"]
}"""
        return prompt
