"""AI estimator backed by an OpenAI-compatible chat completions service."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from price_discovery.ai.client import ChatCompletionClient
from price_discovery.ai.confidence import (
    calculate_confidence_score,
    select_estimation_method,
)
from price_discovery.ai.exceptions import AIError, AIValidationError
from price_discovery.ai.prompts import (
    AIPriceEstimate,
    AISentimentResult,
    AITrendResult,
    MarketSentimentPrompt,
    PriceEstimationPrompt,
    TrendAnalysisPrompt,
)
from price_discovery.ai.prompts.price_estimation import MAX_PROMPT_POINTS
from price_discovery.observability.logging import get_logger
from price_discovery.schemas.enums import PriceSource
from price_discovery.schemas.market import MarketSentiment, TrendAnalysis
from price_discovery.schemas.pricing import EstimatedPrice


if TYPE_CHECKING:
    from collections.abc import Sequence

    from price_discovery.core.config import Settings
    from price_discovery.schemas.enums import EstimationMethod
    from price_discovery.schemas.market import MarketContext
    from price_discovery.schemas.pricing import HistoricalPoint, ProductQuery


logger = get_logger(__name__)


class LLMPriceEstimator:
    """Price estimation, trend and sentiment analysis through an LLM.

    Each operation renders a prompt, asks the client for structured JSON and
    maps the parsed output onto the domain schemas. Every failure surfaces
    as an ``AIError`` so the engine can fall back to statistics.
    """

    def __init__(self, client: ChatCompletionClient) -> None:
        self.client = client
        self._estimation_prompt = PriceEstimationPrompt()
        self._trend_prompt = TrendAnalysisPrompt()
        self._sentiment_prompt = MarketSentimentPrompt()

    @classmethod
    def from_settings(cls, settings: Settings) -> LLMPriceEstimator:
        """Build an estimator from the ``ai`` settings section.

        Raises:
            AIConfigurationError: If no API key is configured.
        """
        return cls(ChatCompletionClient.from_settings(settings))

    async def initialize(self) -> None:
        await self.client.initialize()

    async def shutdown(self) -> None:
        await self.client.shutdown()

    async def estimate_price_with_ai(
        self,
        query: ProductQuery,
        history: Sequence[HistoricalPoint],
        context: MarketContext | None = None,
    ) -> EstimatedPrice:
        """Estimate a price for ``query`` from history and market context.

        Raises:
            AIError: If the service failed or answered with unusable data.
        """
        logger.info(
            "AI price estimation started",
            product=query.name,
            historical_points=len(history),
        )
        method = select_estimation_method(history, context)
        prompt = self._estimation_prompt

        try:
            result = await self.client.generate_structured(
                prompt.format(product=query, history=history, context=context),
                AIPriceEstimate,
                system=prompt.system_prompt,
                options=prompt.get_options(),
            )
        except AIError as e:
            logger.warning("AI price estimation failed", product=query.name, error=str(e))
            raise

        confidence = self.calculate_confidence_score(history, method)
        try:
            estimate = EstimatedPrice(
                current=result.current,
                minimum=result.minimum,
                maximum=result.maximum,
                average=result.average,
                confidence=confidence,
                source=PriceSource.ESTIMATED,
                last_updated=datetime.now(UTC),
                estimation_method=method,
                historical_basis=list(history[-MAX_PROMPT_POINTS:]),
            )
        except PydanticValidationError as e:
            msg = f"AI estimate could not be mapped: {e}"
            raise AIValidationError(msg) from e

        logger.info(
            "AI price estimation completed",
            product=query.name,
            estimated_price=estimate.current,
            confidence=confidence,
            method=method,
        )
        return estimate

    async def analyze_market_trends(
        self,
        query: ProductQuery,
        history: Sequence[HistoricalPoint],
    ) -> TrendAnalysis:
        """Ask the model to classify the trend of ``history``."""
        prompt = self._trend_prompt
        result = await self.client.generate_structured(
            prompt.format(product=query, history=history),
            AITrendResult,
            system=prompt.system_prompt,
            options=prompt.get_options(),
        )
        logger.info("AI trend analysis completed", product=query.name, trend=result.trend)
        return TrendAnalysis(
            trend=result.trend,
            confidence=result.confidence,
            predicted_direction=result.predicted_direction,
            time_horizon=result.time_horizon,
            factors=result.factors,
            reasoning=result.reasoning,
        )

    async def generate_market_sentiment(
        self,
        query: ProductQuery,
        history: Sequence[HistoricalPoint],
        external_factors: Sequence[str] | None = None,
    ) -> MarketSentiment:
        """Ask the model for the market sentiment of ``query``."""
        prompt = self._sentiment_prompt
        result = await self.client.generate_structured(
            prompt.format(
                product=query,
                history=history,
                external_factors=list(external_factors or []),
            ),
            AISentimentResult,
            system=prompt.system_prompt,
            options=prompt.get_options(),
        )
        logger.info(
            "AI sentiment analysis completed",
            product=query.name,
            sentiment=result.sentiment,
            confidence=result.confidence,
        )
        return MarketSentiment(
            product=query.name,
            location=query.location,
            sentiment=result.sentiment,
            confidence=result.confidence,
            factors=result.factors,
            last_analyzed=datetime.now(UTC),
        )

    def calculate_confidence_score(
        self,
        history: Sequence[HistoricalPoint],
        method: EstimationMethod | str,
        now: datetime | None = None,
    ) -> float:
        return calculate_confidence_score(history, method, now)

    async def check_health(self) -> bool:
        return await self.client.check_health()
