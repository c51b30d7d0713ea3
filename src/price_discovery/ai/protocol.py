"""AI estimator protocol.

The engine treats the AI estimator as a pluggable, possibly unavailable
collaborator. Implementations raise ``AIError`` subclasses on failure and
every call site in the engine has a non-AI fallback.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable


if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from price_discovery.schemas.enums import EstimationMethod
    from price_discovery.schemas.market import MarketContext, MarketSentiment, TrendAnalysis
    from price_discovery.schemas.pricing import EstimatedPrice, HistoricalPoint, ProductQuery


@runtime_checkable
class AIEstimator(Protocol):
    """Protocol for AI estimator implementations (LLM-backed, mock)."""

    async def initialize(self) -> None:
        """Acquire resources (HTTP connections, etc.)."""
        ...

    async def shutdown(self) -> None:
        """Release resources."""
        ...

    async def estimate_price_with_ai(
        self,
        query: ProductQuery,
        history: Sequence[HistoricalPoint],
        context: MarketContext | None = None,
    ) -> EstimatedPrice:
        """Estimate the current price of ``query``.

        Raises:
            AIError: If no estimate could be produced.
        """
        ...

    async def analyze_market_trends(
        self,
        query: ProductQuery,
        history: Sequence[HistoricalPoint],
    ) -> TrendAnalysis:
        """Classify the trend of ``history`` and predict its direction.

        Raises:
            AIError: If the analysis failed.
        """
        ...

    async def generate_market_sentiment(
        self,
        query: ProductQuery,
        history: Sequence[HistoricalPoint],
        external_factors: Sequence[str] | None = None,
    ) -> MarketSentiment:
        """Classify market sentiment for ``query``.

        Raises:
            AIError: If the analysis failed.
        """
        ...

    def calculate_confidence_score(
        self,
        history: Sequence[HistoricalPoint],
        method: EstimationMethod | str,
        now: datetime | None = None,
    ) -> float:
        """Confidence in an estimate built from ``history`` with ``method``."""
        ...

    async def check_health(self) -> bool:
        """Whether the estimator can currently serve requests."""
        ...
