"""Construction of the configured AI estimator."""

from __future__ import annotations

from typing import TYPE_CHECKING

from price_discovery.ai.exceptions import AIConfigurationError
from price_discovery.ai.llm import LLMPriceEstimator
from price_discovery.ai.mock import MockAIEstimator
from price_discovery.core.config import AIProvider
from price_discovery.observability.logging import get_logger


if TYPE_CHECKING:
    from price_discovery.ai.protocol import AIEstimator
    from price_discovery.core.config import Settings


logger = get_logger(__name__)


def create_ai_estimator(settings: Settings) -> AIEstimator | None:
    """Build the AI estimator selected by ``settings.ai``.

    Returns None when AI is disabled or the LLM provider has no API key; the
    engine then relies on its statistical fallbacks alone.
    """
    config = settings.ai
    if not config.enabled:
        logger.info("AI estimation disabled")
        return None

    if config.provider == AIProvider.MOCK:
        logger.info("Using mock AI estimator")
        return MockAIEstimator()

    try:
        estimator = LLMPriceEstimator.from_settings(settings)
    except AIConfigurationError as e:
        logger.warning("LLM estimator unavailable, AI estimation disabled", error=str(e))
        return None
    logger.info("Using LLM estimator", model=config.model, url=config.url)
    return estimator
