"""AI price estimation.

Provides:
- AIEstimator: protocol for pluggable estimators
- LLMPriceEstimator: estimator backed by a chat completions service
- MockAIEstimator: deterministic offline estimator
- ChatCompletionClient: rate-limited HTTP client with retries
- create_ai_estimator: builds the estimator selected by settings
"""

from price_discovery.ai.client import ChatCompletionClient
from price_discovery.ai.confidence import (
    calculate_confidence_score,
    select_estimation_method,
)
from price_discovery.ai.exceptions import (
    AIConfigurationError,
    AIError,
    AIRateLimitError,
    AIResponseError,
    AITimeoutError,
    AIUnavailableError,
    AIValidationError,
)
from price_discovery.ai.factory import create_ai_estimator
from price_discovery.ai.llm import LLMPriceEstimator
from price_discovery.ai.mock import MockAIEstimator
from price_discovery.ai.protocol import AIEstimator


__all__ = [
    "AIConfigurationError",
    "AIError",
    "AIEstimator",
    "AIRateLimitError",
    "AIResponseError",
    "AITimeoutError",
    "AIUnavailableError",
    "AIValidationError",
    "ChatCompletionClient",
    "LLMPriceEstimator",
    "MockAIEstimator",
    "calculate_confidence_score",
    "create_ai_estimator",
    "select_estimation_method",
]
