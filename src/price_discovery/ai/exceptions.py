"""AI estimator exceptions.

These exceptions are raised by the chat completions client and the LLM
estimator. The price discovery engine catches ``AIError`` and falls back to
the statistical estimate, so none of them reach engine callers.
"""

from __future__ import annotations


class AIError(Exception):
    """Base exception for AI estimator errors."""


class AIUnavailableError(AIError):
    """Raised when the AI service cannot be reached.

    This includes connection errors and service unavailability.
    """


class AITimeoutError(AIUnavailableError):
    """Raised when an AI request times out."""


class AIResponseError(AIError):
    """Raised when the AI service returns an error response or an empty one."""


class AIValidationError(AIError):
    """Raised when the AI response is not valid JSON for the expected schema."""


class AIRateLimitError(AIError):
    """Raised when the AI service rate limits the request."""


class AIConfigurationError(AIError):
    """Raised when the AI estimator is misconfigured, e.g. missing API key."""
