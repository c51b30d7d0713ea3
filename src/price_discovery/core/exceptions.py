"""Error taxonomy for the price discovery subsystem.

Only ``ValidationError`` and ``EstimationExhaustedError`` are expected to reach
callers of the engine. The remaining errors are raised internally and absorbed
by the fallback chain.
"""

from __future__ import annotations


class PriceDiscoveryError(Exception):
    """Base price discovery exception.

    All custom exceptions inherit from this class so callers can catch the
    whole family at once.
    """

    error_code = "PRICE_DISCOVERY_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(PriceDiscoveryError):
    """Malformed query, out-of-range argument or invalid PriceInfo shape.

    Raised immediately and never retried.
    """

    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        self.errors = errors or [message]
        super().__init__(message)


class SourceUnavailableError(PriceDiscoveryError):
    """The external market data provider could not serve a request."""

    error_code = "SOURCE_UNAVAILABLE"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class CacheUnavailableError(PriceDiscoveryError):
    """The networked cache store is unreachable."""

    error_code = "CACHE_UNAVAILABLE"


class DataQualityError(PriceDiscoveryError):
    """Data failed a freshness or sanity check and was discarded."""

    error_code = "DATA_QUALITY_ERROR"


class EstimationExhaustedError(PriceDiscoveryError):
    """Every estimation tier (AI, statistical, baseline) failed."""

    error_code = "ESTIMATION_EXHAUSTED"
