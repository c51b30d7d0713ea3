"""Constants for price discovery and estimation."""

from __future__ import annotations

from typing import Final


# =============================================================================
# Official prices
# =============================================================================

OFFICIAL_SPREAD: Final[float] = 0.05
VERIFIED_CONFIDENCE: Final[float] = 0.95
UNVERIFIED_CONFIDENCE: Final[float] = 0.75

# Applied to an estimate served in place of an official price
FALLBACK_CONFIDENCE_FACTOR: Final[float] = 0.8

# =============================================================================
# Trend and volatility
# =============================================================================

TREND_WINDOW: Final[int] = 7
TREND_THRESHOLD: Final[float] = 0.05
VOLATILE_TREND_THRESHOLD: Final[float] = 0.15

# =============================================================================
# Statistical estimate
# =============================================================================

SUFFICIENT_DATA_POINTS: Final[int] = 30
MAX_STATISTICAL_CONFIDENCE: Final[float] = 0.8
HISTORICAL_MIN_FACTOR: Final[float] = 0.9
HISTORICAL_MAX_FACTOR: Final[float] = 1.1

# =============================================================================
# Category baseline
# =============================================================================

CATEGORY_BASE_PRICES: Final[dict[str, float]] = {
    "vegetables": 30,
    "fruits": 50,
    "grains": 25,
    "pulses": 80,
    "spices": 200,
}
DEFAULT_BASE_PRICE: Final[float] = 50
BASELINE_CONFIDENCE: Final[float] = 0.3
BASELINE_MIN_FACTOR: Final[float] = 0.8
BASELINE_MAX_FACTOR: Final[float] = 1.2

# =============================================================================
# Market context and sentiment
# =============================================================================

SUPPLY_DISRUPTION_VOLATILITY: Final[float] = 0.3
HIGH_VOLATILITY: Final[float] = 0.2
UNCERTAIN_VOLATILITY: Final[float] = 0.15
LOW_VOLATILITY: Final[float] = 0.1
LIMITED_DATA_POINTS: Final[int] = 10

SENTIMENT_BASE_CONFIDENCE: Final[float] = 0.5
SENTIMENT_MAX_DATA_BONUS: Final[float] = 0.3
