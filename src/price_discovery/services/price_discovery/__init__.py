"""Price discovery engine.

This package provides:
- PriceDiscoveryService: current prices, history, estimates and sentiment
- Statistical and category-baseline estimation tiers
- Market context (seasonality, festivals, supply disruptions)
"""

from price_discovery.services.price_discovery.context import (
    build_market_context,
    detect_external_factors,
)
from price_discovery.services.price_discovery.estimator import (
    estimate_from_category,
    estimate_from_history,
    statistical_sentiment,
)
from price_discovery.services.price_discovery.service import (
    PriceDiscoveryService,
    is_product_match,
)


__all__ = [
    "PriceDiscoveryService",
    "build_market_context",
    "detect_external_factors",
    "estimate_from_category",
    "estimate_from_history",
    "is_product_match",
    "statistical_sentiment",
]
