"""Validation and formatting of price data."""

from price_discovery.validation.formatting import (
    format_confidence,
    format_price,
    format_price_for_display,
    format_price_info,
)
from price_discovery.validation.validators import (
    ValidationResult,
    ensure_valid_history_days,
    ensure_valid_price,
    ensure_valid_query,
    validate_price_data,
    validate_product_query,
)


__all__ = [
    "ValidationResult",
    "ensure_valid_history_days",
    "ensure_valid_price",
    "ensure_valid_query",
    "format_confidence",
    "format_price",
    "format_price_for_display",
    "format_price_info",
    "validate_price_data",
    "validate_product_query",
]
