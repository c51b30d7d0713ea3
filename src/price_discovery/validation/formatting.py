"""Numeric normalization and display formatting for prices.

``format_price`` and ``format_confidence`` round half-up to 2 decimals and
reject NaN or negative input. Display helpers render Indian-rupee strings
with lakh/crore digit grouping.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from price_discovery.core.exceptions import ValidationError
from price_discovery.schemas.enums import EstimationMethod, PriceSource


if TYPE_CHECKING:
    from price_discovery.schemas.pricing import EstimatedPrice, PriceInfo


RUPEE: Final[str] = "₹"

_USER_PRICE_NOISE = re.compile(r"[₹$,\s]")

METHOD_DISPLAY_NAMES: Final[dict[str, str]] = {
    EstimationMethod.HISTORICAL_AVERAGE_WITH_TREND: "Historical Average with Trend Analysis",
    EstimationMethod.CATEGORY_BASELINE: "Category Baseline Estimation",
    EstimationMethod.LLM_WITH_HISTORICAL: "AI Estimate from Price History",
    EstimationMethod.LLM_SEASONAL_ADJUSTED: "AI Estimate with Seasonal Adjustment",
    EstimationMethod.LLM_MARKET_SENTIMENT: "AI Estimate from Market Sentiment",
    EstimationMethod.LLM_CATEGORY_BASED: "AI Category Estimate",
    EstimationMethod.MOCK_AI: "Simulated AI Estimate",
}


def round_half_up(value: float, places: int = 2) -> float:
    """Round half away from negative infinity, matching ``floor(x + 0.5)``."""
    scale = 10**places
    return math.floor(value * scale + 0.5) / scale


def format_price(price: float) -> float:
    """Round a price to 2 decimals.

    Raises:
        ValidationError: If ``price`` is NaN or negative.
    """
    if not isinstance(price, int | float) or math.isnan(price):
        msg = "Price must be a valid number"
        raise ValidationError(msg)
    if price < 0:
        msg = "Price cannot be negative"
        raise ValidationError(msg)
    return round_half_up(price)


def format_confidence(confidence: float) -> float:
    """Round a confidence score to 2 decimals.

    Raises:
        ValidationError: If ``confidence`` is NaN or outside [0, 1].
    """
    if not isinstance(confidence, int | float) or math.isnan(confidence):
        msg = "Confidence must be a valid number"
        raise ValidationError(msg)
    if not 0 <= confidence <= 1:
        msg = "Confidence must be between 0 and 1"
        raise ValidationError(msg)
    return round_half_up(confidence)


def format_price_info[P: PriceInfo](price: P) -> P:
    """Copy of ``price`` with every amount and the confidence normalized."""
    return price.model_copy(
        update={
            "current": format_price(price.current),
            "minimum": format_price(price.minimum),
            "maximum": format_price(price.maximum),
            "average": format_price(price.average),
            "confidence": format_confidence(price.confidence),
        }
    )


def group_indian_digits(integer_part: str) -> str:
    """Insert commas the Indian way: last three digits, then pairs."""
    if len(integer_part) <= 3:
        return integer_part
    head, tail = integer_part[:-3], integer_part[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join([*pairs, tail])


def format_price_for_display(price: float, currency: str = RUPEE) -> str:
    """``1234567.5`` -> ``₹12,34,567.50``."""
    integer_part, decimal_part = f"{format_price(price):.2f}".split(".")
    return f"{currency}{group_indian_digits(integer_part)}.{decimal_part}"


def format_price_range(minimum: float, maximum: float, currency: str = RUPEE) -> str:
    return (
        f"{format_price_for_display(minimum, currency)} - "
        f"{format_price_for_display(maximum, currency)}"
    )


def format_confidence_as_percentage(confidence: float) -> str:
    return f"{math.floor(confidence * 100 + 0.5)}%"


@dataclass(frozen=True, slots=True)
class PriceChange:
    """Absolute and relative difference between two prices."""

    change: float
    percentage: float
    formatted: str


def format_price_change(old_price: float, new_price: float) -> PriceChange:
    """Describe the move from ``old_price`` to ``new_price``.

    Raises:
        ValidationError: If ``old_price`` is not positive.
    """
    if old_price <= 0:
        msg = "Old price must be positive"
        raise ValidationError(msg)
    change = new_price - old_price
    percentage = round_half_up(change / old_price * 100)
    sign = "+" if change >= 0 else "-"
    pct_sign = "+" if change >= 0 else ""
    amount = format_price(abs(change))
    return PriceChange(
        change=amount,
        percentage=percentage,
        formatted=f"{sign}{amount:.2f} ({pct_sign}{percentage:g}%)",
    )


def format_volume(volume: float) -> str:
    """Compact volume: ``1500`` -> ``1.5K``, ``2500000`` -> ``2.5M``."""
    if volume >= 1_000_000:
        return f"{round_half_up(volume / 1_000_000):g}M"
    if volume >= 1_000:
        return f"{round_half_up(volume / 1_000):g}K"
    return f"{volume:g}"


def format_estimated_price(estimate: EstimatedPrice) -> dict[str, object]:
    """Normalized estimate plus human-readable estimation details."""
    method = str(estimate.estimation_method)
    return {
        "price_info": format_price_info(estimate),
        "estimation_details": {
            "method": METHOD_DISPLAY_NAMES.get(method, method),
            "confidence": format_confidence_as_percentage(estimate.confidence),
            "based_on": f"{len(estimate.historical_basis)} historical data points",
        },
    }


def format_price_summary(price: PriceInfo) -> dict[str, str]:
    """One-glance display strings for a PriceInfo."""
    source = "Official" if price.source == PriceSource.OFFICIAL else "Estimated"
    return {
        "current": format_price_for_display(price.current),
        "range": format_price_range(price.minimum, price.maximum),
        "confidence": format_confidence_as_percentage(price.confidence),
        "source": source,
        "last_updated": price.last_updated.isoformat(),
    }


def parse_and_format_user_price(value: str | float) -> float:
    """Parse user input such as ``"₹1,250.5"`` into a normalized price.

    Raises:
        ValidationError: If the input is not a non-negative number.
    """
    if isinstance(value, str):
        try:
            price = float(_USER_PRICE_NOISE.sub("", value))
        except ValueError:
            msg = "Invalid price format"
            raise ValidationError(msg) from None
    else:
        price = float(value)
    if math.isnan(price) or price < 0:
        msg = "Invalid price format"
        raise ValidationError(msg)
    return format_price(price)
