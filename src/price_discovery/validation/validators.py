"""Data-quality checks for queries and price values.

Every ``validate_*`` function is pure and returns a ``ValidationResult``
listing all problems found. The ``ensure_*`` helpers raise ``ValidationError``
for use at the engine boundary.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Final

from price_discovery.core.exceptions import ValidationError
from price_discovery.schemas.base import as_utc
from price_discovery.schemas.enums import PriceSource, ProductCategory, Unit


if TYPE_CHECKING:
    from price_discovery.schemas.pricing import PriceInfo, ProductQuery


MAX_NAME_LENGTH: Final[int] = 100
MAX_CATEGORY_LENGTH: Final[int] = 50
MAX_LOCATION_LENGTH: Final[int] = 100
MAX_UNIT_LENGTH: Final[int] = 20
MIN_QUANTITY: Final[float] = 0.001
MAX_QUANTITY: Final[float] = 1_000_000

MIN_HISTORY_DAYS: Final[int] = 1
MAX_HISTORY_DAYS: Final[int] = 365

# 1 lakh INR per unit
MAX_REASONABLE_PRICE: Final[float] = 100_000
MAX_PRICE_AGE: Final[timedelta] = timedelta(hours=24)
MAX_RANGE_SPREAD: Final[float] = 3.0


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of a validation check."""

    errors: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.is_valid


def _is_number(value: object) -> bool:
    return (
        isinstance(value, int | float)
        and not isinstance(value, bool)
        and not math.isnan(value)
    )


def _check_text(value: object, label: str, max_length: int, errors: list[str]) -> None:
    if not isinstance(value, str) or not value.strip():
        errors.append(f"{label} is required and must be a non-empty string")
    elif len(value) > max_length:
        errors.append(f"{label} must be {max_length} characters or less")


def validate_product_query(query: ProductQuery) -> ValidationResult:
    """Check required fields, string lengths and the quantity range."""
    errors: list[str] = []
    _check_text(query.name, "Product name", MAX_NAME_LENGTH, errors)
    _check_text(query.category, "Product category", MAX_CATEGORY_LENGTH, errors)
    _check_text(query.location, "Location", MAX_LOCATION_LENGTH, errors)
    _check_text(query.unit, "Unit", MAX_UNIT_LENGTH, errors)

    if not _is_number(query.quantity) or query.quantity <= 0:
        errors.append("Quantity must be a positive number")
    elif not MIN_QUANTITY <= query.quantity <= MAX_QUANTITY:
        errors.append("Quantity must be between 0.001 and 1,000,000")

    return ValidationResult(tuple(errors))


def validate_price_data(price: PriceInfo, now: datetime | None = None) -> ValidationResult:
    """Check sign, confidence range, source tag, ordering, ceiling and age."""
    errors: list[str] = []
    values = {
        "Current": price.current,
        "Minimum": price.minimum,
        "Maximum": price.maximum,
        "Average": price.average,
    }
    for label, value in values.items():
        if not _is_number(value) or value < 0:
            errors.append(f"{label} price must be a non-negative number")

    if not _is_number(price.confidence) or not 0 <= price.confidence <= 1:
        errors.append("Confidence must be a number between 0 and 1")

    if price.source not in {s.value for s in PriceSource}:
        errors.append('Source must be either "official" or "estimated"')

    if not isinstance(price.last_updated, datetime):
        errors.append("Last updated must be a valid datetime")

    if price.minimum > price.maximum:
        errors.append("Minimum price cannot be greater than maximum price")
    if not price.minimum <= price.current <= price.maximum:
        errors.append("Current price must be between minimum and maximum prices")
    if not price.minimum <= price.average <= price.maximum:
        errors.append("Average price must be between minimum and maximum prices")

    if any(v > MAX_REASONABLE_PRICE for v in values.values() if _is_number(v)):
        errors.append(f"Prices seem unreasonably high (above ₹{MAX_REASONABLE_PRICE:,.0f})")

    if isinstance(price.last_updated, datetime):
        now = as_utc(now) if now else datetime.now(UTC)
        if now - as_utc(price.last_updated) > MAX_PRICE_AGE:
            errors.append("Price data is older than 24 hours and may be stale")

    return ValidationResult(tuple(errors))


def validate_price_range(minimum: float, maximum: float, current: float) -> ValidationResult:
    """Check ordering of a price range and flag unusually wide spreads."""
    errors: list[str] = []
    if minimum > maximum:
        errors.append("Minimum price cannot be greater than maximum price")
    if current < minimum:
        errors.append("Current price cannot be less than minimum price")
    if current > maximum:
        errors.append("Current price cannot be greater than maximum price")
    if maximum > minimum * MAX_RANGE_SPREAD:
        errors.append("Price range seems unusually wide (max > 3x min)")
    return ValidationResult(tuple(errors))


def validate_confidence(confidence: float) -> ValidationResult:
    """A confidence must lie in (0, 1]."""
    if not _is_number(confidence):
        return ValidationResult(("Confidence must be a number",))
    if not 0 <= confidence <= 1:
        return ValidationResult(("Confidence must be between 0 and 1",))
    if confidence == 0:
        return ValidationResult(("Confidence cannot be exactly 0",))
    return ValidationResult()


def validate_product_category(category: str) -> ValidationResult:
    """Category must be one of the known product categories."""
    if not isinstance(category, str) or not category:
        return ValidationResult(("Category must be a non-empty string",))
    valid = [c.value for c in ProductCategory]
    if category.lower() not in valid:
        return ValidationResult((f"Category must be one of: {', '.join(valid)}",))
    return ValidationResult()


def validate_unit(unit: str) -> ValidationResult:
    """Unit must be one of the known units of measurement."""
    if not isinstance(unit, str) or not unit:
        return ValidationResult(("Unit must be a non-empty string",))
    valid = [u.value for u in Unit]
    if unit.lower() not in valid:
        return ValidationResult((f"Unit must be one of: {', '.join(valid)}",))
    return ValidationResult()


def ensure_valid_query(query: ProductQuery) -> None:
    """Raise ValidationError if ``query`` is malformed."""
    result = validate_product_query(query)
    if not result.is_valid:
        msg = f"Invalid product query: {'; '.join(result.errors)}"
        raise ValidationError(msg, list(result.errors))


def ensure_valid_history_days(days: int) -> None:
    """Raise ValidationError unless 1 <= days <= 365."""
    if isinstance(days, bool) or not isinstance(days, int):
        msg = "Days must be an integer"
        raise ValidationError(msg)
    if not MIN_HISTORY_DAYS <= days <= MAX_HISTORY_DAYS:
        msg = f"Days must be between {MIN_HISTORY_DAYS} and {MAX_HISTORY_DAYS}"
        raise ValidationError(msg)


def ensure_valid_price(price: PriceInfo, now: datetime | None = None) -> None:
    """Raise ValidationError if ``price`` fails ``validate_price_data``."""
    result = validate_price_data(price, now)
    if not result.is_valid:
        msg = f"Invalid price data: {'; '.join(result.errors)}"
        raise ValidationError(msg, list(result.errors))
