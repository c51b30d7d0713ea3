"""Unit tests for query and price data validation."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from price_discovery.core.exceptions import ValidationError
from price_discovery.schemas.enums import PriceSource
from price_discovery.schemas.pricing import PriceInfo
from price_discovery.validation import (
    ensure_valid_history_days,
    ensure_valid_price,
    ensure_valid_query,
    validate_price_data,
    validate_product_query,
)
from price_discovery.validation.validators import (
    validate_confidence,
    validate_price_range,
    validate_product_category,
    validate_unit,
)
from tests.fixtures.market_data import make_query


pytestmark = pytest.mark.unit

NOW = datetime(2024, 1, 15, 12, tzinfo=UTC)


def make_price(**overrides) -> PriceInfo:
    values = {
        "current": 25.0,
        "minimum": 23.75,
        "maximum": 26.25,
        "average": 25.0,
        "confidence": 0.95,
        "source": PriceSource.OFFICIAL,
        "last_updated": NOW,
    }
    values.update(overrides)
    return PriceInfo(**values)


class TestValidateProductQuery:
    """Tests for validate_product_query."""

    def test_valid(self):
        result = validate_product_query(make_query())

        assert result.is_valid
        assert bool(result) is True
        assert result.errors == ()

    def test_collects_every_problem(self):
        result = validate_product_query(make_query(name="  ", unit="", quantity=0))

        assert not result.is_valid
        assert "Product name is required and must be a non-empty string" in result.errors
        assert "Unit is required and must be a non-empty string" in result.errors
        assert "Quantity must be a positive number" in result.errors

    def test_name_too_long(self):
        result = validate_product_query(make_query(name="x" * 101))
        assert result.errors == ("Product name must be 100 characters or less",)

    @pytest.mark.parametrize("quantity", [0.0001, 1_000_001])
    def test_quantity_out_of_range(self, quantity):
        result = validate_product_query(make_query(quantity=quantity))
        assert result.errors == ("Quantity must be between 0.001 and 1,000,000",)

    @pytest.mark.parametrize("quantity", [0.001, 1_000_000])
    def test_quantity_bounds_inclusive(self, quantity):
        assert validate_product_query(make_query(quantity=quantity)).is_valid

    def test_ensure_raises_with_errors(self):
        with pytest.raises(ValidationError) as exc_info:
            ensure_valid_query(make_query(location=""))

        assert exc_info.value.errors == ["Location is required and must be a non-empty string"]
        assert exc_info.value.message.startswith("Invalid product query")


class TestValidatePriceData:
    """Tests for validate_price_data."""

    def test_valid(self):
        assert validate_price_data(make_price(), NOW).is_valid

    def test_minimum_above_maximum(self):
        result = validate_price_data(make_price(minimum=30, maximum=20), NOW)
        assert "Minimum price cannot be greater than maximum price" in result.errors

    def test_current_outside_range(self):
        result = validate_price_data(make_price(current=30), NOW)
        assert result.errors == ("Current price must be between minimum and maximum prices",)

    def test_average_outside_range(self):
        result = validate_price_data(make_price(average=20), NOW)
        assert result.errors == ("Average price must be between minimum and maximum prices",)

    def test_negative_price(self):
        result = validate_price_data(make_price(minimum=-1), NOW)
        assert "Minimum price must be a non-negative number" in result.errors

    @pytest.mark.parametrize("confidence", [-0.1, 1.5])
    def test_confidence_out_of_range(self, confidence):
        result = validate_price_data(make_price(confidence=confidence), NOW)
        assert result.errors == ("Confidence must be a number between 0 and 1",)

    def test_unreasonably_high(self):
        price = make_price(current=150_000, minimum=140_000, maximum=160_000, average=150_000)
        result = validate_price_data(price, NOW)
        assert result.errors == ("Prices seem unreasonably high (above ₹100,000)",)

    def test_older_than_a_day(self):
        price = make_price(last_updated=NOW - timedelta(hours=25))
        result = validate_price_data(price, NOW)
        assert result.errors == ("Price data is older than 24 hours and may be stale",)

    def test_naive_last_updated_is_read_as_utc(self):
        price = make_price(last_updated=NOW.replace(tzinfo=None))

        assert price.last_updated == NOW
        assert validate_price_data(price, NOW).is_valid

    def test_unvalidated_naive_timestamps_compare_as_utc(self):
        naive = NOW.replace(tzinfo=None)
        price = make_price().model_copy(update={"last_updated": naive - timedelta(hours=25)})

        result = validate_price_data(price, naive)

        assert result.errors == ("Price data is older than 24 hours and may be stale",)

    def test_ensure_raises(self):
        with pytest.raises(ValidationError):
            ensure_valid_price(make_price(current=100), NOW)


class TestEnsureValidHistoryDays:
    @pytest.mark.parametrize("days", [1, 30, 365])
    def test_valid(self, days):
        ensure_valid_history_days(days)

    @pytest.mark.parametrize("days", [0, -5, 366])
    def test_out_of_range(self, days):
        with pytest.raises(ValidationError, match="between 1 and 365"):
            ensure_valid_history_days(days)

    @pytest.mark.parametrize("days", [True, 7.5, "7"])
    def test_not_an_integer(self, days):
        with pytest.raises(ValidationError, match="must be an integer"):
            ensure_valid_history_days(days)


class TestOtherValidators:
    def test_price_range_wide_spread(self):
        result = validate_price_range(10, 40, 20)
        assert result.errors == ("Price range seems unusually wide (max > 3x min)",)

    def test_price_range_current_below_minimum(self):
        result = validate_price_range(10, 20, 5)
        assert "Current price cannot be less than minimum price" in result.errors

    def test_confidence_zero(self):
        assert validate_confidence(0).errors == ("Confidence cannot be exactly 0",)

    def test_confidence_valid(self):
        assert validate_confidence(0.3).is_valid

    def test_category(self):
        assert validate_product_category("Vegetables").is_valid
        assert not validate_product_category("toys").is_valid

    def test_unit(self):
        assert validate_unit("quintal").is_valid
        assert not validate_unit("parsec").is_valid
