"""Unit tests for price series analytics."""

from __future__ import annotations

import pytest

from price_discovery.schemas.enums import PredictedDirection, Trend, TrendClassification
from price_discovery.services.price_discovery.analytics import (
    analyze_trend,
    calculate_trend,
    calculate_volatility,
    classify_trend,
    coefficient_of_variation,
    history_confidence,
    mean,
    relative_change,
    trend_multiplier,
)
from tests.fixtures.market_data import make_history


pytestmark = pytest.mark.unit


class TestBasicStatistics:
    def test_mean(self):
        assert mean([10, 20, 30]) == 20
        assert mean([]) == 0

    def test_coefficient_of_variation(self):
        # population std of [10, 30] is 10, mean 20
        assert coefficient_of_variation([10, 30]) == pytest.approx(0.5)

    def test_coefficient_of_variation_degenerate(self):
        assert coefficient_of_variation([10]) == 0
        assert coefficient_of_variation([0, 0]) == 0

    def test_volatility_of_flat_series(self):
        assert calculate_volatility(make_history([25] * 10)) == 0


class TestTrend:
    """Tests for trend classification."""

    def test_rising_sequence(self):
        points = make_history([20, 22, 24, 26, 28, 30, 32, 34])

        assert relative_change(points) == pytest.approx(2 / 26)
        assert calculate_trend(points) == Trend.RISING

    def test_falling_sequence(self):
        assert calculate_trend(make_history([34, 32, 30, 28, 26, 24, 22, 20])) == Trend.FALLING

    def test_small_move_is_stable(self):
        assert calculate_trend(make_history([25, 25.5, 25, 25.5, 25, 25.5, 25, 25.5])) == Trend.STABLE

    @pytest.mark.parametrize("prices", [[], [25]])
    def test_too_short_is_stable(self, prices):
        assert calculate_trend(make_history(prices)) == Trend.STABLE

    def test_classify_volatile_keeps_direction(self):
        points = make_history([10] * 7 + [20] * 7)

        trend, direction, change = classify_trend(points)

        assert trend == TrendClassification.VOLATILE
        assert direction == PredictedDirection.UP
        assert change == pytest.approx(1.0)

    def test_classify_falling(self):
        points = make_history([30] * 7 + [27] * 7)

        trend, direction, _ = classify_trend(points)

        assert trend == TrendClassification.FALLING
        assert direction == PredictedDirection.DOWN


class TestTrendMultiplier:
    def test_second_half_over_first_half(self):
        # halves [20, 20, 20] and [22, 22, 22, 22]
        assert trend_multiplier([20, 20, 20, 22, 22, 22, 22]) == pytest.approx(1.1)

    def test_single_price(self):
        assert trend_multiplier([25]) == 1


class TestHistoryConfidence:
    @pytest.mark.parametrize(
        ("points", "expected"), [(0, 0.0), (15, 0.4), (30, 0.8), (90, 0.8)]
    )
    def test_scaling(self, points, expected):
        assert history_confidence(points) == expected


class TestAnalyzeTrend:
    """Tests for the statistical trend analysis."""

    def test_insufficient_data(self):
        analysis = analyze_trend(make_history([25]))

        assert analysis.trend == TrendClassification.STABLE
        assert analysis.confidence == 0.3
        assert analysis.factors == ["Insufficient historical data"]

    def test_rising_vegetables(self):
        points = make_history([20, 22, 24, 26, 28, 30, 32, 34])

        analysis = analyze_trend(points, "vegetables")

        assert analysis.trend in {TrendClassification.RISING, TrendClassification.VOLATILE}
        assert analysis.predicted_direction == PredictedDirection.UP
        assert "Weather-dependent supply" in analysis.factors
        assert analysis.confidence == pytest.approx(8 / 30)
        assert "upward" in analysis.reasoning

    def test_confidence_is_capped(self):
        analysis = analyze_trend(make_history([25] * 60), "grains")

        assert analysis.confidence == 0.8
        assert analysis.trend == TrendClassification.STABLE
        assert "Government policy impact" in analysis.factors
