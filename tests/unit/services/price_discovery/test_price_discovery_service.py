"""Unit tests for PriceDiscoveryService.

Tests cover:
- Official prices from fresh matching records
- Estimation fallback and the short-term cache
- The AI -> statistical -> baseline estimation chain
- Price history, trends and sentiment
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from price_discovery.ai.exceptions import AIUnavailableError, AIValidationError
from price_discovery.ai.mock import MockAIEstimator
from price_discovery.cache.local import TTLCache
from price_discovery.core.exceptions import (
    EstimationExhaustedError,
    SourceUnavailableError,
    ValidationError,
)
from price_discovery.schemas.enums import (
    EstimationMethod,
    PredictedDirection,
    PriceSource,
    Sentiment,
    Trend,
    TrendClassification,
)
from price_discovery.schemas.market import MarketSentiment, TrendAnalysis
from price_discovery.schemas.pricing import EstimatedPrice, PriceInfo, RawPriceRecord
from price_discovery.services.price_discovery import PriceDiscoveryService
from price_discovery.services.price_discovery import service as service_module
from price_discovery.services.price_discovery.service import (
    find_matching_record,
    is_product_match,
    price_cache_key,
    record_to_price_info,
)
from price_discovery.sources.mock import MockMarketDataSource
from tests.factories.settings import SettingsFactory
from tests.fixtures.market_data import make_query, make_record


pytestmark = pytest.mark.unit

RISING = [20, 22, 24, 26, 28, 30, 32, 34]


def make_engine(
    *,
    prices: dict[str, float] | None = None,
    history: list[float] | None = None,
    ai=None,
) -> PriceDiscoveryService:
    source = MockMarketDataSource(
        prices=prices if prices is not None else {},
        history_prices=history if history is not None else [],
    )
    return PriceDiscoveryService(source, ai)


def make_ai() -> AsyncMock:
    ai = AsyncMock()
    ai.check_health.return_value = True
    return ai


class TestHelpers:
    """Tests for module-level helpers."""

    def test_price_cache_key(self):
        assert price_cache_key(make_query()) == "tomato:vegetables:delhi"

    def test_price_cache_key_normalizes_case_and_spaces(self):
        query = make_query(name="  Tomato ", category="Vegetables", location="New  Delhi")

        assert price_cache_key(query) == "tomato:vegetables:new-delhi"

    def test_price_cache_key_keeps_hyphenated_fields_apart(self):
        first = make_query(name="lady-finger", category="vegetables")
        second = make_query(name="lady", category="finger-vegetables")

        assert price_cache_key(first) != price_cache_key(second)

    @pytest.mark.parametrize(
        ("record_product", "expected"),
        [
            ("Tomato", True),
            ("Tomato Hybrid", True),
            ("Mixed Vegetables", True),
            ("tom", True),
            ("Onion", False),
        ],
    )
    def test_product_match(self, record_product, expected):
        assert is_product_match(record_product, "tomato", "vegetables") is expected

    def test_find_matching_record_returns_first(self):
        records = [make_record("Onion", 30), make_record("Tomato", 25), make_record("Tomato", 26)]

        match = find_matching_record(records, make_query())

        assert match is not None
        assert match.price == 25

    def test_record_to_price_info(self):
        info = record_to_price_info(make_record("Tomato", 100))

        assert info.source == PriceSource.OFFICIAL
        assert info.minimum == pytest.approx(95)
        assert info.maximum == pytest.approx(105)
        assert info.confidence == 0.95

    def test_unverified_record_confidence(self):
        assert record_to_price_info(make_record(verified=False)).confidence == 0.75


class TestConstruction:
    def test_from_settings(self):
        settings = SettingsFactory.build()

        engine = PriceDiscoveryService.from_settings(MockMarketDataSource(), None, settings)

        assert engine.price_cache.ttl == 300
        assert engine.price_cache.max_items == 1000
        assert engine.estimation_history_days == 30

    async def test_lifecycle(self):
        ai = make_ai()
        engine = make_engine(prices={"tomato": 25}, ai=ai)
        await engine.initialize()
        await engine.get_current_price(make_query())

        await engine.shutdown()

        assert len(engine.price_cache) == 0
        ai.initialize.assert_awaited_once()
        ai.shutdown.assert_awaited_once()

    async def test_check_health(self):
        assert await make_engine().check_health() == {"market_data": True, "ai": None}
        assert await make_engine(ai=make_ai()).check_health() == {
            "market_data": True,
            "ai": True,
        }


class TestGetCurrentPrice:
    """Tests for get_current_price."""

    async def test_official_price_from_verified_record(self):
        engine = make_engine(prices={"tomato": 25})
        query = make_query(quantity=10)

        price = await engine.get_current_price(query)

        assert price.source == PriceSource.OFFICIAL
        assert price.current == 25
        assert price.confidence == pytest.approx(0.95)
        assert price.minimum == 23.75
        assert price.maximum == 26.25
        assert price.average == 25

    async def test_second_call_is_served_from_short_term_cache(self):
        engine = make_engine(prices={"tomato": 25})
        engine.source.fetch_current_prices = AsyncMock(
            wraps=engine.source.fetch_current_prices
        )

        first = await engine.get_current_price(make_query())
        second = await engine.get_current_price(make_query())

        assert first == second
        assert first.last_updated == second.last_updated
        assert engine.source.fetch_current_prices.await_count == 1

    async def test_mutating_a_result_does_not_change_cached_value(self):
        engine = make_engine(prices={"tomato": 25})

        first = await engine.get_current_price(make_query())
        first.current = 1.0
        first.confidence = 0.1
        second = await engine.get_current_price(make_query())
        second.maximum = 99.0
        third = await engine.get_current_price(make_query())

        assert second.current == 25
        assert second.confidence == pytest.approx(0.95)
        assert third.maximum == 26.25
        assert third is not second

    async def test_naive_record_date_is_read_as_utc(self):
        engine = make_engine(history=[25.0] * 30)
        naive_now = datetime.now(UTC).replace(tzinfo=None)
        record = RawPriceRecord(
            product="Tomato",
            location="delhi",
            price=40,
            date=naive_now,
            source_tag="government_api",
            verified=True,
        )
        engine.source.fetch_current_prices = AsyncMock(return_value=[record])

        price = await engine.get_current_price(make_query())

        assert price.source == PriceSource.OFFICIAL
        assert price.current == 40
        assert price.last_updated.tzinfo is not None

    async def test_expired_short_term_cache_refetches(self):
        clock_now = [0.0]
        engine = PriceDiscoveryService(
            MockMarketDataSource(prices={"tomato": 25}),
            short_term_cache=TTLCache(ttl=300, clock=lambda: clock_now[0]),
        )
        engine.source.fetch_current_prices = AsyncMock(
            wraps=engine.source.fetch_current_prices
        )

        await engine.get_current_price(make_query())
        clock_now[0] = 301
        await engine.get_current_price(make_query())

        assert engine.source.fetch_current_prices.await_count == 2

    async def test_no_match_uses_statistical_estimate(self):
        engine = make_engine(prices={"onion": 30}, history=[25.0] * 30)

        price = await engine.get_current_price(make_query())

        assert price.source == PriceSource.ESTIMATED
        assert price.current == 25
        assert price.confidence == 0.64
        assert datetime.now(UTC) - price.last_updated < timedelta(minutes=1)

    async def test_unverified_record_is_not_official(self):
        engine = make_engine(history=[25.0] * 30)
        engine.source.fetch_current_prices = AsyncMock(
            return_value=[make_record("Tomato", 40, verified=False)]
        )

        price = await engine.get_current_price(make_query())

        assert price.source == PriceSource.ESTIMATED
        assert price.current == 25

    async def test_stale_record_is_not_official(self):
        engine = make_engine(history=[25.0] * 30)
        engine.source.fetch_current_prices = AsyncMock(
            return_value=[make_record("Tomato", 40, age=timedelta(hours=30))]
        )

        price = await engine.get_current_price(make_query())

        assert price.source == PriceSource.ESTIMATED

    async def test_source_failure_falls_back_to_baseline(self):
        engine = make_engine()
        engine.source.fetch_current_prices = AsyncMock(side_effect=SourceUnavailableError("down"))
        engine.source.fetch_historical = AsyncMock(side_effect=SourceUnavailableError("down"))

        price = await engine.get_current_price(make_query())

        assert price.source == PriceSource.ESTIMATED
        assert price.current == 30
        assert price.confidence == 0.24

    async def test_exhausted_estimation_serves_baseline(self, monkeypatch):
        engine = make_engine()
        monkeypatch.setattr(
            engine,
            "estimate_price",
            AsyncMock(side_effect=EstimationExhaustedError("nothing")),
        )

        price = await engine.get_current_price(make_query(category="pulses"))

        assert price.current == 80
        assert price.confidence == 0.3

    async def test_invalid_query_raises(self):
        with pytest.raises(ValidationError):
            await make_engine().get_current_price(make_query(name=""))

    @pytest.mark.parametrize(
        ("prices", "history", "category"),
        [
            ({"tomato": 25}, [], "vegetables"),
            ({}, RISING, "vegetables"),
            ({}, [], "spices"),
            ({}, [1, 1, 1, 1, 1, 1, 100], "fruits"),
        ],
    )
    async def test_result_always_satisfies_invariants(self, prices, history, category):
        engine = make_engine(prices=prices, history=history, ai=MockAIEstimator())

        price = await engine.get_current_price(make_query(category=category))

        assert price.minimum <= price.current <= price.maximum
        assert 0 <= price.confidence <= 1
        assert engine.validate_price_data(price)


class TestEstimatePrice:
    """Tests for the tiered estimation chain."""

    async def test_zero_history_without_ai_uses_baseline(self):
        engine = make_engine(history=[])

        estimate = await engine.estimate_price(make_query())

        assert estimate.estimation_method == EstimationMethod.CATEGORY_BASELINE
        assert estimate.confidence == 0.3
        assert estimate.historical_basis == []

    async def test_history_without_ai_uses_statistics(self):
        engine = make_engine(history=RISING)

        estimate = await engine.estimate_price(make_query())

        assert estimate.estimation_method == EstimationMethod.HISTORICAL_AVERAGE_WITH_TREND
        assert len(estimate.historical_basis) == 8

    async def test_ai_tier_first(self):
        engine = make_engine(history=[25.0] * 12, ai=MockAIEstimator())

        estimate = await engine.estimate_price(make_query())

        assert estimate.estimation_method == EstimationMethod.MOCK_AI
        assert len(estimate.historical_basis) == 10

    async def test_ai_receives_history_and_context(self):
        ai = make_ai()
        ai.estimate_price_with_ai.side_effect = AIUnavailableError("offline")
        engine = make_engine(history=RISING, ai=ai)

        await engine.estimate_price(make_query())

        query, history, context = ai.estimate_price_with_ai.await_args.args
        assert query.name == "tomato"
        assert [p.price for p in history] == RISING
        assert context.seasonality in {"peak", "off-season", "normal"}

    @pytest.mark.parametrize("error", [AIUnavailableError("offline"), AIValidationError("junk")])
    async def test_ai_failure_falls_back_to_statistics(self, error):
        ai = make_ai()
        ai.estimate_price_with_ai.side_effect = error
        engine = make_engine(history=RISING, ai=ai)

        estimate = await engine.estimate_price(make_query())

        assert estimate.estimation_method == EstimationMethod.HISTORICAL_AVERAGE_WITH_TREND

    async def test_invalid_ai_estimate_is_rejected(self):
        ai = make_ai()
        ai.estimate_price_with_ai.return_value = EstimatedPrice(
            current=100,
            minimum=10,
            maximum=20,
            average=15,
            confidence=0.6,
            source=PriceSource.ESTIMATED,
            last_updated=datetime.now(UTC),
            estimation_method=EstimationMethod.LLM_WITH_HISTORICAL,
        )
        engine = make_engine(history=[], ai=ai)

        estimate = await engine.estimate_price(make_query())

        assert estimate.estimation_method == EstimationMethod.CATEGORY_BASELINE

    async def test_every_tier_failing_raises(self, monkeypatch):
        broken = EstimatedPrice(
            current=100,
            minimum=10,
            maximum=20,
            average=15,
            confidence=0.3,
            source=PriceSource.ESTIMATED,
            last_updated=datetime.now(UTC),
            estimation_method=EstimationMethod.CATEGORY_BASELINE,
        )
        monkeypatch.setattr(service_module, "estimate_from_category", lambda *_: broken)
        engine = make_engine(history=[])

        with pytest.raises(EstimationExhaustedError):
            await engine.estimate_price(make_query())

    async def test_result_is_normalized(self):
        engine = make_engine(history=[25.111, 25.222, 25.333])

        estimate = await engine.estimate_price(make_query())

        assert estimate.current == round(estimate.current, 2)
        assert estimate.average == round(estimate.average, 2)


class TestGetPriceHistory:
    async def test_rising_series(self):
        engine = make_engine(history=RISING)

        history = await engine.get_price_history(make_query(), 8)

        assert history.product_key == "tomato-vegetables"
        assert history.location == "delhi"
        assert len(history.points) == 8
        assert history.trend == Trend.RISING
        assert history.volatility > 0

    async def test_empty_history(self):
        history = await make_engine(history=[]).get_price_history(make_query(), 30)

        assert history.points == []
        assert history.trend == Trend.STABLE
        assert history.volatility == 0

    @pytest.mark.parametrize("days", [0, 366])
    async def test_invalid_days(self, days):
        with pytest.raises(ValidationError):
            await make_engine().get_price_history(make_query(), days)


class TestAnalyzeMarketTrends:
    async def test_statistical_rising(self):
        engine = make_engine(history=RISING)

        analysis = await engine.analyze_market_trends(make_query())

        assert analysis.trend in {TrendClassification.RISING, TrendClassification.VOLATILE}
        assert analysis.predicted_direction == PredictedDirection.UP

    async def test_ai_result_is_returned(self):
        ai = make_ai()
        expected = TrendAnalysis(
            trend=TrendClassification.FALLING,
            confidence=0.7,
            predicted_direction=PredictedDirection.DOWN,
        )
        ai.analyze_market_trends.return_value = expected
        engine = make_engine(history=RISING, ai=ai)

        assert await engine.analyze_market_trends(make_query(), 8) == expected

    async def test_ai_failure_falls_back(self):
        ai = make_ai()
        ai.analyze_market_trends.side_effect = AIUnavailableError("offline")
        engine = make_engine(history=RISING, ai=ai)

        analysis = await engine.analyze_market_trends(make_query())

        assert analysis.predicted_direction == PredictedDirection.UP

    async def test_invalid_days(self):
        with pytest.raises(ValidationError):
            await make_engine().analyze_market_trends(make_query(), 400)


class TestGetMarketSentiment:
    async def test_statistical_without_ai(self):
        engine = make_engine(history=RISING)

        sentiment = await engine.get_market_sentiment(make_query())

        assert sentiment.product == "tomato"
        assert sentiment.sentiment in {Sentiment.BULLISH, Sentiment.NEUTRAL}
        assert 0 <= sentiment.confidence <= 1

    async def test_ai_receives_external_factors(self):
        ai = make_ai()
        ai.generate_market_sentiment.return_value = MarketSentiment(
            product="tomato",
            location="delhi",
            sentiment=Sentiment.BULLISH,
            confidence=0.7,
            last_analyzed=datetime.now(UTC),
        )
        engine = make_engine(history=RISING, ai=ai)

        sentiment = await engine.get_market_sentiment(make_query())

        assert sentiment.sentiment == Sentiment.BULLISH
        _, points, factors = ai.generate_market_sentiment.await_args.args
        assert len(points) == 8
        assert "Upward price trend" in factors

    async def test_ai_failure_falls_back(self):
        ai = make_ai()
        ai.generate_market_sentiment.side_effect = AIUnavailableError("offline")
        engine = make_engine(history=[], ai=ai)

        sentiment = await engine.get_market_sentiment(make_query())

        assert sentiment.sentiment == Sentiment.NEUTRAL
        assert "Limited data availability" in sentiment.factors


class TestValidatePriceData:
    def test_valid_and_invalid(self):
        engine = make_engine()
        valid = PriceInfo(
            current=25,
            minimum=20,
            maximum=30,
            average=25,
            confidence=0.9,
            source=PriceSource.OFFICIAL,
            last_updated=datetime.now(UTC),
        )

        assert engine.validate_price_data(valid) is True
        assert engine.validate_price_data(valid.model_copy(update={"current": 50})) is False

    def test_naive_last_updated_does_not_raise(self):
        engine = make_engine()
        fresh = PriceInfo(
            current=10,
            minimum=9,
            maximum=11,
            average=10,
            confidence=0.5,
            source=PriceSource.OFFICIAL,
            last_updated=datetime.now(UTC).replace(tzinfo=None),
        )
        naive_old = datetime.now(UTC).replace(tzinfo=None) - timedelta(days=3)
        stale = fresh.model_copy(update={"last_updated": naive_old})

        assert engine.validate_price_data(fresh) is True
        assert engine.validate_price_data(stale) is False
