"""Unit tests for cached price freshness rules."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from freezegun import freeze_time

from price_discovery.services.market_data.freshness import (
    MARKET_HOURS_MAX_AGE,
    OFF_HOURS_MAX_AGE,
    is_cached_price_fresh,
    max_cached_price_age,
)
from tests.fixtures.market_data import make_record


pytestmark = pytest.mark.unit

IST = ZoneInfo("Asia/Kolkata")


class TestMaxCachedPriceAge:
    """Tests for the time-of-day age limit."""

    @pytest.mark.parametrize("hour", [6, 12, 18])
    def test_market_hours(self, hour):
        now = datetime(2024, 1, 15, hour, 30, tzinfo=UTC)
        assert max_cached_price_age(now) == MARKET_HOURS_MAX_AGE

    @pytest.mark.parametrize("hour", [0, 5, 19, 23])
    def test_off_hours(self, hour):
        now = datetime(2024, 1, 15, hour, 30, tzinfo=UTC)
        assert max_cached_price_age(now) == OFF_HOURS_MAX_AGE

    def test_uses_market_timezone(self):
        # 02:00 UTC is 07:30 in Kolkata
        now = datetime(2024, 1, 15, 2, 0, tzinfo=UTC)

        assert max_cached_price_age(now) == OFF_HOURS_MAX_AGE
        assert max_cached_price_age(now, IST) == MARKET_HOURS_MAX_AGE


class TestIsCachedPriceFresh:
    """Tests for is_cached_price_fresh."""

    def test_eight_hours_old_during_market_hours_is_stale(self):
        now = datetime(2024, 1, 15, 12, tzinfo=UTC)
        record = make_record(age=timedelta(hours=8), now=now)

        assert not is_cached_price_fresh(record, now)

    def test_eight_hours_old_after_close_is_fresh(self):
        now = datetime(2024, 1, 15, 21, tzinfo=UTC)
        record = make_record(age=timedelta(hours=8), now=now)

        assert is_cached_price_fresh(record, now)

    def test_baseline_rule_still_applies(self):
        now = datetime(2024, 1, 15, 21, tzinfo=UTC)
        record = make_record(verified=False, now=now)

        assert not is_cached_price_fresh(record, now)

    def test_naive_now_is_read_as_utc(self):
        now = datetime(2024, 1, 15, 21, tzinfo=UTC)
        record = make_record(age=timedelta(hours=8), now=now)

        assert is_cached_price_fresh(record, now.replace(tzinfo=None))

    @freeze_time("2024-01-15 22:00:00")
    def test_defaults_to_current_time(self):
        record = make_record(
            age=timedelta(hours=11),
            now=datetime(2024, 1, 15, 22, tzinfo=UTC),
        )

        assert is_cached_price_fresh(record)
