"""Price discovery engine.

The public façade of the subsystem. It reads market data through an injected
``MarketDataSource``, estimates prices with an optional ``AIEstimator`` and
statistical fallbacks, and validates every value before returning it.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from price_discovery.ai.exceptions import AIError
from price_discovery.cache.local import TTLCache
from price_discovery.cache.market_data import normalize_key_part
from price_discovery.core.exceptions import (
    EstimationExhaustedError,
    SourceUnavailableError,
    ValidationError,
)
from price_discovery.observability.logging import get_logger
from price_discovery.schemas.enums import PriceSource
from price_discovery.schemas.pricing import PriceHistory, PriceInfo
from price_discovery.services.price_discovery.analytics import (
    analyze_trend,
    calculate_trend,
    calculate_volatility,
)
from price_discovery.services.price_discovery.constants import (
    FALLBACK_CONFIDENCE_FACTOR,
    OFFICIAL_SPREAD,
    UNVERIFIED_CONFIDENCE,
    VERIFIED_CONFIDENCE,
)
from price_discovery.services.price_discovery.context import (
    build_market_context,
    detect_external_factors,
)
from price_discovery.services.price_discovery.estimator import (
    estimate_from_category,
    estimate_from_history,
    statistical_sentiment,
)
from price_discovery.validation.formatting import format_price_info
from price_discovery.validation.validators import (
    ensure_valid_history_days,
    ensure_valid_price,
    ensure_valid_query,
    validate_price_data,
)


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from price_discovery.ai.protocol import AIEstimator
    from price_discovery.core.config import Settings
    from price_discovery.schemas.market import MarketSentiment, TrendAnalysis
    from price_discovery.schemas.pricing import (
        EstimatedPrice,
        HistoricalPoint,
        ProductQuery,
        RawPriceRecord,
    )
    from price_discovery.sources.protocol import MarketDataSource


logger = get_logger(__name__)


def price_cache_key(query: ProductQuery) -> str:
    """Short-term cache key: ``name:category:location``, normalized."""
    parts = (query.name, query.category, query.location)
    return ":".join(normalize_key_part(part) for part in parts)


def is_product_match(record_product: str, name: str, category: str) -> bool:
    """Case-insensitive substring containment in either direction.

    Matches when the record names the product or its category, or when the
    queried name contains the record's product.
    """
    product = record_product.strip().lower()
    name = name.strip().lower()
    category = category.strip().lower()
    return name in product or category in product or product in name


def find_matching_record(
    records: Sequence[RawPriceRecord], query: ProductQuery
) -> RawPriceRecord | None:
    """First record matching ``query``; no ranking is applied."""
    return next(
        (r for r in records if is_product_match(r.product, query.name, query.category)),
        None,
    )


def estimate_to_price_info(
    estimate: EstimatedPrice,
    *,
    confidence_factor: float = 1.0,
    last_updated: datetime | None = None,
) -> PriceInfo:
    """Plain PriceInfo view of an estimate, optionally with scaled confidence."""
    return PriceInfo(
        current=estimate.current,
        minimum=estimate.minimum,
        maximum=estimate.maximum,
        average=estimate.average,
        confidence=estimate.confidence * confidence_factor,
        source=PriceSource.ESTIMATED,
        last_updated=last_updated or estimate.last_updated,
    )


def record_to_price_info(record: RawPriceRecord) -> PriceInfo:
    """Official PriceInfo with a ±5% range around the recorded price."""
    return PriceInfo(
        current=record.price,
        minimum=record.price * (1 - OFFICIAL_SPREAD),
        maximum=record.price * (1 + OFFICIAL_SPREAD),
        average=record.price,
        confidence=VERIFIED_CONFIDENCE if record.verified else UNVERIFIED_CONFIDENCE,
        source=PriceSource.OFFICIAL,
        last_updated=record.date,
    )


class PriceDiscoveryService:
    """Current prices, history, estimates and sentiment for mandi products.

    Collaborators are injected; nothing is created lazily or looked up from
    module state.

    Attributes:
        source: Market data source (usually the cache-backed orchestrator).
        ai: Optional AI estimator; None disables the AI tier.
        estimation_history_days: History window for price estimation.
        sentiment_history_days: History window for sentiment analysis.
    """

    def __init__(
        self,
        source: MarketDataSource,
        ai: AIEstimator | None = None,
        *,
        short_term_cache: TTLCache[PriceInfo] | None = None,
        estimation_history_days: int = 30,
        sentiment_history_days: int = 30,
    ) -> None:
        """Initialize the engine.

        Args:
            source: Market data source.
            ai: Optional AI estimator.
            short_term_cache: Cache for computed current prices
                (default: 5 minute TTL, 1000 entries).
            estimation_history_days: Days of history behind an estimate.
            sentiment_history_days: Days of history behind a sentiment.
        """
        self.source = source
        self.ai = ai
        self.estimation_history_days = estimation_history_days
        self.sentiment_history_days = sentiment_history_days
        self._price_cache: TTLCache[PriceInfo] = (
            short_term_cache if short_term_cache is not None else TTLCache(ttl=300)
        )

    @classmethod
    def from_settings(
        cls,
        source: MarketDataSource,
        ai: AIEstimator | None,
        settings: Settings,
    ) -> PriceDiscoveryService:
        """Build the engine from the ``price_discovery`` settings section."""
        config = settings.price_discovery
        return cls(
            source,
            ai,
            short_term_cache=TTLCache(
                ttl=config.short_term_ttl,
                max_items=config.short_term_max_items,
            ),
            estimation_history_days=config.estimation_history_days,
            sentiment_history_days=config.sentiment_history_days,
        )

    @property
    def price_cache(self) -> TTLCache[PriceInfo]:
        return self._price_cache

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def initialize(self) -> None:
        """Initialize the market data source and the AI estimator."""
        await self.source.initialize()
        if self.ai is not None:
            await self.ai.initialize()
        logger.info(
            "PriceDiscoveryService initialized",
            ai_enabled=self.ai is not None,
        )

    async def shutdown(self) -> None:
        """Drop short-term cache entries and release collaborators."""
        self._price_cache.clear()
        if self.ai is not None:
            await self.ai.shutdown()
        await self.source.shutdown()
        logger.info("PriceDiscoveryService shutdown")

    async def check_health(self) -> dict[str, bool | None]:
        """Health of the market data source and the AI estimator (None if off)."""
        ai_healthy = await self.ai.check_health() if self.ai is not None else None
        return {
            "market_data": await self.source.check_health(),
            "ai": ai_healthy,
        }

    # =========================================================================
    # Market data access
    # =========================================================================

    async def _fetch_current_prices(self, location: str) -> list[RawPriceRecord]:
        try:
            return await self.source.fetch_current_prices(location, datetime.now(UTC))
        except SourceUnavailableError as e:
            logger.warning("Current prices unavailable", location=location, error=e.message)
            return []

    async def _fetch_history(self, query: ProductQuery, days: int) -> list[HistoricalPoint]:
        try:
            return await self.source.fetch_historical(query.name, query.location, days)
        except SourceUnavailableError as e:
            logger.warning(
                "Historical prices unavailable",
                product=query.name,
                location=query.location,
                error=e.message,
            )
            return []

    def _finalize[P: PriceInfo](self, price: P) -> P:
        """Normalize precision and enforce the PriceInfo invariants.

        Raises:
            ValidationError: If the value fails validation.
        """
        formatted = format_price_info(price)
        ensure_valid_price(formatted)
        return formatted

    # =========================================================================
    # Public API
    # =========================================================================

    async def get_current_price(self, query: ProductQuery) -> PriceInfo:
        """Current price for ``query``.

        Serves a fresh official record when one matches, otherwise an estimate
        with reduced confidence. The category baseline is the safety net, so
        only malformed queries raise.

        Raises:
            ValidationError: If ``query`` is malformed.
        """
        ensure_valid_query(query)

        key = price_cache_key(query)
        cached = self._price_cache.get(key)
        if cached is not None:
            logger.debug("Returning short-term cached price", cache_key=key)
            return cached.model_copy(deep=True)

        price_info = await self._official_price(query)
        if price_info is None:
            logger.warning(
                "Official data not available, using estimation",
                product=query.name,
                location=query.location,
            )
            price_info = await self._estimated_current_price(query)

        self._price_cache.set(key, price_info.model_copy(deep=True))
        logger.info(
            "Resolved current price",
            product=query.name,
            source=price_info.source,
            price=price_info.current,
        )
        return price_info

    async def _official_price(self, query: ProductQuery) -> PriceInfo | None:
        records = await self._fetch_current_prices(query.location)
        match = find_matching_record(records, query)
        if match is None or not self.source.validate_data_freshness(match):
            return None
        try:
            return self._finalize(record_to_price_info(match))
        except ValidationError as e:
            logger.warning("Official price failed validation", product=query.name, errors=e.errors)
            return None

    async def _estimated_current_price(self, query: ProductQuery) -> PriceInfo:
        now = datetime.now(UTC)
        try:
            estimate = await self.estimate_price(query)
            return self._finalize(
                estimate_to_price_info(
                    estimate,
                    confidence_factor=FALLBACK_CONFIDENCE_FACTOR,
                    last_updated=now,
                )
            )
        except (EstimationExhaustedError, ValidationError) as e:
            logger.warning(
                "Estimate unusable, serving category baseline",
                product=query.name,
                error=e.message,
            )

        baseline = estimate_from_category(query.category, now)
        return self._finalize(estimate_to_price_info(baseline))

    async def get_price_history(self, query: ProductQuery, days: int) -> PriceHistory:
        """Historical series for ``query`` with trend and volatility.

        Raises:
            ValidationError: If ``query`` is malformed or ``days`` is not in
                [1, 365].
        """
        ensure_valid_query(query)
        ensure_valid_history_days(days)

        points = await self._fetch_history(query, days)
        history = PriceHistory(
            product_key=f"{query.name}-{query.category}",
            location=query.location,
            points=points,
            trend=calculate_trend(points),
            volatility=calculate_volatility(points),
        )
        logger.info(
            "Retrieved price history",
            product=query.name,
            points=len(points),
            trend=history.trend,
            volatility=history.volatility,
        )
        return history

    async def estimate_price(self, query: ProductQuery) -> EstimatedPrice:
        """Estimate a price when no authoritative reading exists.

        Tiers, in order: AI estimator, statistical estimate (only with
        history), category baseline. The first tier whose result passes
        validation wins.

        Raises:
            ValidationError: If ``query`` is malformed.
            EstimationExhaustedError: If every tier failed.
        """
        ensure_valid_query(query)

        history = await self._fetch_history(query, self.estimation_history_days)
        context = build_market_context(query.category, history)

        tiers: list[tuple[str, Callable[[], Awaitable[EstimatedPrice]]]] = []
        if self.ai is not None:
            ai = self.ai
            tiers.append(("ai", lambda: ai.estimate_price_with_ai(query, history, context)))
        if history:
            tiers.append(("statistical", lambda: _resolved(estimate_from_history(history))))
        tiers.append(
            ("category_baseline", lambda: _resolved(estimate_from_category(query.category)))
        )

        for tier, estimate in tiers:
            try:
                result = self._finalize(await estimate())
            except (AIError, ValidationError, PydanticValidationError) as e:
                logger.warning(
                    "Estimation tier failed, falling back",
                    tier=tier,
                    product=query.name,
                    error=str(e),
                )
                continue
            logger.info(
                "Estimated price",
                product=query.name,
                tier=tier,
                price=result.current,
                confidence=result.confidence,
                method=result.estimation_method,
            )
            return result

        msg = f"Every estimation tier failed for {query.name}"
        raise EstimationExhaustedError(msg)

    async def get_market_sentiment(self, query: ProductQuery) -> MarketSentiment:
        """Market sentiment from the AI estimator, or statistics on failure.

        Raises:
            ValidationError: If ``query`` is malformed.
            EstimationExhaustedError: If neither AI nor statistics produced a
                sentiment.
        """
        history = await self.get_price_history(query, self.sentiment_history_days)

        if self.ai is not None:
            factors = detect_external_factors(query.category, history)
            try:
                return await self.ai.generate_market_sentiment(query, history.points, factors)
            except AIError as e:
                logger.warning(
                    "AI sentiment analysis failed, using statistical method",
                    product=query.name,
                    error=str(e),
                )

        try:
            return statistical_sentiment(query, history)
        except PydanticValidationError as e:
            msg = f"Sentiment analysis failed for {query.name}"
            raise EstimationExhaustedError(msg) from e

    async def analyze_market_trends(
        self, query: ProductQuery, days: int | None = None
    ) -> TrendAnalysis:
        """Trend classification with a predicted direction.

        Raises:
            ValidationError: If ``query`` or ``days`` is invalid.
        """
        history = await self.get_price_history(query, days or self.estimation_history_days)

        if self.ai is not None:
            try:
                return await self.ai.analyze_market_trends(query, history.points)
            except AIError as e:
                logger.warning(
                    "AI trend analysis failed, using statistical method",
                    product=query.name,
                    error=str(e),
                )
        return analyze_trend(history.points, query.category)

    def validate_price_data(self, price: PriceInfo) -> bool:
        """Whether ``price`` satisfies every PriceInfo invariant."""
        return validate_price_data(price).is_valid


async def _resolved[T](value: T) -> T:
    return value
