"""Price data schemas.

This module contains the query, observation and aggregated price types that
flow between the source client, the cache store and the engine.
"""

from __future__ import annotations

from pydantic import Field

from price_discovery.schemas.base import DomainModel, RecordModel, UtcDatetime
from price_discovery.schemas.enums import EstimationMethod, PriceSource, Trend


class ProductQuery(DomainModel):
    """A caller's request for price information about one product.

    Field bounds are enforced by ``validate_product_query`` so that callers
    receive a single ValidationError listing every problem.
    """

    name: str = Field(..., description="Product name, e.g. 'tomato'")
    category: str = Field(..., description="Product category, e.g. 'vegetables'")
    location: str = Field(..., description="Mandi location, e.g. 'delhi'")
    quantity: float = Field(..., description="Requested quantity")
    unit: str = Field(..., description="Unit of measurement, e.g. 'kg'")


class RawPriceRecord(RecordModel):
    """One observation as fetched from the market data provider."""

    product: str
    location: str
    price: float
    date: UtcDatetime
    source_tag: str = Field(..., description="Provider tag, e.g. 'government_api'")
    verified: bool = False


class HistoricalPoint(RecordModel):
    """One point of a price series. Series are ordered oldest to newest."""

    date: UtcDatetime
    price: float
    volume: float = 0
    location: str = ""


class PriceInfo(DomainModel):
    """Aggregated price view returned to callers."""

    current: float
    minimum: float
    maximum: float
    average: float
    confidence: float
    source: PriceSource
    last_updated: UtcDatetime


class EstimatedPrice(PriceInfo):
    """A PriceInfo produced by the estimator rather than read from a record."""

    estimation_method: EstimationMethod
    historical_basis: list[HistoricalPoint] = Field(default_factory=list)


class PriceHistory(DomainModel):
    """A historical series with its derived trend and volatility."""

    product_key: str
    location: str
    points: list[HistoricalPoint] = Field(default_factory=list)
    trend: Trend = Trend.STABLE
    volatility: float = Field(default=0.0, ge=0.0)
