"""Normalization of heterogeneous provider responses.

Government mandi feeds are inconsistent: the payload may be a bare array or be
wrapped under ``records`` or ``data``, prices arrive as numbers or as strings
such as ``"₹1,250"``, and field names vary between datasets. Everything here
maps those shapes onto the canonical record types. Unusable rows are dropped.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any

from price_discovery.core.exceptions import DataQualityError
from price_discovery.observability.logging import get_logger
from price_discovery.schemas.pricing import HistoricalPoint, RawPriceRecord
from price_discovery.sources.constants import GOVERNMENT_SOURCE_TAG


logger = get_logger(__name__)

_PRICE_NOISE = re.compile(r"[₹,\s]")
_WHITESPACE = re.compile(r"\s+")

_PRICE_FIELDS = ("price", "modal_price", "max_price")
_DATE_FIELDS = ("date", "arrival_date")
_VOLUME_FIELDS = ("quantity", "arrivals")
_PRODUCT_FIELDS = ("commodity", "product", "name")
_LOCATION_FIELDS = ("location", "market", "district")
_CATALOG_PRODUCT_FIELDS = ("product", "commodity", "name")

_DATE_FORMATS = ("%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d")


def normalize_identifier(value: str) -> str:
    """Provider identifier form: lower-cased, trimmed, spaces to hyphens."""
    return _WHITESPACE.sub("-", value.strip().lower())


def _first(record: dict[str, Any], fields: tuple[str, ...]) -> Any:
    for name in fields:
        value = record.get(name)
        if value not in (None, "", 0):
            return value
    return None


def extract_records(payload: Any) -> list[dict[str, Any]] | None:
    """Unwrap the row list from a response body.

    Returns:
        The list of row mappings, or None when the shape is unrecognized.
    """
    rows = payload
    if isinstance(payload, dict):
        rows = payload.get("records") or payload.get("data") or payload
    if not isinstance(rows, list):
        return None
    return [row for row in rows if isinstance(row, dict)]


def parse_price(value: Any) -> float:
    """Parse a price, returning 0.0 for anything unparseable."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(_PRICE_NOISE.sub("", value))
        except ValueError:
            return 0.0
    return 0.0


def require_positive_price(row: dict[str, Any]) -> float:
    """The row's price.

    Raises:
        DataQualityError: If the row carries no positive price.
    """
    price = parse_price(_first(row, _PRICE_FIELDS))
    if price <= 0:
        msg = f"Row has no usable price: {_first(row, _PRICE_FIELDS)!r}"
        raise DataQualityError(msg)
    return price


def parse_date(value: Any, *, now: datetime | None = None) -> datetime:
    """Parse a provider date, falling back to ``now`` when unparseable.

    Naive values are taken to be UTC.
    """
    fallback = now or datetime.now(UTC)
    parsed: datetime | None = None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            for fmt in _DATE_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)  # noqa: DTZ007
                    break
                except ValueError:
                    continue

    if parsed is None:
        return fallback
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def extract_product_name(record: dict[str, Any]) -> str:
    """Product name from whichever field the dataset uses."""
    value = _first(record, _PRODUCT_FIELDS)
    return str(value).strip() if value is not None else "Unknown"


def parse_current_prices(payload: Any, location: str) -> list[RawPriceRecord]:
    """Map a current-prices response onto verified RawPriceRecords.

    Rows without a positive price are dropped.
    """
    rows = extract_records(payload)
    if rows is None:
        logger.warning("Unexpected current prices response format", location=location)
        return []

    records: list[RawPriceRecord] = []
    for row in rows:
        try:
            price = require_positive_price(row)
        except DataQualityError as e:
            logger.debug("Skipping price row", location=location, error=e.message)
            continue
        records.append(
            RawPriceRecord(
                product=extract_product_name(row),
                location=location,
                price=price,
                date=parse_date(_first(row, _DATE_FIELDS)),
                source_tag=GOVERNMENT_SOURCE_TAG,
                verified=True,
            )
        )

    return records


def parse_historical_prices(payload: Any, location: str) -> list[HistoricalPoint]:
    """Map a historical-prices response onto points ordered oldest first."""
    rows = extract_records(payload)
    if rows is None:
        logger.warning("Unexpected historical response format", location=location)
        return []

    points: list[HistoricalPoint] = []
    for row in rows:
        try:
            price = require_positive_price(row)
        except DataQualityError as e:
            logger.debug("Skipping historical row", location=location, error=e.message)
            continue
        points.append(
            HistoricalPoint(
                date=parse_date(_first(row, _DATE_FIELDS)),
                price=price,
                volume=parse_price(_first(row, _VOLUME_FIELDS)),
                location=location,
            )
        )
    points.sort(key=lambda p: p.date)
    return points


def parse_catalog(payload: Any, fields: tuple[str, ...]) -> list[str]:
    """Extract a list of names from a catalog response.

    Rows may be plain strings or mappings carrying one of ``fields``.
    Duplicates are removed preserving order.
    """
    rows = payload
    if isinstance(payload, dict):
        rows = payload.get("records") or payload.get("data") or []
    if not isinstance(rows, list):
        return []

    names: list[str] = []
    for row in rows:
        value = row if isinstance(row, str) else None
        if isinstance(row, dict):
            value = _first(row, fields)
        if value is None:
            continue
        name = str(value).strip()
        if name and name not in names:
            names.append(name)
    return names


def parse_locations(payload: Any) -> list[str]:
    """Location names from a locations response."""
    return parse_catalog(payload, _LOCATION_FIELDS)


def parse_products(payload: Any) -> list[str]:
    """Product names from a products response."""
    return parse_catalog(payload, _CATALOG_PRODUCT_FIELDS)
