"""Envelope stored in the networked cache."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Generic, TypeVar

from pydantic import Field

from price_discovery.schemas.base import RecordModel, UtcDatetime


T = TypeVar("T")


class CacheEntry(RecordModel, Generic[T]):
    """A cached payload stamped with the time it was written.

    ``cached_at`` says when the entry was stored. Staleness of the payload is
    judged from the payload's own timestamps, never from this field.
    """

    payload: T
    cached_at: UtcDatetime = Field(default_factory=lambda: datetime.now(UTC))
