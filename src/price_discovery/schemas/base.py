"""Base schema configuration for all Pydantic models.

Usage:
    - DomainModel: Values produced and returned by this subsystem
    - RecordModel: Immutable observations (raw prices, historical points)
    - DownstreamResponse: Payloads received from external services
    - UtcDatetime: Datetime field type that is always timezone-aware
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; aware values pass through unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]
"""Timezone-aware datetime field. Naive input is read as UTC."""


class _BaseSchema(BaseModel):
    """Private base schema with common configuration.

    Do not use directly - inherit from one of the public subclasses.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,  # Accept both snake_case and camelCase
        use_enum_values=True,
        validate_default=True,
        serialize_by_alias=True,
    )


class DomainModel(_BaseSchema):
    """Base class for computed values handed back to callers.

    Extra fields are forbidden - we only return what the model declares.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class RecordModel(_BaseSchema):
    """Base class for observations that never change once created."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class DownstreamResponse(_BaseSchema):
    """Base class for responses received from external services.

    Extra fields are ignored - upstream services may add properties.
    """

    model_config = ConfigDict(extra="ignore")
