"""Base model and timestamp helpers shared by platenotify models.

Every model inherits from :class:`PlateBaseModel` which provides:

* ``alias_generator=to_camel`` so the camelCase wire keys
  (``plateNumber``, ``childName``, ...) map to snake_case fields.
* ``frozen=True`` so instances handed out by the registry are
  immutable copies.

Timestamps are always timezone-aware UTC datetimes internally and are
rendered on the wire as ISO-8601 with millisecond precision and a ``Z``
suffix (``2023-06-15T14:30:45.123Z``).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def format_timestamp(value: datetime) -> str:
    """Render *value* as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    text = ensure_utc(value).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def _parse_timestamp(value: Any) -> Any:
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        return ensure_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
    return value


UtcTimestamp = Annotated[
    datetime,
    BeforeValidator(_parse_timestamp),
    PlainSerializer(format_timestamp, return_type=str, when_used="json"),
]
"""Annotated datetime normalised to UTC and serialised with a ``Z`` suffix."""


class PlateBaseModel(BaseModel):
    """Base for platenotify models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
