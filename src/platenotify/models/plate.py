"""Plate registry records."""

from __future__ import annotations

from pydantic import AliasChoices, ConfigDict, Field, field_validator

from platenotify.exceptions import PlateValidationError
from platenotify.models._base import PlateBaseModel, UtcTimestamp
from platenotify.normalize import normalize_plate_number


def _clean_child_name(value: str) -> str:
    name = value.strip()
    if not name:
        raise ValueError("childName must be non-empty")
    return name


def _clean_notes(value: str | None) -> str | None:
    if value is None:
        return None
    notes = value.strip()
    return notes or None


class PlateRecord(PlateBaseModel):
    """A stored association between a plate and the child it collects.

    ``plate_number`` is always the normalized registry key.
    ``last_arrival`` is absent until the first recorded arrival and only
    ever moves forward afterwards.
    """

    plate_number: str
    child_name: str
    notes: str | None = None
    last_arrival: UtcTimestamp | None = Field(
        default=None,
        # Stored data from older releases used "timestamp".
        validation_alias=AliasChoices("lastArrival", "last_arrival", "timestamp"),
        serialization_alias="lastArrival",
    )

    @field_validator("plate_number", mode="before")
    @classmethod
    def _normalize_plate(cls, value: object) -> str:
        try:
            return normalize_plate_number(value)
        except PlateValidationError as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("child_name")
    @classmethod
    def _validate_child_name(cls, value: str) -> str:
        return _clean_child_name(value)

    @field_validator("notes")
    @classmethod
    def _validate_notes(cls, value: str | None) -> str | None:
        return _clean_notes(value)

    def to_storage(self) -> dict[str, object]:
        """Serialize to the persisted ``{plateNumber, childName, notes?, lastArrival?}`` layout."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PlateUpdate(PlateBaseModel):
    """Partial update of a record's administrative fields.

    Only fields explicitly provided are applied; passing ``notes=None``
    clears the notes. ``last_arrival`` cannot be changed this way.
    """

    model_config = ConfigDict(extra="forbid")

    child_name: str | None = None
    notes: str | None = None

    @field_validator("child_name")
    @classmethod
    def _validate_child_name(cls, value: str | None) -> str | None:
        if value is None:
            raise ValueError("childName cannot be cleared")
        return _clean_child_name(value)

    @field_validator("notes")
    @classmethod
    def _validate_notes(cls, value: str | None) -> str | None:
        return _clean_notes(value)

    def changes(self) -> dict[str, object]:
        """Return ``{field_name: value}`` for the explicitly provided fields."""
        return {name: getattr(self, name) for name in self.model_fields_set}
