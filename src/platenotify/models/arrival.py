"""Arrival events and ingestion outcomes."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import Field

from platenotify.models._base import PlateBaseModel, UtcTimestamp
from platenotify.models.plate import PlateRecord

PLATE_DETECTED = "PLATE_DETECTED"


class ArrivalEvent(PlateBaseModel):
    """Published once per successful match, never for a miss."""

    plate_number: str
    child_name: str
    occurred_at: UtcTimestamp

    @classmethod
    def from_record(cls, record: PlateRecord) -> ArrivalEvent:
        if record.last_arrival is None:
            raise ValueError(f"record {record.plate_number} has no arrival to publish")
        return cls(
            plate_number=record.plate_number,
            child_name=record.child_name,
            occurred_at=record.last_arrival,
        )

    def to_message(self) -> dict[str, Any]:
        """The ``PLATE_DETECTED`` notification message for observers."""
        return PlateDetectedMessage(plate_number=self.plate_number).model_dump(by_alias=True)


class PlateDetectedMessage(PlateBaseModel):
    type: Literal["PLATE_DETECTED"] = PLATE_DETECTED
    plate_number: str


class RejectCode(StrEnum):
    EMPTY_PLATE = "EMPTY_PLATE"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"


class Matched(PlateBaseModel):
    kind: Literal["matched"] = "matched"
    record: PlateRecord


class NotFound(PlateBaseModel):
    kind: Literal["not_found"] = "not_found"
    plate_number: str


class Rejected(PlateBaseModel):
    kind: Literal["rejected"] = "rejected"
    reason: str
    code: RejectCode


IngestionResult = Annotated[Matched | NotFound | Rejected, Field(discriminator="kind")]
"""Uniform outcome of :meth:`ArrivalProcessor.process`."""
