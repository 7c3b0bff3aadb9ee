"""Pydantic models for plate records, arrival events and ingestion outcomes."""

from platenotify.models.arrival import (
    PLATE_DETECTED,
    ArrivalEvent,
    IngestionResult,
    Matched,
    NotFound,
    PlateDetectedMessage,
    Rejected,
    RejectCode,
)
from platenotify.models.plate import PlateRecord, PlateUpdate

__all__ = [
    "PLATE_DETECTED",
    "ArrivalEvent",
    "IngestionResult",
    "Matched",
    "NotFound",
    "PlateDetectedMessage",
    "PlateRecord",
    "PlateUpdate",
    "RejectCode",
    "Rejected",
]
