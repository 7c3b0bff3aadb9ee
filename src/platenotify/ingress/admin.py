"""Registry administration through the ingress status taxonomy."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from platenotify.exceptions import PlateValidationError
from platenotify.ingress.adapter import IngressResponse, StatusCategory, error_response, parse_body
from platenotify.models.plate import PlateRecord
from platenotify.registry.store import PlateRegistry

_logger = logging.getLogger(__name__)


def _record_payload(record: PlateRecord, message: str) -> dict[str, Any]:
    return {"success": True, "message": message, "data": record.to_storage()}


class AdminAdapter:
    """Administrative counterpart of :class:`IngressAdapter`.

    Duplicate keys come back as ``CONFLICT``, unknown plates as
    ``NOT_FOUND``, and storage failures as ``INTERNAL_ERROR``.
    """

    def __init__(self, registry: PlateRegistry) -> None:
        self._registry = registry

    def list_plates(self) -> IngressResponse:
        records = sorted(self._registry.list_records(), key=lambda r: r.plate_number)
        return IngressResponse(
            status=StatusCategory.OK,
            payload={"success": True, "plates": [record.to_storage() for record in records]},
        )

    def latest_arrival(self) -> IngressResponse:
        record = self._registry.latest_arrival()
        if record is None:
            return IngressResponse.failure(StatusCategory.NOT_FOUND, "No arrivals recorded")
        return IngressResponse(
            status=StatusCategory.OK,
            payload=_record_payload(record, f"Latest arrival {record.plate_number}"),
        )

    async def add(self, body: Any) -> IngressResponse:
        try:
            data = parse_body(body)
            plate_number = data.get("plateNumber")
            child_name = data.get("childName")
            if not isinstance(plate_number, str) or not isinstance(child_name, str):
                raise PlateValidationError("plateNumber and childName are required")
            notes = data.get("notes")
            if notes is not None and not isinstance(notes, str):
                raise PlateValidationError("notes must be a string")
            record = await self._registry.add(plate_number, child_name, notes)
        except Exception as exc:
            return error_response(exc)
        _logger.info("Admin added plate %s", record.plate_number)
        return IngressResponse(
            status=StatusCategory.OK,
            payload=_record_payload(record, f"Added plate {record.plate_number}"),
        )

    async def update(self, plate_number: str, body: Any) -> IngressResponse:
        try:
            data: Mapping[str, Any] = parse_body(body)
            record = await self._registry.update_fields(plate_number, data)
        except Exception as exc:
            return error_response(exc)
        return IngressResponse(
            status=StatusCategory.OK,
            payload=_record_payload(record, f"Updated plate {record.plate_number}"),
        )

    async def remove(self, plate_number: str) -> IngressResponse:
        try:
            record = await self._registry.remove(plate_number)
        except Exception as exc:
            return error_response(exc)
        _logger.info("Admin removed plate %s", record.plate_number)
        return IngressResponse(
            status=StatusCategory.OK,
            payload=_record_payload(record, f"Deleted plate {record.plate_number}"),
        )
