"""Transport-agnostic ingress boundary.

Every transport (HTTP, MQTT, in-process channel, simulation) reduces its
request to ``handle(method, body)`` and renders the returned
:class:`IngressResponse` in its own terms. This is the only layer that
turns processing outcomes into status categories and user-facing text.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from platenotify.exceptions import (
    MethodNotAllowedError,
    PersistenceError,
    PlateNotFoundError,
    PlateValidationError,
    RegistryConflictError,
)
from platenotify.models._base import format_timestamp
from platenotify.models.arrival import IngestionResult, Matched, NotFound, Rejected
from platenotify.normalize import try_normalize_plate_number
from platenotify.processor import ArrivalProcessor

_logger = logging.getLogger(__name__)

SUBMIT_METHOD = "POST"
PREFLIGHT_METHOD = "OPTIONS"

MSG_MISSING_PLATE = "Missing plateNumber in request body"
MSG_INVALID_PLATE = "Invalid plateNumber in request body"
MSG_MALFORMED_BODY = "Request body must be a JSON object"
MSG_METHOD_NOT_ALLOWED = "Method not allowed. Use POST."
MSG_INTERNAL_ERROR = "Internal server error"


class StatusCategory(StrEnum):
    OK = "ok"
    BAD_REQUEST = "bad_request"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL_ERROR = "internal_error"


class IngressResponse(BaseModel):
    """Transport-neutral response: a status category plus a JSON payload."""

    model_config = ConfigDict(frozen=True)

    status: StatusCategory
    payload: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        """True for acknowledgements that carry no body (preflight)."""
        return not self.payload

    @classmethod
    def failure(cls, status: StatusCategory, message: str, *, error: str | None = None) -> IngressResponse:
        payload: dict[str, Any] = {"success": False, "message": message}
        if error is not None:
            payload["error"] = error
        return cls(status=status, payload=payload)


def error_response(exc: Exception) -> IngressResponse:
    """Translate a core exception into an :class:`IngressResponse`.

    Internal failures are logged with their cause and reported with a
    generic code only.
    """
    if isinstance(exc, PlateValidationError):
        return IngressResponse.failure(StatusCategory.BAD_REQUEST, str(exc))
    if isinstance(exc, MethodNotAllowedError):
        return IngressResponse.failure(StatusCategory.METHOD_NOT_ALLOWED, MSG_METHOD_NOT_ALLOWED)
    if isinstance(exc, PlateNotFoundError):
        return IngressResponse.failure(
            StatusCategory.NOT_FOUND,
            f"Plate {exc.plate_number} not found in system",
        )
    if isinstance(exc, RegistryConflictError):
        return IngressResponse.failure(StatusCategory.CONFLICT, str(exc), error="CONFLICT")
    if isinstance(exc, PersistenceError):
        _logger.error("Persistence failure", exc_info=exc)
        return IngressResponse.failure(StatusCategory.INTERNAL_ERROR, MSG_INTERNAL_ERROR, error="PERSISTENCE_ERROR")
    _logger.error("Unexpected ingress failure", exc_info=exc)
    return IngressResponse.failure(StatusCategory.INTERNAL_ERROR, MSG_INTERNAL_ERROR, error="INTERNAL_ERROR")


def parse_body(body: Any) -> Mapping[str, Any]:
    """Decode a request body into a mapping.

    Accepts an already-parsed mapping, JSON text or JSON bytes. ``None``
    and empty text decode to an empty mapping.
    """
    if body is None:
        return {}
    if isinstance(body, Mapping):
        return body
    if isinstance(body, bytes | bytearray):
        try:
            body = bytes(body).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise PlateValidationError(MSG_MALFORMED_BODY) from exc
    if isinstance(body, str):
        if not body.strip():
            return {}
        try:
            decoded = json.loads(body)
        except json.JSONDecodeError as exc:
            raise PlateValidationError(MSG_MALFORMED_BODY) from exc
        if isinstance(decoded, dict):
            return decoded
    raise PlateValidationError(MSG_MALFORMED_BODY)


def extract_plate_number(data: Mapping[str, Any]) -> str:
    value = data.get("plateNumber")
    if value is None or value == "":
        raise PlateValidationError(MSG_MISSING_PLATE)
    if try_normalize_plate_number(value) is None:
        raise PlateValidationError(MSG_INVALID_PLATE)
    return value


def render_result(result: IngestionResult) -> IngressResponse:
    if isinstance(result, Matched):
        record = result.record
        timestamp = format_timestamp(record.last_arrival) if record.last_arrival is not None else None
        return IngressResponse(
            status=StatusCategory.OK,
            payload={
                "success": True,
                "message": f"Plate {record.plate_number} recognized",
                "data": {
                    "plateNumber": record.plate_number,
                    "childName": record.child_name,
                    "timestamp": timestamp,
                },
            },
        )
    if isinstance(result, NotFound):
        return error_response(PlateNotFoundError(result.plate_number))
    if isinstance(result, Rejected):
        _logger.warning("Plate submission rejected: %s", result.reason)
        return IngressResponse.failure(StatusCategory.INTERNAL_ERROR, MSG_INTERNAL_ERROR, error=result.code.value)
    raise TypeError(f"Unknown ingestion result {result!r}")


class IngressAdapter:
    """Single entry point shared by all plate transports."""

    def __init__(self, processor: ArrivalProcessor) -> None:
        self._processor = processor

    async def handle(self, method: str, body: Any = None) -> IngressResponse:
        verb = method.strip().upper()
        if verb == PREFLIGHT_METHOD:
            return IngressResponse(status=StatusCategory.OK)
        if verb != SUBMIT_METHOD:
            _logger.debug("Rejecting %s submission", verb)
            return error_response(MethodNotAllowedError(verb))

        try:
            plate_number = extract_plate_number(parse_body(body))
        except PlateValidationError as exc:
            return error_response(exc)

        try:
            result = await self._processor.process(plate_number)
        except Exception as exc:
            return error_response(exc)
        return render_result(result)
