"""Persistence adapter interface and storage layout helpers."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from pydantic import ValidationError

from platenotify.exceptions import PersistenceError
from platenotify.models.plate import PlateRecord

_logger = logging.getLogger(__name__)

#: Well-known key the record list is stored under.
STORAGE_KEY = "plates"


class PersistenceAdapter(Protocol):
    """Structural persistence interface consumed by :class:`PlateRegistry`.

    ``load`` returns an empty sequence when nothing is stored. ``save``
    replaces the whole stored set and raises :class:`PersistenceError`
    on failure. Retry policy, if any, belongs to the implementation.
    """

    async def load(self) -> list[PlateRecord]:
        ...

    async def save(self, records: Sequence[PlateRecord]) -> None:
        ...


def dump_document(records: Sequence[PlateRecord]) -> dict[str, Any]:
    """Build the persisted document ``{"plates": [...]}``."""
    return {STORAGE_KEY: [record.to_storage() for record in records]}


def parse_document(document: Any) -> list[PlateRecord]:
    """Parse a persisted document back into records.

    A bare list is accepted as well as the keyed layout. Records whose
    normalized plate number repeats an earlier entry are dropped with a
    warning so a damaged store cannot break uniqueness.
    """
    if isinstance(document, dict):
        items = document.get(STORAGE_KEY, [])
    else:
        items = document
    if not isinstance(items, list):
        raise PersistenceError(f"Stored {STORAGE_KEY!r} value is not a list")

    records: list[PlateRecord] = []
    seen: set[str] = set()
    for index, item in enumerate(items):
        try:
            record = PlateRecord.model_validate(item)
        except ValidationError as exc:
            raise PersistenceError(f"Stored record #{index} is invalid: {exc.error_count()} error(s)") from exc
        if record.plate_number in seen:
            _logger.warning("Dropping duplicate stored record for plate %s", record.plate_number)
            continue
        seen.add(record.plate_number)
        records.append(record)
    return records
