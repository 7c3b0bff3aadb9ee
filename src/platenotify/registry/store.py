"""Serialized, persistence-backed plate registry."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from platenotify.exceptions import (
    DuplicatePlateError,
    PersistenceError,
    PlateNotFoundError,
    PlateValidationError,
    StaleTimestampError,
)
from platenotify.models._base import ensure_utc
from platenotify.models.plate import PlateRecord, PlateUpdate
from platenotify.normalize import normalize_plate_number
from platenotify.persistence.base import PersistenceAdapter
from platenotify.registry.policy import advances_arrival

_logger = logging.getLogger(__name__)

_Records = dict[str, PlateRecord]


def _validation_error(exc: ValidationError) -> PlateValidationError:
    first = exc.errors()[0] if exc.error_count() else {}
    message = str(first.get("msg", exc))
    return PlateValidationError(message)


class PlateRegistry:
    """Owner of all plate records.

    Mutations run one at a time under a single lock, so two concurrent
    mutations of the same plate can never interleave and the second one
    starts from the first one's result. Each mutation is applied to a copy
    of the record map, saved through the persistence adapter, and only then
    swapped in; a failed save leaves the in-memory state untouched.

    Reads never wait on the lock and return immutable records.
    """

    def __init__(self, persistence: PersistenceAdapter, records: Iterable[PlateRecord] = ()) -> None:
        self._persistence = persistence
        self._records: _Records = {}
        for record in records:
            if record.plate_number in self._records:
                raise DuplicatePlateError(record.plate_number)
            self._records[record.plate_number] = record
        self._lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        persistence: PersistenceAdapter,
        *,
        seed: Iterable[PlateRecord] | None = None,
    ) -> PlateRegistry:
        """Load the registry from *persistence*.

        When nothing is stored and *seed* is given, the seed records are
        used and saved immediately so memory and storage agree.
        """
        records = await persistence.load()
        if records or seed is None:
            _logger.debug("Registry opened with %d stored record(s)", len(records))
            return cls(persistence, records)

        registry = cls(persistence, seed)
        _logger.info("Registry empty, seeding %d record(s)", len(registry))
        await registry._save(registry._records)
        return registry

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, plate_number: object) -> bool:
        try:
            return normalize_plate_number(plate_number) in self._records
        except PlateValidationError:
            return False

    def find(self, plate_number: str) -> PlateRecord | None:
        """Return the record for *plate_number*, or ``None``."""
        return self._records.get(normalize_plate_number(plate_number))

    def list_records(self) -> list[PlateRecord]:
        """Return all records. No order is guaranteed."""
        return list(self._records.values())

    def latest_arrival(self) -> PlateRecord | None:
        """Return the record with the most recent arrival, or ``None``."""
        latest: PlateRecord | None = None
        for record in self._records.values():
            if record.last_arrival is None:
                continue
            if latest is None or latest.last_arrival is None or record.last_arrival > latest.last_arrival:
                latest = record
        return latest

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add(self, plate_number: str, child_name: str, notes: str | None = None) -> PlateRecord:
        try:
            record = PlateRecord(plate_number=plate_number, child_name=child_name, notes=notes)
        except ValidationError as exc:
            raise _validation_error(exc) from exc

        async with self._lock:
            if record.plate_number in self._records:
                raise DuplicatePlateError(record.plate_number)
            await self._commit(record.plate_number, record)
        _logger.debug("Added plate %s", record.plate_number)
        return record

    async def update_fields(self, plate_number: str, update: PlateUpdate | Mapping[str, Any]) -> PlateRecord:
        """Merge the provided administrative fields into an existing record."""
        key = normalize_plate_number(plate_number)
        if not isinstance(update, PlateUpdate):
            try:
                update = PlateUpdate.model_validate(dict(update))
            except ValidationError as exc:
                raise _validation_error(exc) from exc

        async with self._lock:
            current = self._require(key)
            updated = current.model_copy(update=update.changes())
            await self._commit(key, updated)
        _logger.debug("Updated plate %s fields=%s", key, sorted(update.model_fields_set))
        return updated

    async def remove(self, plate_number: str) -> PlateRecord:
        key = normalize_plate_number(plate_number)
        async with self._lock:
            removed = self._require(key)
            await self._commit(key, None)
        _logger.debug("Removed plate %s", key)
        return removed

    async def record_arrival(self, plate_number: str, at: datetime) -> PlateRecord:
        """Set ``last_arrival`` to *at* and return the updated record.

        Raises
        ------
        PlateNotFoundError
            If the plate is not registered.
        StaleTimestampError
            If *at* does not advance the stored ``last_arrival``.
        PersistenceError
            If the change could not be saved; memory is left unchanged.
        """
        key = normalize_plate_number(plate_number)
        at = ensure_utc(at)
        async with self._lock:
            current = self._require(key)
            if not advances_arrival(current.last_arrival, at):
                raise StaleTimestampError(key, previous=current.last_arrival, attempted=at)
            updated = current.model_copy(update={"last_arrival": at})
            await self._commit(key, updated)
        return updated

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require(self, key: str) -> PlateRecord:
        record = self._records.get(key)
        if record is None:
            raise PlateNotFoundError(key)
        return record

    async def _commit(self, key: str, record: PlateRecord | None) -> None:
        """Save the map with *key* replaced (or removed), then swap it in.

        Must be called with the lock held.
        """
        staged = dict(self._records)
        if record is None:
            staged.pop(key, None)
        else:
            staged[key] = record
        await self._save(staged)
        self._records = staged

    async def _save(self, records: _Records) -> None:
        try:
            await self._persistence.save(list(records.values()))
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(f"Saving registry failed: {exc}") from exc

