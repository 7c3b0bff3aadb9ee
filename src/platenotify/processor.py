"""Arrival ingestion: validate, look up, record, publish."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from platenotify.bus import EventBus
from platenotify.exceptions import PersistenceError, PlateNotFoundError, PlateValidationError, StaleTimestampError
from platenotify.models.arrival import ArrivalEvent, IngestionResult, Matched, NotFound, Rejected, RejectCode
from platenotify.normalize import normalize_plate_number
from platenotify.registry.store import PlateRegistry

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ArrivalProcessor:
    """Turn a reported plate number into an :data:`IngestionResult`.

    The processor knows nothing about transports and never formats
    user-facing text. A miss is side-effect free: no mutation, no event.
    Nothing is retried here; a persistence failure comes back as
    :class:`Rejected` and the caller decides whether to submit again.
    """

    def __init__(
        self,
        registry: PlateRegistry,
        bus: EventBus,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._registry = registry
        self._bus = bus
        self._clock = clock

    async def process(self, raw_plate_number: Any) -> IngestionResult:
        try:
            plate_number = normalize_plate_number(raw_plate_number)
        except PlateValidationError:
            return Rejected(reason="empty plate number", code=RejectCode.EMPTY_PLATE)

        if self._registry.find(plate_number) is None:
            _logger.debug("Plate %s not registered", plate_number)
            return NotFound(plate_number=plate_number)

        try:
            record = await self._registry.record_arrival(plate_number, self._clock())
        except PlateNotFoundError:
            # Removed while we waited for the registry lock.
            return NotFound(plate_number=plate_number)
        except StaleTimestampError:
            current = self._registry.find(plate_number)
            if current is None:
                return NotFound(plate_number=plate_number)
            _logger.debug("Re-delivered arrival for %s absorbed", plate_number)
            return Matched(record=current)
        except PersistenceError:
            _logger.warning("Recording arrival for %s failed", plate_number, exc_info=True)
            return Rejected(reason="persistence failure", code=RejectCode.PERSISTENCE_ERROR)

        self._bus.publish(ArrivalEvent.from_record(record))
        _logger.info("Plate %s arrived for %s", record.plate_number, record.child_name)
        return Matched(record=record)
