from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from platenotify.exceptions import PersistenceError
from platenotify.models.plate import PlateRecord
from platenotify.persistence.memory import MemoryPersistence

BASE_TIME = datetime(2026, 1, 1, 8, 0, tzinfo=UTC)


class StepClock:
    """Clock returning BASE_TIME, then advancing by *step* on every call."""

    def __init__(self, step: timedelta = timedelta(seconds=1), start: datetime = BASE_TIME) -> None:
        self.now = start
        self._step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self._step
        return current


class FlakyPersistence(MemoryPersistence):
    """Memory persistence whose saves fail while ``fail`` is set."""

    def __init__(self, records: Sequence[PlateRecord] | None = None) -> None:
        super().__init__(records)
        self.fail = False

    async def save(self, records: Sequence[PlateRecord]) -> None:
        if self.fail:
            raise PersistenceError("disk full at /var/lib/platenotify/plates.json")
        await super().save(records)
