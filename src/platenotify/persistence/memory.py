"""In-memory persistence, used for tests and ephemeral deployments."""

from __future__ import annotations

import copy
from collections.abc import Sequence
from typing import Any

from platenotify.models.plate import PlateRecord
from platenotify.persistence.base import dump_document, parse_document


class MemoryPersistence:
    """Keeps the serialized document in memory.

    Records go through the same storage layout as the file adapter so the
    round trip is identical.
    """

    def __init__(self, records: Sequence[PlateRecord] | None = None) -> None:
        self._document: dict[str, Any] | None = dump_document(records) if records else None
        self.save_count = 0

    async def load(self) -> list[PlateRecord]:
        if self._document is None:
            return []
        return parse_document(copy.deepcopy(self._document))

    async def save(self, records: Sequence[PlateRecord]) -> None:
        self._document = dump_document(records)
        self.save_count += 1
