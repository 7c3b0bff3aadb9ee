"""JSON file persistence."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from platenotify.exceptions import PersistenceError
from platenotify.models.plate import PlateRecord
from platenotify.persistence.base import dump_document, parse_document

_logger = logging.getLogger(__name__)


class JsonFilePersistence:
    """Stores the registry as ``{"plates": [...]}`` in a single JSON file.

    Writes go to a temporary file in the same directory followed by an
    atomic ``os.replace`` so a failed save never leaves a truncated file.
    Blocking file I/O runs in a worker thread.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> list[PlateRecord]:
        document = await asyncio.to_thread(self._read)
        if document is None:
            return []
        records = parse_document(document)
        _logger.debug("Loaded %d plate record(s) from %s", len(records), self._path)
        return records

    async def save(self, records: Sequence[PlateRecord]) -> None:
        text = json.dumps(dump_document(records), indent=2)
        await asyncio.to_thread(self._write, text)
        _logger.debug("Saved %d plate record(s) to %s", len(records), self._path)

    def _read(self) -> Any:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceError(f"Cannot read {self._path}: {exc}") from exc
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Invalid JSON in {self._path}: {exc}") from exc

    def _write(self, text: str) -> None:
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(text)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceError(f"Cannot write {self._path}: {exc}") from exc
