from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import timedelta

import pytest

from helpers import BASE_TIME, FlakyPersistence
from platenotify.exceptions import (
    DuplicatePlateError,
    PersistenceError,
    PlateNotFoundError,
    PlateValidationError,
    StaleTimestampError,
)
from platenotify.models.plate import PlateRecord, PlateUpdate
from platenotify.persistence.memory import MemoryPersistence
from platenotify.registry.store import PlateRegistry


def _record(plate: str = "ABC123", name: str = "Emma Johnson") -> PlateRecord:
    return PlateRecord(plate_number=plate, child_name=name)


@pytest.mark.asyncio
async def test_add_then_duplicate_fails_without_changing_size() -> None:
    registry = PlateRegistry(MemoryPersistence())
    await registry.add("ABC123", "Emma Johnson")

    with pytest.raises(DuplicatePlateError):
        await registry.add(" abc-123 ", "Someone Else")

    assert len(registry) == 1
    record = registry.find("ABC123")
    assert record is not None
    assert record.child_name == "Emma Johnson"


@pytest.mark.asyncio
async def test_add_persists_and_starts_without_arrival() -> None:
    persistence = MemoryPersistence()
    registry = PlateRegistry(persistence)

    record = await registry.add("xyz789", "Noah Williams", notes="Side gate")

    assert record.plate_number == "XYZ789"
    assert record.last_arrival is None
    assert await persistence.load() == [record]


@pytest.mark.asyncio
async def test_add_rejects_blank_child_name() -> None:
    registry = PlateRegistry(MemoryPersistence())
    with pytest.raises(PlateValidationError):
        await registry.add("ABC123", "  ")
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_update_fields_merges_and_keeps_last_arrival() -> None:
    registry = PlateRegistry(MemoryPersistence(), [_record()])
    await registry.record_arrival("ABC123", BASE_TIME)

    updated = await registry.update_fields("abc123", {"notes": "Pickup at east entrance"})
    assert updated.notes == "Pickup at east entrance"
    assert updated.child_name == "Emma Johnson"
    assert updated.last_arrival == BASE_TIME

    cleared = await registry.update_fields("ABC123", PlateUpdate(notes=None))
    assert cleared.notes is None


@pytest.mark.asyncio
async def test_update_and_remove_unknown_plate() -> None:
    registry = PlateRegistry(MemoryPersistence())
    with pytest.raises(PlateNotFoundError):
        await registry.update_fields("NOPE1", {"childName": "X"})
    with pytest.raises(PlateNotFoundError):
        await registry.remove("NOPE1")


@pytest.mark.asyncio
async def test_remove_deletes_and_persists() -> None:
    persistence = MemoryPersistence()
    registry = PlateRegistry(persistence, [_record(), _record("XYZ789", "Noah Williams")])

    removed = await registry.remove("xyz-789")

    assert removed.plate_number == "XYZ789"
    assert registry.find("XYZ789") is None
    assert [r.plate_number for r in await persistence.load()] == ["ABC123"]


@pytest.mark.asyncio
async def test_record_arrival_only_moves_forward() -> None:
    registry = PlateRegistry(MemoryPersistence(), [_record()])

    first = await registry.record_arrival("ABC123", BASE_TIME)
    assert first.last_arrival == BASE_TIME

    with pytest.raises(StaleTimestampError):
        await registry.record_arrival("ABC123", BASE_TIME - timedelta(seconds=5))
    with pytest.raises(StaleTimestampError):
        await registry.record_arrival("ABC123", BASE_TIME)

    later = await registry.record_arrival("ABC123", BASE_TIME + timedelta(minutes=1))
    assert later.last_arrival == BASE_TIME + timedelta(minutes=1)


@pytest.mark.asyncio
async def test_record_arrival_unknown_plate() -> None:
    registry = PlateRegistry(MemoryPersistence())
    with pytest.raises(PlateNotFoundError):
        await registry.record_arrival("ZZZ999", BASE_TIME)


@pytest.mark.asyncio
async def test_persistence_failure_rolls_back_every_mutation() -> None:
    persistence = FlakyPersistence()
    registry = PlateRegistry(persistence, [_record()])
    persistence.fail = True

    with pytest.raises(PersistenceError):
        await registry.add("XYZ789", "Noah Williams")
    with pytest.raises(PersistenceError):
        await registry.update_fields("ABC123", {"childName": "Changed"})
    with pytest.raises(PersistenceError):
        await registry.record_arrival("ABC123", BASE_TIME)
    with pytest.raises(PersistenceError):
        await registry.remove("ABC123")

    assert registry.list_records() == [_record()]


@pytest.mark.asyncio
async def test_unexpected_adapter_error_is_wrapped() -> None:
    class _BrokenPersistence(MemoryPersistence):
        async def save(self, records: Sequence[PlateRecord]) -> None:
            raise OSError("read-only file system")

    registry = PlateRegistry(_BrokenPersistence())
    with pytest.raises(PersistenceError):
        await registry.add("ABC123", "Emma Johnson")
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_concurrent_arrivals_for_same_plate_do_not_interleave() -> None:
    class _SlowPersistence(MemoryPersistence):
        def __init__(self) -> None:
            super().__init__()
            self.active = 0
            self.max_active = 0

        async def save(self, records: Sequence[PlateRecord]) -> None:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            await asyncio.sleep(0.01)
            self.active -= 1
            await super().save(records)

    persistence = _SlowPersistence()
    registry = PlateRegistry(persistence, [_record()])
    later = BASE_TIME + timedelta(seconds=1)

    results = await asyncio.gather(
        registry.record_arrival("ABC123", BASE_TIME),
        registry.record_arrival("ABC123", later),
        return_exceptions=True,
    )

    assert persistence.max_active == 1
    assert results[0].last_arrival == BASE_TIME  # type: ignore[union-attr]
    assert results[1].last_arrival == later  # type: ignore[union-attr]
    record = registry.find("ABC123")
    assert record is not None
    assert record.last_arrival == later


@pytest.mark.asyncio
async def test_second_concurrent_call_observes_first_result() -> None:
    registry = PlateRegistry(MemoryPersistence(), [_record()])

    results = await asyncio.gather(
        registry.record_arrival("ABC123", BASE_TIME),
        registry.record_arrival("ABC123", BASE_TIME),
        return_exceptions=True,
    )

    assert isinstance(results[0], PlateRecord)
    assert isinstance(results[1], StaleTimestampError)


@pytest.mark.asyncio
async def test_open_uses_stored_records() -> None:
    stored = [_record("XYZ789", "Noah Williams")]
    registry = await PlateRegistry.open(MemoryPersistence(stored), seed=[_record()])
    assert registry.list_records() == stored


@pytest.mark.asyncio
async def test_open_seeds_empty_store_and_saves_it() -> None:
    persistence = MemoryPersistence()
    registry = await PlateRegistry.open(persistence, seed=[_record()])

    assert "abc123" in registry
    assert await persistence.load() == [_record()]


@pytest.mark.asyncio
async def test_open_without_seed_starts_empty() -> None:
    persistence = MemoryPersistence()
    registry = await PlateRegistry.open(persistence)
    assert len(registry) == 0
    assert persistence.save_count == 0


def test_find_never_exposes_mutable_state() -> None:
    registry = PlateRegistry(MemoryPersistence(), [_record()])
    records = registry.list_records()
    records.clear()
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_latest_arrival_tracks_most_recent_record() -> None:
    registry = PlateRegistry(MemoryPersistence(), [_record(), _record("XYZ789", "Noah Williams")])
    assert registry.latest_arrival() is None

    await registry.record_arrival("XYZ789", BASE_TIME + timedelta(minutes=5))
    await registry.record_arrival("ABC123", BASE_TIME)

    latest = registry.latest_arrival()
    assert latest is not None
    assert latest.plate_number == "XYZ789"

    await registry.record_arrival("ABC123", BASE_TIME + timedelta(minutes=6))
    latest = registry.latest_arrival()
    assert latest is not None
    assert latest.plate_number == "ABC123"
