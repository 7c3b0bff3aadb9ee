from __future__ import annotations

from datetime import timedelta

import pytest

from helpers import BASE_TIME, FlakyPersistence, StepClock
from platenotify.bus import EventBus
from platenotify.models.arrival import ArrivalEvent, Matched, NotFound, Rejected, RejectCode
from platenotify.models.plate import PlateRecord
from platenotify.persistence.memory import MemoryPersistence
from platenotify.processor import ArrivalProcessor
from platenotify.registry.store import PlateRegistry


def _setup(
    records: list[PlateRecord] | None = None,
    *,
    clock: StepClock | None = None,
    persistence: MemoryPersistence | None = None,
) -> tuple[ArrivalProcessor, PlateRegistry, list[ArrivalEvent]]:
    if records is None:
        records = [PlateRecord(plate_number="ABC123", child_name="Emma Johnson")]
    registry = PlateRegistry(persistence or MemoryPersistence(), records)
    bus = EventBus()
    events: list[ArrivalEvent] = []
    bus.subscribe(events.append)
    return ArrivalProcessor(registry, bus, clock=clock or StepClock()), registry, events


@pytest.mark.asyncio
async def test_match_records_arrival_and_publishes_once() -> None:
    processor, registry, events = _setup()

    result = await processor.process("abc123")

    assert isinstance(result, Matched)
    assert result.record.plate_number == "ABC123"
    assert result.record.child_name == "Emma Johnson"
    assert result.record.last_arrival == BASE_TIME
    assert registry.find("ABC123") == result.record
    assert [(e.plate_number, e.occurred_at) for e in events] == [("ABC123", BASE_TIME)]


@pytest.mark.asyncio
async def test_unknown_plate_has_no_side_effects() -> None:
    persistence = MemoryPersistence()
    processor, registry, events = _setup([], persistence=persistence)

    result = await processor.process("ZZZ999")

    assert result == NotFound(plate_number="ZZZ999")
    assert registry.list_records() == []
    assert events == []
    assert persistence.save_count == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["abc123", " ABC123 ", "ABC123", "abc-123"])
async def test_format_variants_resolve_to_same_record(raw: str) -> None:
    processor, _registry, _events = _setup()
    result = await processor.process(raw)
    assert isinstance(result, Matched)
    assert result.record.plate_number == "ABC123"


@pytest.mark.asyncio
async def test_empty_plate_rejected() -> None:
    processor, _registry, events = _setup()
    result = await processor.process("  - ")
    assert isinstance(result, Rejected)
    assert result.reason == "empty plate number"
    assert result.code is RejectCode.EMPTY_PLATE
    assert events == []


@pytest.mark.asyncio
async def test_redelivery_with_advancing_clock_matches_twice() -> None:
    processor, _registry, events = _setup(clock=StepClock(timedelta(seconds=2)))

    first = await processor.process("ABC123")
    second = await processor.process("ABC123")

    assert isinstance(first, Matched) and isinstance(second, Matched)
    assert first.record.last_arrival is not None and second.record.last_arrival is not None
    assert second.record.last_arrival >= first.record.last_arrival
    assert len(events) == 2


@pytest.mark.asyncio
async def test_redelivery_without_clock_advance_is_absorbed() -> None:
    processor, registry, events = _setup(clock=StepClock(timedelta(0)))

    first = await processor.process("ABC123")
    second = await processor.process("abc123")

    assert isinstance(first, Matched) and isinstance(second, Matched)
    assert second.record == first.record
    assert len(events) == 1
    assert registry.find("ABC123") == first.record


@pytest.mark.asyncio
async def test_clock_regression_keeps_stored_arrival() -> None:
    clock = StepClock(timedelta(0))
    processor, _registry, events = _setup(clock=clock)

    await processor.process("ABC123")
    clock.now = BASE_TIME - timedelta(hours=1)
    result = await processor.process("ABC123")

    assert isinstance(result, Matched)
    assert result.record.last_arrival == BASE_TIME
    assert len(events) == 1


@pytest.mark.asyncio
async def test_persistence_failure_is_rejected_without_event() -> None:
    persistence = FlakyPersistence()
    processor, registry, events = _setup(persistence=persistence)
    persistence.fail = True

    result = await processor.process("ABC123")

    assert isinstance(result, Rejected)
    assert result.code is RejectCode.PERSISTENCE_ERROR
    assert "disk full" not in result.reason
    assert events == []
    record = registry.find("ABC123")
    assert record is not None and record.last_arrival is None


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_fail_processing() -> None:
    processor, _registry, events = _setup()
    # The healthy subscriber from _setup runs first; this one fails after it.
    processor._bus.subscribe(lambda _e: 1 / 0)  # type: ignore[attr-defined]

    result = await processor.process("ABC123")

    assert isinstance(result, Matched)
    assert len(events) == 1
