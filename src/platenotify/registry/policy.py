"""Arrival timestamp policy."""

from __future__ import annotations

from datetime import datetime


def advances_arrival(previous: datetime | None, incoming: datetime) -> bool:
    """Whether *incoming* may replace *previous* as ``last_arrival``.

    ``last_arrival`` only moves forward: an equal timestamp is a re-delivery
    of an arrival already recorded and does not advance it.
    """
    if previous is None:
        return True
    return incoming > previous
