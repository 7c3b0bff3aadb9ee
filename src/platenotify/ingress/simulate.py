"""Direct-call transport used to simulate a car arriving."""

from __future__ import annotations

from platenotify.ingress.adapter import SUBMIT_METHOD, IngressAdapter, IngressResponse


async def simulate_arrival(adapter: IngressAdapter, plate_number: str) -> IngressResponse:
    """Submit *plate_number* as if a plate reader had reported it."""
    return await adapter.handle(SUBMIT_METHOD, {"plateNumber": plate_number})
