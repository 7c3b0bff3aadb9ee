"""Custom exception hierarchy for platenotify."""

from __future__ import annotations


class PlateNotifyError(Exception):
    """Base exception for all platenotify errors."""


class PlateNotifyConfigError(PlateNotifyError):
    """Invalid or missing configuration."""


class PlateValidationError(PlateNotifyError):
    """Malformed or missing input (never retryable)."""


class MethodNotAllowedError(PlateNotifyError):
    """Transport used with a method other than the submission method."""

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Method {method!r} not allowed")


class PlateNotFoundError(PlateNotifyError):
    """No record exists for the normalized plate number.

    This is an expected steady-state outcome, not a fault.
    """

    def __init__(self, plate_number: str) -> None:
        self.plate_number = plate_number
        super().__init__(f"Plate {plate_number} not found")


class RegistryConflictError(PlateNotifyError):
    """A registry mutation conflicts with the stored state."""


class DuplicatePlateError(RegistryConflictError):
    """A record for the normalized plate number already exists."""

    def __init__(self, plate_number: str) -> None:
        self.plate_number = plate_number
        super().__init__(f"Plate {plate_number} already exists")


class StaleTimestampError(RegistryConflictError):
    """An arrival timestamp does not advance the stored ``last_arrival``.

    Raised for clock regressions and for re-delivered arrivals.
    """

    def __init__(self, plate_number: str, *, previous: object, attempted: object) -> None:
        self.plate_number = plate_number
        self.previous = previous
        self.attempted = attempted
        super().__init__(f"Arrival for {plate_number} at {attempted} does not advance {previous}")


class PersistenceError(PlateNotifyError):
    """The storage layer failed to load or save the registry."""
