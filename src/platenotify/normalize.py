"""Plate number normalization.

Every path that takes a plate number from outside (ingestion, registry
administration, stored data) runs it through :func:`normalize_plate_number`
so the registry key is canonical. The function is idempotent.
"""

from __future__ import annotations

import re
from typing import Any

from platenotify.exceptions import PlateValidationError

# Whitespace plus the separators plate readers and humans insert
# ("AB-123", "AB 123", "AB.123", "AB·123", "AB_123").
_SEPARATORS = re.compile(r"[\s\-_.·]+")


def normalize_plate_number(value: Any) -> str:
    """Return the canonical registry key for *value*.

    Trims, uppercases and removes internal whitespace and separators.

    Raises
    ------
    PlateValidationError
        If *value* is not a string or is empty after normalization.
    """
    if not isinstance(value, str):
        raise PlateValidationError(f"plate number must be a string, got {type(value).__name__}")
    normalized = _SEPARATORS.sub("", value.strip().upper())
    if not normalized:
        raise PlateValidationError("empty plate number")
    return normalized


def try_normalize_plate_number(value: Any) -> str | None:
    """Like :func:`normalize_plate_number` but returns ``None`` on invalid input."""
    try:
        return normalize_plate_number(value)
    except PlateValidationError:
        return None
