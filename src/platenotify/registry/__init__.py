"""Plate registry.

This package is the single source of truth for plate records. No other
component holds a mutable reference to a record; everything goes through
:class:`~platenotify.registry.store.PlateRegistry`.
"""

from platenotify.registry.store import PlateRegistry

__all__ = ["PlateRegistry"]
