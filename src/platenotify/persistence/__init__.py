"""Persistence adapters for the plate registry.

The registry consumes the :class:`PersistenceAdapter` protocol only; which
implementation backs it is chosen by the surrounding application.
"""

from platenotify.persistence.base import STORAGE_KEY, PersistenceAdapter
from platenotify.persistence.json_file import JsonFilePersistence
from platenotify.persistence.memory import MemoryPersistence

__all__ = ["STORAGE_KEY", "JsonFilePersistence", "MemoryPersistence", "PersistenceAdapter"]
