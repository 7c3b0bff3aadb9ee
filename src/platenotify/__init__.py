"""platenotify - Notify staff when a registered vehicle plate arrives."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("platenotify")
except PackageNotFoundError:
    __version__ = "0+local"
from platenotify.app import PlateNotifyApp
from platenotify.bus import EventBus, SubscriptionToken
from platenotify.config import PlateNotifyConfig
from platenotify.exceptions import (
    DuplicatePlateError,
    MethodNotAllowedError,
    PersistenceError,
    PlateNotFoundError,
    PlateNotifyConfigError,
    PlateNotifyError,
    PlateValidationError,
    RegistryConflictError,
    StaleTimestampError,
)
from platenotify.ingress import IngressAdapter, IngressResponse, StatusCategory
from platenotify.models import (
    ArrivalEvent,
    IngestionResult,
    Matched,
    NotFound,
    PlateRecord,
    PlateUpdate,
    Rejected,
)
from platenotify.normalize import normalize_plate_number
from platenotify.persistence import JsonFilePersistence, MemoryPersistence, PersistenceAdapter
from platenotify.processor import ArrivalProcessor
from platenotify.registry import PlateRegistry

__all__ = [
    "__version__",
    "ArrivalEvent",
    "ArrivalProcessor",
    "DuplicatePlateError",
    "EventBus",
    "IngestionResult",
    "IngressAdapter",
    "IngressResponse",
    "JsonFilePersistence",
    "Matched",
    "MemoryPersistence",
    "MethodNotAllowedError",
    "NotFound",
    "PersistenceAdapter",
    "PersistenceError",
    "PlateNotFoundError",
    "PlateNotifyApp",
    "PlateNotifyConfig",
    "PlateNotifyConfigError",
    "PlateNotifyError",
    "PlateRecord",
    "PlateRegistry",
    "PlateUpdate",
    "PlateValidationError",
    "Rejected",
    "RegistryConflictError",
    "StaleTimestampError",
    "StatusCategory",
    "SubscriptionToken",
    "normalize_plate_number",
]
