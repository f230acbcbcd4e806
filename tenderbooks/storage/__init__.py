"""Mini README: Storage collaborators for the ledger service.

The package is divided into ``base`` for the abstract repository,
``registry`` for backend discovery, and concrete backends (``memory``,
``json_file``) that register themselves on import.
"""

from .base import LedgerRepository
from .registry import REGISTRY, StorageBackendRegistry
from .memory import DEMO_TENDER_ID, InMemoryLedgerRepository
from .json_file import JsonFileLedgerRepository

__all__ = [
    "DEMO_TENDER_ID",
    "InMemoryLedgerRepository",
    "JsonFileLedgerRepository",
    "LedgerRepository",
    "REGISTRY",
    "StorageBackendRegistry",
]
