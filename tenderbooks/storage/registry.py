"""Mini README: Backend registry enabling pluggable ledger storage.

Structure:
    * StorageBackendRegistry - manages registration and instantiation of
      ``LedgerRepository`` implementations.

Built-in backends register themselves on import. Additional packages can
publish classes under the ``tenderbooks.storage_backends`` entry point group;
``discover_plugins`` loads and registers them.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, Optional, Type

from ..logging_utils import get_logger
from ..utils.plugin_loader import load_entry_point_plugins

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .base import LedgerRepository

LOGGER = get_logger(__name__)

PLUGIN_GROUP = "tenderbooks.storage_backends"


class StorageBackendRegistry:
    """Simple registry mapping backend identifiers to repository classes."""

    def __init__(self) -> None:
        self._backends: Dict[str, Type["LedgerRepository"]] = {}

    def register(self, backend: Type["LedgerRepository"]) -> None:
        """Register a repository class under its ``backend_name``."""

        identifier = backend.backend_name.lower()
        LOGGER.debug("Registering storage backend '%s'", identifier)
        self._backends[identifier] = backend

    def available_backends(self) -> Iterable[str]:
        """Return backend identifiers for display."""

        return sorted(self._backends.keys())

    def discover_plugins(self, group: str = PLUGIN_GROUP) -> int:
        """Register repository classes published through entry points."""

        from .base import LedgerRepository

        registered = 0
        for plugin in load_entry_point_plugins(group):
            if isinstance(plugin, type) and issubclass(plugin, LedgerRepository):
                self.register(plugin)
                registered += 1
            else:
                LOGGER.warning("Ignoring storage plugin %r: not a LedgerRepository subclass", plugin)
        return registered

    def create(self, identifier: str, *, data_directory: Optional[Path] = None) -> "LedgerRepository":
        """Instantiate the backend matching ``identifier``."""

        backend_cls = self._backends.get(identifier.lower())
        if backend_cls is None:
            self.discover_plugins()
            backend_cls = self._backends.get(identifier.lower())
        if backend_cls is None:
            raise KeyError(f"Unknown storage backend '{identifier}'")
        LOGGER.info("Creating storage backend '%s'", identifier)
        return backend_cls(data_directory=data_directory)


REGISTRY = StorageBackendRegistry()
