"""Mini README: Dynamic plugin loading helpers.

Structure:
    * load_entry_point_plugins - load entry point-based extensions.

Third-party packages can ship extra storage backends by exposing classes in
the ``tenderbooks.storage_backends`` entry point group; the storage registry
loads them on demand.
"""

from __future__ import annotations

from importlib.metadata import entry_points
from typing import List

from ..logging_utils import get_logger

LOGGER = get_logger(__name__)


def load_entry_point_plugins(group: str = "tenderbooks.storage_backends") -> List[object]:
    """Load and return the objects registered under an entry point group."""

    loaded_plugins: List[object] = []
    for entry_point in entry_points(group=group):
        try:
            plugin = entry_point.load()
        except (ImportError, AttributeError) as exc:
            LOGGER.exception("Failed to load plugin '%s': %s", entry_point.name, exc)
            continue
        loaded_plugins.append(plugin)
        LOGGER.info("Loaded plugin '%s'", entry_point.name)
    return loaded_plugins
