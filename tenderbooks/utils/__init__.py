"""Mini README: Utility helper functions for tenderbooks.

Exports the calendar date parser used across records and the web layer,
and the entry point loader the storage registry uses to discover plugins.
"""

from .dates import parse_date
from .plugin_loader import load_entry_point_plugins

__all__ = ["load_entry_point_plugins", "parse_date"]
