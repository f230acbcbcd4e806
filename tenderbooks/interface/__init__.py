"""Mini README: Interactive interfaces (web/CLI) for tenderbooks.

Exports the FastAPI application factory that serves the bookkeeping API.
The command line entry point lives in ``main_ledger_centre.py`` at the
repository root.
"""

from .web_app import create_application

__all__ = ["create_application"]
