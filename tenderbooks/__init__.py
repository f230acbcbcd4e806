"""Mini README: Core package initializer for tenderbooks.

tenderbooks keeps the books for construction tenders: staff advances and
expenses, vendor purchases and payments, and the mobile financial service
fees that sending money incurs. This module only re-exports the logging
helper so importing the package stays cheap.
"""

from .logging_utils import get_logger

__all__ = ["get_logger"]
