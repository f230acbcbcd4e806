"""Mini README: Domain exceptions for the tenderbooks finance core.

Structure:
    * LedgerError - base class for every finance error.
    * InvalidAmount - negative, non-numeric or non-finite money input.
    * PersistenceFailure - a repository read or write did not complete.
    * PartialBatchFailure - a batch write stored only some of its rows.

The core never retries or masks these; callers decide how to surface them.
"""

from __future__ import annotations

from typing import Any, Sequence


class LedgerError(Exception):
    """Base exception for ledger and reconciliation errors."""


class InvalidAmount(LedgerError, ValueError):
    """Raised when an amount is negative, unparsable or not finite."""

    def __init__(self, value: object, reason: str = "amount must be a finite, non-negative number") -> None:
        self.value = value
        super().__init__(f"Invalid amount {value!r}: {reason}")


class PersistenceFailure(LedgerError):
    """Raised when the storage collaborator fails to fetch or write rows."""

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        self.detail = detail
        message = f"Persistence operation '{operation}' failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class PartialBatchFailure(PersistenceFailure):
    """Raised when a batch write stores some rows but not others.

    ``saved`` holds the records that were written, ``failed_positions`` the
    indexes (into the submitted batch) of rows that were not.
    """

    def __init__(
        self,
        operation: str,
        *,
        saved: Sequence[Any],
        failed_positions: Sequence[int],
        detail: str = "",
    ) -> None:
        self.saved = list(saved)
        self.failed_positions = list(failed_positions)
        summary = f"{len(self.saved)} saved, {len(self.failed_positions)} failed"
        super().__init__(operation, f"{summary}; {detail}" if detail else summary)
        self.reason = detail
