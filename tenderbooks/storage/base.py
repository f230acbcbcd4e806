"""Mini README: Abstract storage collaborator for the ledger service.

Structure:
    * LedgerRepository - base class exposing the reads and writes the
      ledger pipeline needs, implemented on top of two table primitives.

Backends implement ``select_rows`` and ``insert_rows`` against tables named
after the hosted database (``person_advances``, ``person_expenses``,
``activity_expenses``, ``vendor_purchases``, ``material_purchases``,
``vendor_payments``, ``profiles``, ``persons``, ``vendors``,
``tender_assignments``). The base class turns rows into typed records and
applies the domain filters, so every backend answers the same questions the
same way. Failures must surface as ``PersistenceFailure``; a batch insert
that stores only part of its rows raises ``PartialBatchFailure`` carrying the
stored rows.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..finance.exceptions import PartialBatchFailure
from ..finance.records import (
    AdvanceRecord,
    ExpenseRecord,
    MfsChargeRecord,
    PersonScope,
    RecordKind,
    ScopeIdentity,
    ScopeRef,
    UserScope,
    VendorPaymentRecord,
    VendorPurchaseRecord,
    classify_activity_expense,
    row_belongs_to,
    scope_key,
)
from ..logging_utils import get_logger

LOGGER = get_logger(__name__)

Row = Dict[str, Any]


def mentions_name(row: Mapping[str, Any], name: str) -> bool:
    """Case-insensitive check that the description or notes mention ``name``."""

    needle = name.strip().lower()
    if not needle:
        return False
    haystack = f"{row.get('description') or ''} {row.get('notes') or ''}".lower()
    return needle in haystack


class LedgerRepository(ABC):
    """Base interface for ledger storage backends."""

    backend_name: str = "generic"

    def __init__(self, *, data_directory: Optional[Path] = None) -> None:
        self.data_directory = data_directory
        LOGGER.debug("Initialising %s repository (data directory %s)", self.backend_name, data_directory)

    @abstractmethod
    def select_rows(self, table: str, *, tender_id: Optional[str] = None) -> List[Row]:
        """Return copies of the rows of ``table``, optionally for one tender."""

    @abstractmethod
    def insert_rows(self, table: str, rows: Sequence[Mapping[str, Any]]) -> List[Row]:
        """Store ``rows`` and return them as stored (with generated ids)."""

    # -- scope identity ------------------------------------------------------

    def _find(self, table: str, row_id: str) -> Optional[Row]:
        for row in self.select_rows(table):
            if str(row.get("id")) == row_id:
                return row
        return None

    def resolve_scope(self, scope_id: str) -> ScopeRef:
        """Treat ids with a login profile as user accounts, everything else as persons."""

        if self._find("profiles", scope_id) is not None:
            return UserScope(scope_id)
        return PersonScope(scope_id)

    def _assigned_role(self, tender_id: str, scope: ScopeRef) -> Optional[str]:
        for row in self.select_rows("tender_assignments", tender_id=tender_id):
            if row_belongs_to(row, scope) and row.get("role"):
                return str(row["role"])
        return None

    def fetch_scope_identity(self, tender_id: str, scope: ScopeRef) -> ScopeIdentity:
        """Display name and role for a scope; unknown ids become ``"Unknown"``."""

        if isinstance(scope, UserScope):
            profile = self._find("profiles", scope.scope_id) or {}
            return ScopeIdentity(
                name=str(profile.get("full_name") or "Unknown"),
                is_user_account=True,
                role=self._assigned_role(tender_id, scope),
            )
        if isinstance(scope, PersonScope):
            person = self._find("persons", scope.scope_id) or {}
            return ScopeIdentity(
                name=str(person.get("full_name") or "Unknown"),
                is_user_account=False,
                role=self._assigned_role(tender_id, scope) or person.get("role"),
            )
        raise TypeError(f"Unsupported scope reference: {scope!r}")

    def fetch_vendor_identity(self, vendor_id: str) -> ScopeIdentity:
        vendor = self._find("vendors", vendor_id)
        if vendor is None:
            raise KeyError(f"Vendor {vendor_id} not found")
        return ScopeIdentity(name=str(vendor.get("name") or "Unknown"), role=vendor.get("category"))

    def scope_names(self, tender_id: str) -> Dict[str, str]:
        """Display names keyed by ``scope_key`` for everyone with tender activity."""

        names: Dict[str, str] = {}
        for advance in self.list_advances(tender_id):
            names.setdefault(scope_key(advance.scope), "")
        for expense in self.list_expenses(tender_id):
            names.setdefault(scope_key(expense.scope), "")
        for key in names:
            kind, _, scope_id = key.partition(":")
            scope: ScopeRef = UserScope(scope_id) if kind == UserScope.kind else PersonScope(scope_id)
            names[key] = self.fetch_scope_identity(tender_id, scope).name
        return names

    # -- person ledger reads -------------------------------------------------

    def list_advances(self, tender_id: str) -> List[AdvanceRecord]:
        return [AdvanceRecord.from_row(row) for row in self.select_rows("person_advances", tender_id=tender_id)]

    def list_expenses(self, tender_id: str) -> List[ExpenseRecord]:
        return [ExpenseRecord.from_row(row) for row in self.select_rows("person_expenses", tender_id=tender_id)]

    def fetch_advances(self, tender_id: str, scope: ScopeRef) -> List[AdvanceRecord]:
        return [
            AdvanceRecord.from_row(row)
            for row in self.select_rows("person_advances", tender_id=tender_id)
            if row_belongs_to(row, scope)
        ]

    def fetch_expenses(self, tender_id: str, scope: ScopeRef) -> List[ExpenseRecord]:
        return [
            ExpenseRecord.from_row(row)
            for row in self.select_rows("person_expenses", tender_id=tender_id)
            if row_belongs_to(row, scope)
        ]

    def fetch_mfs_charges(self, tender_id: str, scope_name: str) -> List[MfsChargeRecord]:
        """MFS charge rows of the tender whose free text mentions ``scope_name``."""

        return [
            MfsChargeRecord.from_row(row)
            for row in self.select_rows("activity_expenses", tender_id=tender_id)
            if classify_activity_expense(row) is RecordKind.MFS_CHARGE and mentions_name(row, scope_name)
        ]

    # -- vendor ledger reads -------------------------------------------------

    def fetch_vendor_purchases(self, tender_id: str, vendor_id: str) -> List[VendorPurchaseRecord]:
        purchases: List[VendorPurchaseRecord] = []
        for table, source in (("vendor_purchases", "vendor_purchase"), ("material_purchases", "material_purchase")):
            purchases.extend(
                VendorPurchaseRecord.from_row(row, source=source)
                for row in self.select_rows(table, tender_id=tender_id)
                if str(row.get("vendor_id")) == vendor_id
            )
        return purchases

    def fetch_vendor_payments(self, tender_id: str, vendor_id: str) -> List[VendorPaymentRecord]:
        return [
            VendorPaymentRecord.from_row(row)
            for row in self.select_rows("vendor_payments", tender_id=tender_id)
            if str(row.get("vendor_id")) == vendor_id
        ]

    # -- writes --------------------------------------------------------------

    def save_advance(self, row: Mapping[str, Any]) -> AdvanceRecord:
        (stored,) = self.insert_rows("person_advances", [row])
        return AdvanceRecord.from_row(stored)

    def save_expenses(self, rows: Iterable[Mapping[str, Any]]) -> List[ExpenseRecord]:
        return [ExpenseRecord.from_row(stored) for stored in self.insert_rows("person_expenses", list(rows))]

    def save_mfs_charge(self, row: Mapping[str, Any]) -> MfsChargeRecord:
        (stored,) = self.insert_rows("activity_expenses", [row])
        return MfsChargeRecord.from_row(stored)

    def save_mfs_charges_batch(self, rows: Sequence[Mapping[str, Any]]) -> List[MfsChargeRecord]:
        """Insert all charges in one call; partial failures keep their stored rows."""

        try:
            stored = self.insert_rows("activity_expenses", rows)
        except PartialBatchFailure as failure:
            raise PartialBatchFailure(
                failure.operation,
                saved=[MfsChargeRecord.from_row(row) for row in failure.saved],
                failed_positions=failure.failed_positions,
                detail=failure.reason,
            ) from failure
        return [MfsChargeRecord.from_row(row) for row in stored]
