"""Mini README: In-memory ledger storage with deterministic demo data.

Structure:
    * demo_tables - sample tender with two staff ledgers and one vendor.
    * InMemoryLedgerRepository - dict-of-lists table store.

The repository mimics the hosted tables closely enough for the web interface
and tests to exercise the full reconciliation pipeline without a database.
Rows are stored as plain dicts using the hosted column names and returned as
copies, so callers cannot mutate stored state by accident.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..logging_utils import get_logger
from .base import LedgerRepository, Row
from .registry import REGISTRY

LOGGER = get_logger(__name__)

DEMO_TENDER_ID = "tnd_0001"

ID_PREFIXES: Dict[str, str] = {
    "person_advances": "adv",
    "person_expenses": "exp",
    "activity_expenses": "act",
    "vendor_purchases": "vpur",
    "material_purchases": "mpur",
    "vendor_payments": "vpay",
}


def demo_tables() -> Dict[str, List[Row]]:
    """Return a fresh copy of the demo tender's tables."""

    return {
        "profiles": [{"id": "usr_rahim", "full_name": "Rahim Uddin"}],
        "persons": [{"id": "per_karim", "full_name": "Karim Mia", "role": "Foreman"}],
        "tender_assignments": [
            {"tender_id": DEMO_TENDER_ID, "user_id": "usr_rahim", "person_id": None, "role": "Site engineer"}
        ],
        "vendors": [{"id": "ven_meghna", "name": "Meghna Bricks", "category": "Bricks"}],
        "person_advances": [
            {
                "id": "adv_0001",
                "tender_id": DEMO_TENDER_ID,
                "user_id": "usr_rahim",
                "person_id": None,
                "advance_date": "2024-05-02",
                "amount": "20000.00",
                "payment_method": "cash",
                "payment_ref": None,
                "purpose": "Site petty cash",
                "notes": None,
            },
            {
                "id": "adv_0002",
                "tender_id": DEMO_TENDER_ID,
                "user_id": None,
                "person_id": "per_karim",
                "advance_date": "2024-05-05",
                "amount": "3000.00",
                "payment_method": "mfs",
                "payment_ref": "BK7702",
                "purpose": "Khoraki float",
                "notes": None,
            },
            {
                "id": "adv_0003",
                "tender_id": DEMO_TENDER_ID,
                "user_id": "usr_rahim",
                "person_id": None,
                "advance_date": "2024-05-10",
                "amount": "5000.00",
                "payment_method": "mfs",
                "payment_ref": "BK7731",
                "purpose": "Labour wages",
                "notes": "Sent by bKash",
            },
        ],
        "person_expenses": [
            {
                "id": "exp_0001",
                "tender_id": DEMO_TENDER_ID,
                "user_id": "usr_rahim",
                "person_id": None,
                "expense_date": "2024-05-04",
                "amount": "6500.00",
                "description": "Cement unloading",
                "notes": None,
            },
            {
                "id": "exp_0002",
                "tender_id": DEMO_TENDER_ID,
                "user_id": None,
                "person_id": "per_karim",
                "expense_date": "2024-05-06",
                "amount": "2750.00",
                "description": "Khoraki for 11 labourers",
                "notes": None,
            },
            {
                "id": "exp_0003",
                "tender_id": DEMO_TENDER_ID,
                "user_id": "usr_rahim",
                "person_id": None,
                "expense_date": "2024-05-11",
                "amount": "4200.00",
                "description": "[LABOR PAYMENT] Mason crew",
                "notes": "Contract labor payment",
            },
        ],
        "activity_expenses": [
            {
                "id": "act_0001",
                "tender_id": DEMO_TENDER_ID,
                "expense_date": "2024-05-05",
                "category": "transport_logistics",
                "subcategory": "mfs_charge",
                "vendor_name": "MFS Transaction Charge",
                "description": "[MFS CHARGE] Advance to Karim Mia ৳3000.00",
                "amount": "65.50",
                "payment_method": "mfs",
                "payment_ref": "BK7702",
                "notes": None,
                "record_kind": None,
            },
            {
                "id": "act_0002",
                "tender_id": DEMO_TENDER_ID,
                "expense_date": "2024-05-07",
                "category": "site_operations",
                "subcategory": "fuel",
                "vendor_name": "Padma Filling Station",
                "description": "Generator fuel",
                "amount": "1800.00",
                "payment_method": "cash",
                "payment_ref": None,
                "notes": None,
                "record_kind": "general",
            },
        ],
        "vendor_purchases": [
            {
                "id": "vpur_0001",
                "tender_id": DEMO_TENDER_ID,
                "vendor_id": "ven_meghna",
                "purchase_date": "2024-05-03",
                "item_name": "First class bricks",
                "quantity": "5000",
                "unit": "pcs",
                "total_amount": "60000.00",
                "payment_method": "due",
                "notes": None,
            }
        ],
        "material_purchases": [
            {
                "id": "mpur_0001",
                "tender_id": DEMO_TENDER_ID,
                "vendor_id": "ven_meghna",
                "purchase_date": "2024-05-08",
                "custom_item_name": "Picket bricks",
                "quantity": "2000",
                "unit": "pcs",
                "total_amount": "18000.00",
                "payment_method": "cash",
                "notes": None,
            }
        ],
        "vendor_payments": [
            {
                "id": "vpay_0001",
                "tender_id": DEMO_TENDER_ID,
                "vendor_id": "ven_meghna",
                "payment_date": "2024-05-08",
                "amount": "18000.00",
                "payment_method": "cash",
                "reference": None,
                "notes": "Auto payment for purchase: Picket bricks",
            },
            {
                "id": "vpay_0002",
                "tender_id": DEMO_TENDER_ID,
                "vendor_id": "ven_meghna",
                "payment_date": "2024-05-12",
                "amount": "25000.00",
                "payment_method": "mfs",
                "reference": "NG5521",
                "notes": None,
            },
        ],
    }


class InMemoryLedgerRepository(LedgerRepository):
    """Keep ledger tables in process memory."""

    backend_name = "memory"

    def __init__(
        self,
        tables: Optional[Mapping[str, Sequence[Mapping[str, Any]]]] = None,
        *,
        data_directory: Optional[Path] = None,
    ) -> None:
        super().__init__(data_directory=data_directory)
        source = demo_tables() if tables is None else tables
        self._tables: Dict[str, List[Row]] = {
            name: [dict(row) for row in rows] for name, rows in source.items()
        }
        self._sequences: Dict[str, int] = {}
        for name, rows in self._tables.items():
            for row in rows:
                self._track_sequence(name, str(row.get("id", "")))
        LOGGER.debug(
            "In-memory repository initialised with %s tables", len(self._tables)
        )

    def _track_sequence(self, table: str, row_id: str) -> None:
        suffix = row_id.rsplit("_", 1)[-1]
        if suffix.isdigit():
            self._sequences[table] = max(self._sequences.get(table, 0), int(suffix))

    def _next_id(self, table: str) -> str:
        """Generate a deterministic row identifier for ``table``."""

        self._sequences[table] = self._sequences.get(table, 0) + 1
        prefix = ID_PREFIXES.get(table, table)
        return f"{prefix}_{self._sequences[table]:04d}"

    def select_rows(self, table: str, *, tender_id: Optional[str] = None) -> List[Row]:
        rows = self._tables.get(table, [])
        return [
            copy.deepcopy(row)
            for row in rows
            if tender_id is None or str(row.get("tender_id")) == tender_id
        ]

    def insert_rows(self, table: str, rows: Sequence[Mapping[str, Any]]) -> List[Row]:
        stored: List[Row] = []
        for row in rows:
            record = dict(row)
            if record.get("id"):
                self._track_sequence(table, str(record["id"]))
            else:
                record["id"] = self._next_id(table)
            stored.append(record)
        self._tables.setdefault(table, []).extend(stored)
        LOGGER.info("Inserted %s row(s) into %s", len(stored), table)
        return [copy.deepcopy(record) for record in stored]

    def export_tables(self) -> Dict[str, List[Row]]:
        """Return a deep copy of every table, e.g. for serialisation."""

        return copy.deepcopy(self._tables)

    def _replace_tables(self, tables: Dict[str, List[Row]]) -> None:
        self._tables = tables


REGISTRY.register(InMemoryLedgerRepository)
