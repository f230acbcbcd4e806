"""Mini README: Persisted record types read from the storage collaborator.

Structure:
    * PaymentMethod - enumeration of the ways money leaves the business.
    * UserScope / PersonScope - tagged scope references (``ScopeRef``).
    * ScopeIdentity - display details for a scope.
    * RecordKind - explicit discriminant for rows in ``activity_expenses``.
    * AdvanceRecord, ExpenseRecord, MfsChargeRecord, VendorPurchaseRecord,
      VendorPaymentRecord - read-only snapshots parsed from storage rows.
    * ImpliedMfsCharge - transient charge synthesised by the reconciler.

Rows use the storage column names (``advance_date``, ``payment_ref`` and so
on); ``from_row`` constructors turn them into typed records with amounts in
integer poisha. Records are frozen: the ledger never mutates source data.

Historic MFS charges were only recognisable through a ``[MFS CHARGE]`` prefix
in their description. New rows carry ``record_kind``; the prefix check is kept
as ``legacy_record_kind`` for rows written before the column existed and
``backfill_record_kinds`` applies it when migrating.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Optional, Union

from ..logging_utils import get_logger
from ..utils.dates import parse_date
from .money import from_minor_units, non_negative_minor_units

LOGGER = get_logger(__name__)

MFS_CHARGE_TAG = "[MFS CHARGE]"
AUTO_PAYMENT_MARKERS = ("Auto payment for", "auto payment")
INCLUDED_CHARGE_MARKERS = ("incl. MFS charge", "MFS payment with charge included")


class PaymentMethod(str, Enum):
    """Enumerate the supported payment channels."""

    CASH = "cash"
    BANK = "bank"
    MFS = "mfs"
    DUE = "due"
    ADVANCE = "advance"

    @classmethod
    def from_str(cls, value: Union[str, "PaymentMethod", None]) -> "PaymentMethod":
        """Coerce arbitrary casing into a valid payment method."""

        if isinstance(value, PaymentMethod):
            return value
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError) as error:
            raise ValueError(f"Unsupported payment method: {value}") from error


@dataclass(frozen=True, slots=True)
class UserScope:
    """Ledger scope owned by an authenticated staff account."""

    scope_id: str
    kind: ClassVar[str] = "user"


@dataclass(frozen=True, slots=True)
class PersonScope:
    """Ledger scope owned by a non-login person record (labourer, foreman)."""

    scope_id: str
    kind: ClassVar[str] = "person"


ScopeRef = Union[UserScope, PersonScope]


def scope_columns(scope: ScopeRef) -> Dict[str, Optional[str]]:
    """Return the ``user_id``/``person_id`` pair stored on owned rows."""

    if isinstance(scope, UserScope):
        return {"user_id": scope.scope_id, "person_id": None}
    if isinstance(scope, PersonScope):
        return {"user_id": None, "person_id": scope.scope_id}
    raise TypeError(f"Unsupported scope reference: {scope!r}")


def scope_key(scope: ScopeRef) -> str:
    if isinstance(scope, (UserScope, PersonScope)):
        return f"{scope.kind}:{scope.scope_id}"
    raise TypeError(f"Unsupported scope reference: {scope!r}")


def scope_from_row(row: Mapping[str, Any]) -> ScopeRef:
    """Read the owning scope of an advance or expense row."""

    if row.get("user_id"):
        return UserScope(str(row["user_id"]))
    if row.get("person_id"):
        return PersonScope(str(row["person_id"]))
    raise ValueError(f"Row {row.get('id')!r} has neither user_id nor person_id")


def row_belongs_to(row: Mapping[str, Any], scope: ScopeRef) -> bool:
    """Match rows whose user or person column carries the scope id."""

    if not isinstance(scope, (UserScope, PersonScope)):
        raise TypeError(f"Unsupported scope reference: {scope!r}")
    return scope.scope_id in {row.get("user_id"), row.get("person_id")}


@dataclass(frozen=True, slots=True)
class ScopeIdentity:
    """Display details for the person or vendor behind a ledger."""

    name: str
    is_user_account: bool = False
    role: Optional[str] = None


class RecordKind(str, Enum):
    """Discriminant for rows stored in the shared activity expense table."""

    GENERAL = "general"
    MFS_CHARGE = "mfs_charge"


def legacy_record_kind(row: Mapping[str, Any]) -> RecordKind:
    """Classify a row by its description prefix, as older rows require."""

    description = str(row.get("description") or "").lstrip()
    if description.startswith(MFS_CHARGE_TAG):
        return RecordKind.MFS_CHARGE
    return RecordKind.GENERAL


def classify_activity_expense(row: Mapping[str, Any]) -> RecordKind:
    """Prefer the explicit ``record_kind`` column, falling back to the prefix.

    Unknown tags are logged and classified by the prefix as well.
    """

    tagged = row.get("record_kind")
    if tagged:
        try:
            return RecordKind(tagged)
        except ValueError:
            LOGGER.warning("Unknown record_kind %r on activity expense %s", tagged, row.get("id"))
    return legacy_record_kind(row)


def backfill_record_kinds(rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Return copies of ``rows`` with ``record_kind`` filled where missing."""

    migrated: List[Dict[str, Any]] = []
    for row in rows:
        copy = dict(row)
        if not copy.get("record_kind"):
            copy["record_kind"] = legacy_record_kind(row).value
        migrated.append(copy)
    return migrated


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _payment_method(value: Any) -> Optional[PaymentMethod]:
    if value in (None, ""):
        return None
    return PaymentMethod.from_str(str(value))


@dataclass(frozen=True, slots=True)
class AdvanceRecord:
    """Cash advance handed to a scope holder."""

    record_id: str
    tender_id: str
    scope: ScopeRef
    occurred_on: date
    amount_minor: int
    payment_method: Optional[PaymentMethod] = PaymentMethod.CASH
    payment_reference: Optional[str] = None
    purpose: Optional[str] = None
    notes: Optional[str] = None

    @property
    def amount(self) -> Decimal:
        return from_minor_units(self.amount_minor)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AdvanceRecord":
        return cls(
            record_id=str(row["id"]),
            tender_id=str(row["tender_id"]),
            scope=scope_from_row(row),
            occurred_on=parse_date(row["advance_date"]),
            amount_minor=non_negative_minor_units(row.get("amount") or 0),
            payment_method=_payment_method(row.get("payment_method")),
            payment_reference=_optional_text(row.get("payment_ref")),
            purpose=_optional_text(row.get("purpose")),
            notes=_optional_text(row.get("notes")),
        )


@dataclass(frozen=True, slots=True)
class ExpenseRecord:
    """Expense a scope holder reports against their advances."""

    record_id: str
    tender_id: str
    scope: ScopeRef
    occurred_on: date
    amount_minor: int
    description: str = ""
    notes: Optional[str] = None

    @property
    def amount(self) -> Decimal:
        return from_minor_units(self.amount_minor)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ExpenseRecord":
        return cls(
            record_id=str(row["id"]),
            tender_id=str(row["tender_id"]),
            scope=scope_from_row(row),
            occurred_on=parse_date(row["expense_date"]),
            amount_minor=non_negative_minor_units(row.get("amount") or 0),
            description=str(row.get("description") or ""),
            notes=_optional_text(row.get("notes")),
        )


@dataclass(frozen=True, slots=True)
class MfsChargeRecord:
    """Mobile financial service fee already stored as an activity expense."""

    record_id: str
    tender_id: str
    occurred_on: date
    amount_minor: int
    description: str
    payment_method: Optional[PaymentMethod] = PaymentMethod.MFS
    payment_reference: Optional[str] = None
    notes: Optional[str] = None
    record_kind: RecordKind = RecordKind.MFS_CHARGE
    is_implied: ClassVar[bool] = False

    @property
    def amount(self) -> Decimal:
        return from_minor_units(self.amount_minor)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "MfsChargeRecord":
        kind = classify_activity_expense(row)
        if kind is not RecordKind.MFS_CHARGE:
            raise ValueError(f"Activity expense {row.get('id')!r} is not an MFS charge")
        return cls(
            record_id=str(row["id"]),
            tender_id=str(row["tender_id"]),
            occurred_on=parse_date(row["expense_date"]),
            amount_minor=non_negative_minor_units(row.get("amount") or 0),
            description=str(row.get("description") or ""),
            payment_method=_payment_method(row.get("payment_method")),
            payment_reference=_optional_text(row.get("payment_ref")),
            notes=_optional_text(row.get("notes")),
            record_kind=kind,
        )


@dataclass(frozen=True, slots=True)
class VendorPurchaseRecord:
    """Goods bought from a vendor, from vendor or material purchase tables."""

    record_id: str
    tender_id: str
    vendor_id: str
    occurred_on: date
    amount_minor: int
    item_name: str = ""
    quantity: Optional[Decimal] = None
    unit: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None
    source: str = "vendor_purchase"

    @property
    def amount(self) -> Decimal:
        return from_minor_units(self.amount_minor)

    @classmethod
    def from_row(cls, row: Mapping[str, Any], *, source: str = "vendor_purchase") -> "VendorPurchaseRecord":
        quantity = row.get("quantity")
        return cls(
            record_id=str(row["id"]),
            tender_id=str(row["tender_id"]),
            vendor_id=str(row["vendor_id"]),
            occurred_on=parse_date(row["purchase_date"]),
            amount_minor=non_negative_minor_units(row.get("total_amount") or 0),
            item_name=str(
                row.get("item_name") or row.get("material_name") or row.get("custom_item_name") or ""
            ),
            quantity=Decimal(str(quantity)) if quantity not in (None, "") else None,
            unit=_optional_text(row.get("unit")),
            payment_method=_payment_method(row.get("payment_method")),
            notes=_optional_text(row.get("notes")),
            source=source,
        )


@dataclass(frozen=True, slots=True)
class VendorPaymentRecord:
    """Money paid to a vendor against outstanding purchases."""

    record_id: str
    tender_id: str
    vendor_id: str
    occurred_on: date
    amount_minor: int
    payment_method: Optional[PaymentMethod] = PaymentMethod.CASH
    payment_reference: Optional[str] = None
    notes: Optional[str] = None

    @property
    def amount(self) -> Decimal:
        return from_minor_units(self.amount_minor)

    @property
    def is_auto_generated(self) -> bool:
        """Payments created together with a purchase that was paid on the spot."""

        notes = self.notes or ""
        return any(marker in notes for marker in AUTO_PAYMENT_MARKERS)

    @property
    def includes_mfs_charge(self) -> bool:
        """Payments whose amount already folds in the MFS fee."""

        notes = self.notes or ""
        return any(marker in notes for marker in INCLUDED_CHARGE_MARKERS)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "VendorPaymentRecord":
        return cls(
            record_id=str(row["id"]),
            tender_id=str(row["tender_id"]),
            vendor_id=str(row["vendor_id"]),
            occurred_on=parse_date(row["payment_date"]),
            amount_minor=non_negative_minor_units(row.get("amount") or 0),
            payment_method=_payment_method(row.get("payment_method")),
            payment_reference=_optional_text(row.get("reference")),
            notes=_optional_text(row.get("notes")),
        )


@dataclass(slots=True)
class ImpliedMfsCharge:
    """MFS fee the reconciler expects but storage does not hold yet.

    ``is_implied`` flips to ``False`` once the charge has been written back
    through the repository.
    """

    record_id: str
    source_record_id: str
    tender_id: str
    occurred_on: date
    amount_minor: int
    base_amount_minor: int
    description: str
    payment_reference: Optional[str] = None
    notes: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.MFS
    is_implied: bool = True

    @property
    def amount(self) -> Decimal:
        return from_minor_units(self.amount_minor)

    def as_row(self) -> Dict[str, Any]:
        """Return the ``activity_expenses`` payload used to persist the charge."""

        return {
            "tender_id": self.tender_id,
            "expense_date": self.occurred_on.isoformat(),
            "category": "transport_logistics",
            "subcategory": "mfs_charge",
            "vendor_name": "MFS Transaction Charge",
            "description": self.description,
            "amount": str(from_minor_units(self.amount_minor)),
            "payment_method": self.payment_method.value,
            "payment_ref": self.payment_reference,
            "notes": self.notes,
            "record_kind": RecordKind.MFS_CHARGE.value,
        }

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.record_id,
            "source_record_id": self.source_record_id,
            "date": self.occurred_on.isoformat(),
            "amount": str(self.amount),
            "base_amount": str(from_minor_units(self.base_amount_minor)),
            "description": self.description,
            "payment_reference": self.payment_reference,
            "notes": self.notes,
            "is_implied": self.is_implied,
        }
