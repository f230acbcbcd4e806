"""Mini README: Running-balance ledgers for people, vendors and whole tenders.

Structure:
    * TransactionKind - the kinds of line a ledger can show.
    * Transaction - one materialised ledger line with its running balance.
    * LedgerStats / MaterializedLedger - person ledger result.
    * materialize_ledger - merge advances, expenses and MFS charges.
    * VendorLedgerStats / VendorLedger / materialize_vendor_ledger - the same
      pipeline for purchases and payments with a vendor.
    * PersonBalance / summarise_balances - tender-wide balance rollup.

Every ledger is built the same way: map source records to ``Transaction``
lines, stable-sort them ascending by date, walk forward once accumulating the
balance, then reverse for newest-first display. MFS charges are the
business's own cost, so they appear as lines but never move the balance a
scope holder owes; ``actual_cost`` tracks them separately.

Amounts are integer poisha throughout; ``as_dict`` exports two-place strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from ..logging_utils import get_logger
from .money import from_minor_units
from .records import (
    AdvanceRecord,
    ExpenseRecord,
    ImpliedMfsCharge,
    MfsChargeRecord,
    PaymentMethod,
    ScopeRef,
    VendorPaymentRecord,
    VendorPurchaseRecord,
    scope_key,
)

LOGGER = get_logger(__name__)

MfsChargeLike = Union[MfsChargeRecord, ImpliedMfsCharge]


class TransactionKind(str, Enum):
    """Enumerate ledger line kinds."""

    ADVANCE = "advance"
    EXPENSE = "expense"
    MFS_CHARGE = "mfs_charge"
    PURCHASE = "purchase"
    PAYMENT = "payment"


# Sign applied to the running balance; MFS charges never move it.
_BALANCE_EFFECT: Dict[TransactionKind, int] = {
    TransactionKind.ADVANCE: 1,
    TransactionKind.EXPENSE: -1,
    TransactionKind.MFS_CHARGE: 0,
    TransactionKind.PURCHASE: 1,
    TransactionKind.PAYMENT: -1,
}


@dataclass(frozen=True, slots=True)
class Transaction:
    """A ledger line, annotated with the balance after its own effect."""

    transaction_id: str
    kind: TransactionKind
    occurred_on: date
    amount_minor: int
    description: str = ""
    notes: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    payment_reference: Optional[str] = None
    is_implied: bool = False
    hidden: bool = False
    running_balance_minor: int = 0

    @property
    def amount(self) -> Decimal:
        return from_minor_units(self.amount_minor)

    @property
    def running_balance(self) -> Decimal:
        return from_minor_units(self.running_balance_minor)

    def as_dict(self) -> Dict[str, Any]:
        """Export the transaction with serialisable values."""

        return {
            "id": self.transaction_id,
            "kind": self.kind.value,
            "date": self.occurred_on.isoformat(),
            "amount": str(self.amount),
            "description": self.description,
            "notes": self.notes,
            "payment_method": self.payment_method.value if self.payment_method else None,
            "payment_reference": self.payment_reference,
            "is_implied": self.is_implied,
            "running_balance": str(self.running_balance),
        }


def _advance_line(advance: AdvanceRecord) -> Transaction:
    return Transaction(
        transaction_id=advance.record_id,
        kind=TransactionKind.ADVANCE,
        occurred_on=advance.occurred_on,
        amount_minor=advance.amount_minor,
        description=advance.purpose or "Advance given",
        notes=advance.notes,
        payment_method=advance.payment_method,
        payment_reference=advance.payment_reference,
    )


def _expense_line(expense: ExpenseRecord) -> Transaction:
    return Transaction(
        transaction_id=expense.record_id,
        kind=TransactionKind.EXPENSE,
        occurred_on=expense.occurred_on,
        amount_minor=expense.amount_minor,
        description=expense.description,
        notes=expense.notes,
    )


def _charge_line(charge: MfsChargeLike) -> Transaction:
    return Transaction(
        transaction_id=charge.record_id,
        kind=TransactionKind.MFS_CHARGE,
        occurred_on=charge.occurred_on,
        amount_minor=charge.amount_minor,
        description=charge.description,
        notes=charge.notes,
        payment_method=charge.payment_method,
        payment_reference=charge.payment_reference,
        is_implied=charge.is_implied,
    )


def _purchase_line(purchase: VendorPurchaseRecord) -> Transaction:
    quantity = ""
    if purchase.quantity is not None:
        parts = [f"{purchase.quantity.normalize():f}", purchase.unit or ""]
        quantity = f" ({' '.join(part for part in parts if part)})"
    return Transaction(
        transaction_id=purchase.record_id,
        kind=TransactionKind.PURCHASE,
        occurred_on=purchase.occurred_on,
        amount_minor=purchase.amount_minor,
        description=f"{purchase.item_name}{quantity}",
        notes=purchase.notes,
        payment_method=purchase.payment_method,
    )


def _payment_line(payment: VendorPaymentRecord) -> Transaction:
    return Transaction(
        transaction_id=payment.record_id,
        kind=TransactionKind.PAYMENT,
        occurred_on=payment.occurred_on,
        amount_minor=payment.amount_minor,
        description="Payment",
        notes=payment.notes,
        payment_method=payment.payment_method,
        payment_reference=payment.payment_reference,
        hidden=payment.is_auto_generated,
    )


def annotate_running_balance(lines: Iterable[Transaction]) -> List[Transaction]:
    """Sort ascending by date (stable) and attach cumulative balances.

    Returns a new list in ascending order; inputs are left untouched.
    """

    ordered = sorted(lines, key=lambda line: line.occurred_on)
    balance = 0
    annotated: List[Transaction] = []
    for line in ordered:
        balance += _BALANCE_EFFECT[line.kind] * line.amount_minor
        annotated.append(replace(line, running_balance_minor=balance))
    return annotated


def newest_first(annotated: Sequence[Transaction]) -> List[Transaction]:
    """Reverse an annotated ascending ledger without touching balances."""

    return [line for line in reversed(annotated) if not line.hidden]


@dataclass(frozen=True, slots=True)
class LedgerStats:
    """Totals for a person ledger.

    ``balance`` is what the scope holder still owes (advances minus
    expenses); ``actual_cost`` is what the business paid out including MFS
    fees. The two are intentionally different numbers.
    """

    total_advances_minor: int = 0
    total_expenses_minor: int = 0
    total_mfs_charges_minor: int = 0
    advance_count: int = 0
    expense_count: int = 0
    mfs_charge_count: int = 0
    implied_charge_count: int = 0

    @property
    def balance_minor(self) -> int:
        return self.total_advances_minor - self.total_expenses_minor

    @property
    def actual_cost_minor(self) -> int:
        return self.total_advances_minor + self.total_mfs_charges_minor

    @property
    def total_advances(self) -> Decimal:
        return from_minor_units(self.total_advances_minor)

    @property
    def total_expenses(self) -> Decimal:
        return from_minor_units(self.total_expenses_minor)

    @property
    def total_mfs_charges(self) -> Decimal:
        return from_minor_units(self.total_mfs_charges_minor)

    @property
    def balance(self) -> Decimal:
        return from_minor_units(self.balance_minor)

    @property
    def actual_cost(self) -> Decimal:
        return from_minor_units(self.actual_cost_minor)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total_advances": str(self.total_advances),
            "total_expenses": str(self.total_expenses),
            "total_mfs_charges": str(self.total_mfs_charges),
            "balance": str(self.balance),
            "actual_cost": str(self.actual_cost),
            "advance_count": self.advance_count,
            "expense_count": self.expense_count,
            "mfs_charge_count": self.mfs_charge_count,
            "implied_charge_count": self.implied_charge_count,
        }


@dataclass(frozen=True, slots=True)
class MaterializedLedger:
    """Newest-first transactions plus their totals."""

    transactions: List[Transaction] = field(default_factory=list)
    stats: LedgerStats = field(default_factory=LedgerStats)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "transactions": [line.as_dict() for line in self.transactions],
            "stats": self.stats.as_dict(),
        }


def materialize_ledger(
    advances: Iterable[AdvanceRecord],
    expenses: Iterable[ExpenseRecord],
    mfs_charges: Iterable[MfsChargeLike],
) -> MaterializedLedger:
    """Merge a scope's records into one balance-annotated, newest-first ledger."""

    advances = list(advances)
    expenses = list(expenses)
    mfs_charges = list(mfs_charges)

    lines = (
        [_advance_line(advance) for advance in advances]
        + [_expense_line(expense) for expense in expenses]
        + [_charge_line(charge) for charge in mfs_charges]
    )
    annotated = annotate_running_balance(lines)

    stats = LedgerStats(
        total_advances_minor=sum(advance.amount_minor for advance in advances),
        total_expenses_minor=sum(expense.amount_minor for expense in expenses),
        total_mfs_charges_minor=sum(charge.amount_minor for charge in mfs_charges),
        advance_count=len(advances),
        expense_count=len(expenses),
        mfs_charge_count=len(mfs_charges),
        implied_charge_count=sum(1 for charge in mfs_charges if charge.is_implied),
    )
    LOGGER.debug(
        "Materialised ledger with %s advances, %s expenses, %s MFS charges",
        stats.advance_count,
        stats.expense_count,
        stats.mfs_charge_count,
    )
    return MaterializedLedger(transactions=newest_first(annotated), stats=stats)


@dataclass(frozen=True, slots=True)
class VendorLedgerStats:
    """Totals for a vendor ledger; ``balance`` is the amount still due."""

    total_purchases_minor: int = 0
    total_paid_minor: int = 0
    total_mfs_charges_minor: int = 0
    purchase_count: int = 0
    payment_count: int = 0

    @property
    def balance_minor(self) -> int:
        return self.total_purchases_minor - self.total_paid_minor

    @property
    def actual_paid_minor(self) -> int:
        return self.total_paid_minor + self.total_mfs_charges_minor

    @property
    def balance(self) -> Decimal:
        return from_minor_units(self.balance_minor)

    @property
    def actual_paid(self) -> Decimal:
        return from_minor_units(self.actual_paid_minor)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total_purchases": str(from_minor_units(self.total_purchases_minor)),
            "total_paid": str(from_minor_units(self.total_paid_minor)),
            "total_mfs_charges": str(from_minor_units(self.total_mfs_charges_minor)),
            "balance": str(self.balance),
            "actual_paid": str(self.actual_paid),
            "purchase_count": self.purchase_count,
            "payment_count": self.payment_count,
        }


@dataclass(frozen=True, slots=True)
class VendorLedger:
    transactions: List[Transaction] = field(default_factory=list)
    stats: VendorLedgerStats = field(default_factory=VendorLedgerStats)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "transactions": [line.as_dict() for line in self.transactions],
            "stats": self.stats.as_dict(),
        }


def materialize_vendor_ledger(
    purchases: Iterable[VendorPurchaseRecord],
    payments: Iterable[VendorPaymentRecord],
    mfs_charges: Iterable[MfsChargeLike] = (),
) -> VendorLedger:
    """Merge purchases and payments with a vendor into a running due balance.

    Payments generated automatically alongside an on-the-spot purchase count
    towards the balance but are not shown as separate lines.
    """

    purchases = list(purchases)
    payments = list(payments)
    mfs_charges = list(mfs_charges)

    lines = (
        [_purchase_line(purchase) for purchase in purchases]
        + [_payment_line(payment) for payment in payments]
        + [_charge_line(charge) for charge in mfs_charges]
    )
    annotated = annotate_running_balance(lines)
    stats = VendorLedgerStats(
        total_purchases_minor=sum(purchase.amount_minor for purchase in purchases),
        total_paid_minor=sum(payment.amount_minor for payment in payments),
        total_mfs_charges_minor=sum(charge.amount_minor for charge in mfs_charges),
        purchase_count=len(purchases),
        payment_count=len(payments),
    )
    LOGGER.debug(
        "Materialised vendor ledger with %s purchases and %s payments",
        stats.purchase_count,
        stats.payment_count,
    )
    return VendorLedger(transactions=newest_first(annotated), stats=stats)


class BalanceStatus(str, Enum):
    OUTSTANDING = "outstanding"
    OVERSPENT = "overspent"
    SETTLED = "settled"


@dataclass(frozen=True, slots=True)
class PersonBalance:
    """One row of the tender-wide advances register."""

    scope: ScopeRef
    name: str
    total_advances_minor: int
    total_expenses_minor: int

    @property
    def balance_minor(self) -> int:
        return self.total_advances_minor - self.total_expenses_minor

    @property
    def status(self) -> BalanceStatus:
        if self.balance_minor > 0:
            return BalanceStatus.OUTSTANDING
        if self.balance_minor < 0:
            return BalanceStatus.OVERSPENT
        return BalanceStatus.SETTLED

    def as_dict(self) -> Dict[str, Any]:
        return {
            "scope": scope_key(self.scope),
            "name": self.name,
            "total_advances": str(from_minor_units(self.total_advances_minor)),
            "total_expenses": str(from_minor_units(self.total_expenses_minor)),
            "balance": str(from_minor_units(self.balance_minor)),
            "status": self.status.value,
        }


def summarise_balances(
    advances: Iterable[AdvanceRecord],
    expenses: Iterable[ExpenseRecord],
    names: Mapping[str, str],
) -> List[PersonBalance]:
    """Fold advances and expenses into per-scope balances.

    ``names`` maps ``scope_key`` values to display names; unknown scopes are
    shown as ``"Unknown"``. Rows are ordered by name, then by scope key.
    """

    totals: Dict[str, List[Any]] = {}
    for advance in advances:
        entry = totals.setdefault(scope_key(advance.scope), [advance.scope, 0, 0])
        entry[1] += advance.amount_minor
    for expense in expenses:
        entry = totals.setdefault(scope_key(expense.scope), [expense.scope, 0, 0])
        entry[2] += expense.amount_minor

    rows = [
        PersonBalance(
            scope=scope,
            name=names.get(key, "Unknown"),
            total_advances_minor=advanced,
            total_expenses_minor=spent,
        )
        for key, (scope, advanced, spent) in totals.items()
    ]
    return sorted(rows, key=lambda row: (row.name.lower(), scope_key(row.scope)))
