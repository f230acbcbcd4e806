"""Mini README: Ledger service tying storage, reconciliation and ledgers together.

Structure:
    * PersonLedgerView / VendorLedgerView - everything a ledger screen shows.
    * PromotionResult - outcome of writing implied charges back.
    * LedgerService - fetch -> reconcile -> materialize pipeline and the
      bookkeeping actions (give advance, record expenses, promote charges).

Every load re-reads the scope from storage and recomputes the ledger from
scratch; nothing is patched incrementally. Reads happen before any
computation, so a failing fetch raises ``PersistenceFailure`` without a
partial ledger ever being built. Repository errors propagate unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Union

from ..configuration import TenderbooksSettings, get_settings
from ..logging_utils import get_logger
from ..utils.dates import parse_date
from .exceptions import InvalidAmount, PartialBatchFailure
from .ledger import (
    MaterializedLedger,
    PersonBalance,
    VendorLedger,
    materialize_ledger,
    materialize_vendor_ledger,
    summarise_balances,
)
from .mfs import (
    DEFAULT_MATCH_TOLERANCE_MINOR,
    DEFAULT_TARIFF,
    ChargeBreakdown,
    MfsTariff,
    compute_total_with_charge,
    find_implied_charges,
)
from .money import DEFAULT_CURRENCY_SYMBOL, AmountLike, from_minor_units, to_minor_units
from .records import (
    AdvanceRecord,
    ExpenseRecord,
    ImpliedMfsCharge,
    MfsChargeRecord,
    PaymentMethod,
    ScopeIdentity,
    ScopeRef,
    scope_columns,
    scope_key,
)

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..storage.base import LedgerRepository

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class PersonLedgerView:
    """A person's ledger together with the charges still to be recorded."""

    scope: ScopeRef
    identity: ScopeIdentity
    ledger: MaterializedLedger
    implied_charges: List[ImpliedMfsCharge] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "scope": scope_key(self.scope),
            "name": self.identity.name,
            "role": self.identity.role,
            "is_user_account": self.identity.is_user_account,
            **self.ledger.as_dict(),
            "implied_charges": [charge.as_dict() for charge in self.implied_charges],
        }


@dataclass(slots=True)
class VendorLedgerView:
    vendor_id: str
    identity: ScopeIdentity
    ledger: VendorLedger
    implied_charges: List[ImpliedMfsCharge] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "vendor_id": self.vendor_id,
            "name": self.identity.name,
            "category": self.identity.role,
            **self.ledger.as_dict(),
            "implied_charges": [charge.as_dict() for charge in self.implied_charges],
        }


@dataclass(slots=True)
class PromotionResult:
    """Charges written back to storage and those that could not be."""

    succeeded: List[MfsChargeRecord] = field(default_factory=list)
    failed: List[ImpliedMfsCharge] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    def as_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": [record.record_id for record in self.succeeded],
            "failed": [charge.record_id for charge in self.failed],
        }


def _positive_amount(value: AmountLike) -> str:
    minor = to_minor_units(value)
    if minor <= 0:
        raise InvalidAmount(value, "amount must be greater than zero")
    return str(from_minor_units(minor))


def _optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class LedgerService:
    """Build ledgers for people and vendors and apply bookkeeping actions."""

    def __init__(
        self,
        repository: "LedgerRepository",
        *,
        tariff: MfsTariff = DEFAULT_TARIFF,
        tolerance_minor: int = DEFAULT_MATCH_TOLERANCE_MINOR,
        currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
    ) -> None:
        self.repository = repository
        self.tariff = tariff
        self.tolerance_minor = tolerance_minor
        self.currency_symbol = currency_symbol
        LOGGER.debug(
            "Ledger service using %s backend with tariff %s",
            repository.backend_name,
            tariff.describe(),
        )

    @classmethod
    def from_settings(
        cls,
        settings: Optional[TenderbooksSettings] = None,
        *,
        repository: Optional["LedgerRepository"] = None,
    ) -> "LedgerService":
        """Create a service using the configured backend and MFS tariff."""

        from ..storage import REGISTRY

        settings = settings or get_settings()
        if repository is None:
            repository = REGISTRY.create(settings.storage_backend, data_directory=settings.data_directory)
        return cls(
            repository,
            tariff=MfsTariff(
                percentage_rate=settings.mfs_percentage_rate,
                fixed_fee=settings.mfs_fixed_fee,
            ),
            tolerance_minor=to_minor_units(settings.mfs_match_tolerance),
            currency_symbol=settings.currency_symbol,
        )

    # -- reads ---------------------------------------------------------------

    def resolve_scope(self, scope_id: str) -> ScopeRef:
        return self.repository.resolve_scope(scope_id)

    def charge_breakdown(
        self, amount: AmountLike, payment_method: Union[str, PaymentMethod]
    ) -> ChargeBreakdown:
        return compute_total_with_charge(amount, payment_method, tariff=self.tariff)

    def _implied(self, payments: Iterable[Any], charges: List[MfsChargeRecord], name: str) -> List[ImpliedMfsCharge]:
        return find_implied_charges(
            payments,
            charges,
            name,
            tariff=self.tariff,
            tolerance_minor=self.tolerance_minor,
            currency_symbol=self.currency_symbol,
        )

    def load_person_ledger(self, tender_id: str, scope: ScopeRef) -> PersonLedgerView:
        """Fetch a scope's records and materialise its ledger with implied charges."""

        identity = self.repository.fetch_scope_identity(tender_id, scope)
        advances = self.repository.fetch_advances(tender_id, scope)
        expenses = self.repository.fetch_expenses(tender_id, scope)
        recorded = self.repository.fetch_mfs_charges(tender_id, identity.name)

        implied = self._implied(advances, recorded, identity.name)
        ledger = materialize_ledger(advances, expenses, [*recorded, *implied])
        LOGGER.info(
            "Loaded ledger for %s on tender %s: balance %s, %s implied charge(s)",
            scope_key(scope),
            tender_id,
            ledger.stats.balance,
            len(implied),
        )
        return PersonLedgerView(scope=scope, identity=identity, ledger=ledger, implied_charges=implied)

    def load_vendor_ledger(self, tender_id: str, vendor_id: str) -> VendorLedgerView:
        """Fetch a vendor's purchases and payments and materialise the due balance."""

        identity = self.repository.fetch_vendor_identity(vendor_id)
        purchases = self.repository.fetch_vendor_purchases(tender_id, vendor_id)
        payments = self.repository.fetch_vendor_payments(tender_id, vendor_id)
        recorded = self.repository.fetch_mfs_charges(tender_id, identity.name)

        chargeable = [payment for payment in payments if not payment.includes_mfs_charge]
        implied = self._implied(chargeable, recorded, identity.name)
        ledger = materialize_vendor_ledger(purchases, payments, [*recorded, *implied])
        LOGGER.info(
            "Loaded vendor ledger for %s on tender %s: due %s",
            vendor_id,
            tender_id,
            ledger.stats.balance,
        )
        return VendorLedgerView(vendor_id=vendor_id, identity=identity, ledger=ledger, implied_charges=implied)

    def tender_balances(self, tender_id: str) -> List[PersonBalance]:
        """Advances register for every scope with activity on the tender."""

        return summarise_balances(
            self.repository.list_advances(tender_id),
            self.repository.list_expenses(tender_id),
            self.repository.scope_names(tender_id),
        )

    # -- writes --------------------------------------------------------------

    def promote_implied_charge(self, charge: ImpliedMfsCharge) -> MfsChargeRecord:
        """Persist an implied charge as a real MFS charge record.

        Only ``charge.is_implied`` is updated in place. Ledger lines and stats
        of a view loaded earlier still show the charge as implied; reload the
        ledger to see it as recorded.
        """

        if not charge.is_implied:
            raise ValueError(f"Charge {charge.record_id} has already been recorded")
        record = self.repository.save_mfs_charge(charge.as_row())
        charge.is_implied = False
        LOGGER.info("Recorded implied charge %s as %s", charge.record_id, record.record_id)
        return record

    def promote_all_implied(self, charges: Iterable[ImpliedMfsCharge]) -> PromotionResult:
        """Persist every still-implied charge in a single batch write.

        A partial batch failure is reported through ``PromotionResult.failed``;
        a failure that stored nothing propagates as ``PersistenceFailure``.
        """

        pending = [charge for charge in charges if charge.is_implied]
        if not pending:
            return PromotionResult()

        try:
            saved = self.repository.save_mfs_charges_batch([charge.as_row() for charge in pending])
        except PartialBatchFailure as failure:
            failed_positions = set(failure.failed_positions)
            stored = [charge for index, charge in enumerate(pending) if index not in failed_positions]
            failed = [charge for index, charge in enumerate(pending) if index in failed_positions]
            for charge in stored:
                charge.is_implied = False
            LOGGER.warning(
                "Batch promotion stored %s charge(s), %s failed: %s",
                len(failure.saved),
                len(failed),
                ", ".join(charge.record_id for charge in failed),
            )
            return PromotionResult(succeeded=list(failure.saved), failed=failed)

        for charge in pending:
            charge.is_implied = False
        LOGGER.info("Recorded %s implied charge(s) in one batch", len(saved))
        return PromotionResult(succeeded=saved)

    def give_advance(
        self,
        tender_id: str,
        scope: ScopeRef,
        *,
        advance_date: Union[str, date],
        amount: AmountLike,
        payment_method: Union[str, PaymentMethod] = PaymentMethod.CASH,
        payment_reference: Optional[str] = None,
        purpose: Optional[str] = None,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> AdvanceRecord:
        """Record an advance handed to a person or staff account."""

        row = {
            "tender_id": tender_id,
            **scope_columns(scope),
            "advance_date": parse_date(advance_date).isoformat(),
            "amount": _positive_amount(amount),
            "payment_method": PaymentMethod.from_str(payment_method).value,
            "payment_ref": _optional(payment_reference),
            "purpose": _optional(purpose),
            "notes": _optional(notes),
            "created_by": created_by,
        }
        record = self.repository.save_advance(row)
        LOGGER.info("Advance %s of %s given to %s", record.record_id, record.amount, scope_key(scope))
        return record

    def _expense_row(
        self, tender_id: str, scope: ScopeRef, entry: Mapping[str, Any], created_by: Optional[str]
    ) -> Dict[str, Any]:
        description = str(entry.get("description") or "").strip()
        if not description:
            raise ValueError("Expense description is required.")
        return {
            "tender_id": tender_id,
            **scope_columns(scope),
            "expense_date": parse_date(entry.get("expense_date") or entry.get("date")).isoformat(),
            "amount": _positive_amount(entry.get("amount") or 0),
            "description": description,
            "notes": _optional(entry.get("notes")),
            "created_by": created_by,
        }

    def record_expense(
        self,
        tender_id: str,
        scope: ScopeRef,
        *,
        expense_date: Union[str, date],
        amount: AmountLike,
        description: str,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> ExpenseRecord:
        """Record one expense reported by a scope holder."""

        (record,) = self.record_expenses_bulk(
            tender_id,
            scope,
            [{"expense_date": expense_date, "amount": amount, "description": description, "notes": notes}],
            created_by=created_by,
        )
        return record

    def record_expenses_bulk(
        self,
        tender_id: str,
        scope: ScopeRef,
        entries: Iterable[Mapping[str, Any]],
        *,
        created_by: Optional[str] = None,
    ) -> List[ExpenseRecord]:
        """Validate every entry first, then store them in one write."""

        rows = [self._expense_row(tender_id, scope, entry, created_by) for entry in entries]
        if not rows:
            raise ValueError("At least one expense entry is required.")
        records = self.repository.save_expenses(rows)
        LOGGER.info("Recorded %s expense(s) for %s", len(records), scope_key(scope))
        return records
