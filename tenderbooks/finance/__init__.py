"""Mini README: Finance core for contractor bookkeeping.

This package holds the pure parts of tenderbooks: money helpers, typed
records, the MFS fee calculator and reconciler, and the running-balance
ledgers. ``service`` wires them to a storage backend and is imported
explicitly (``tenderbooks.finance.service``) to keep this package free of
storage imports.
"""

from .exceptions import InvalidAmount, LedgerError, PartialBatchFailure, PersistenceFailure
from .ledger import (
    LedgerStats,
    MaterializedLedger,
    PersonBalance,
    Transaction,
    TransactionKind,
    VendorLedger,
    materialize_ledger,
    materialize_vendor_ledger,
    summarise_balances,
)
from .mfs import (
    ChargeBreakdown,
    ChargeMatch,
    MatchTier,
    MfsTariff,
    compute_mfs_charge,
    compute_total_with_charge,
    find_implied_charges,
    find_recorded_charge,
)
from .records import (
    AdvanceRecord,
    ExpenseRecord,
    ImpliedMfsCharge,
    MfsChargeRecord,
    PaymentMethod,
    PersonScope,
    ScopeIdentity,
    ScopeRef,
    UserScope,
    VendorPaymentRecord,
    VendorPurchaseRecord,
)

__all__ = [
    "AdvanceRecord",
    "ChargeBreakdown",
    "ChargeMatch",
    "ExpenseRecord",
    "ImpliedMfsCharge",
    "InvalidAmount",
    "LedgerError",
    "LedgerStats",
    "MatchTier",
    "MaterializedLedger",
    "MfsChargeRecord",
    "MfsTariff",
    "PartialBatchFailure",
    "PaymentMethod",
    "PersistenceFailure",
    "PersonBalance",
    "PersonScope",
    "ScopeIdentity",
    "ScopeRef",
    "Transaction",
    "TransactionKind",
    "UserScope",
    "VendorLedger",
    "VendorPaymentRecord",
    "VendorPurchaseRecord",
    "compute_mfs_charge",
    "compute_total_with_charge",
    "find_implied_charges",
    "find_recorded_charge",
    "materialize_ledger",
    "materialize_vendor_ledger",
    "summarise_balances",
]
