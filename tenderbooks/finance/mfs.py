"""Mini README: Mobile financial service (MFS) fee calculation and reconciliation.

Structure:
    * MfsTariff - the fee formula (percentage rate plus a flat fee).
    * compute_mfs_charge / compute_total_with_charge - fee calculator.
    * MatchTier - the reconciliation tiers, in evaluation order.
    * matches_reference / matches_description_amount /
      matches_date_within_tolerance - one predicate per tier.
    * find_recorded_charge - first tier that finds a stored charge wins.
    * find_implied_charges - synthesise charges storage does not hold yet.

Sending money over MFS costs the business a fee that the recipient never
sees. Some screens record that fee as its own activity expense and some do
not, so the ledger infers "implied" charges for MFS payments whose fee cannot
be found among the stored ones. Matching is deliberately tiered: an identical
payment reference is conclusive; next comes the ``৳<amount>`` text that
generated descriptions embed; last, a charge on the same day whose amount is
within the tolerance of the expected fee.

All functions here are pure. Implied charge ids are derived from the payment
id, so repeated runs over the same input produce identical results.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional, Protocol, Sequence, Union

from ..logging_utils import get_logger
from .exceptions import InvalidAmount
from .money import (
    DEFAULT_CURRENCY_SYMBOL,
    AmountLike,
    format_amount,
    from_minor_units,
    round_half_up,
    to_decimal,
    to_minor_units,
)
from .records import (
    AdvanceRecord,
    ImpliedMfsCharge,
    MFS_CHARGE_TAG,
    MfsChargeRecord,
    PaymentMethod,
)

LOGGER = get_logger(__name__)

DEFAULT_MATCH_TOLERANCE_MINOR = 100
IMPLIED_ID_PREFIX = "implied-"


@dataclass(frozen=True, slots=True)
class MfsTariff:
    """Fee formula: ``amount * percentage_rate + fixed_fee``."""

    percentage_rate: Decimal = Decimal("0.0185")
    fixed_fee: Decimal = Decimal("10")

    def describe(self) -> str:
        rate = (self.percentage_rate * 100).normalize()
        return f"{rate:f}% + {self.fixed_fee.normalize():f}"


DEFAULT_TARIFF = MfsTariff()


@dataclass(frozen=True, slots=True)
class ChargeBreakdown:
    """Fee components for one transfer, as shown before confirming it."""

    base: Decimal
    percentage_charge: Decimal
    fixed_fee: Decimal
    charge: Decimal
    total: Decimal

    def as_dict(self) -> dict:
        return {
            "base": str(self.base),
            "percentage_charge": str(self.percentage_charge),
            "fixed_fee": str(self.fixed_fee),
            "charge": str(self.charge),
            "total": str(self.total),
        }


def _validated_base(base_amount: AmountLike) -> Decimal:
    amount = to_decimal(base_amount)
    if amount < 0:
        raise InvalidAmount(base_amount, "amount must not be negative")
    return amount


def compute_mfs_charge(
    base_amount: AmountLike,
    payment_method: Union[str, PaymentMethod] = PaymentMethod.MFS,
    *,
    tariff: MfsTariff = DEFAULT_TARIFF,
) -> Decimal:
    """Return the MFS fee for ``base_amount``, rounded half-up to two places.

    Methods other than MFS carry no fee. Negative or non-finite amounts raise
    ``InvalidAmount``.
    """

    amount = _validated_base(base_amount)
    if PaymentMethod.from_str(payment_method) is not PaymentMethod.MFS:
        return Decimal("0.00")
    return round_half_up(amount * tariff.percentage_rate + tariff.fixed_fee)


def compute_total_with_charge(
    base_amount: AmountLike,
    payment_method: Union[str, PaymentMethod],
    *,
    tariff: MfsTariff = DEFAULT_TARIFF,
) -> ChargeBreakdown:
    """Split a transfer into base, fee components and the business's total outlay."""

    amount = _validated_base(base_amount)
    charge = compute_mfs_charge(amount, payment_method, tariff=tariff)
    if charge:
        percentage_charge = round_half_up(amount * tariff.percentage_rate)
        fixed_fee = round_half_up(tariff.fixed_fee)
    else:
        percentage_charge = fixed_fee = Decimal("0.00")
    base = round_half_up(amount)
    return ChargeBreakdown(
        base=base,
        percentage_charge=percentage_charge,
        fixed_fee=fixed_fee,
        charge=charge,
        total=base + charge,
    )


def mfs_charge_minor(amount_minor: int, *, tariff: MfsTariff = DEFAULT_TARIFF) -> int:
    """Expected fee in poisha for an MFS transfer of ``amount_minor`` poisha."""

    return to_minor_units(compute_mfs_charge(from_minor_units(amount_minor), tariff=tariff))


class MfsPayment(Protocol):
    """Anything that sends money over MFS: advances and vendor payments."""

    record_id: str
    tender_id: str
    occurred_on: date
    amount_minor: int
    payment_method: Optional[PaymentMethod]
    payment_reference: Optional[str]


class MatchTier(str, Enum):
    """Reconciliation tiers in the order they are tried."""

    REFERENCE = "reference"
    DESCRIPTION_AMOUNT = "description_amount"
    DATE_WITHIN_TOLERANCE = "date_within_tolerance"


@dataclass(frozen=True, slots=True)
class ChargeMatch:
    """Stored charge accounting for a payment, and the tier that found it."""

    tier: MatchTier
    charge: MfsChargeRecord


def matches_reference(payment: MfsPayment, charge: MfsChargeRecord) -> bool:
    """Both sides carry the same non-empty payment reference."""

    reference = (payment.payment_reference or "").strip()
    return bool(reference) and reference == (charge.payment_reference or "").strip()


def matches_description_amount(
    payment: MfsPayment,
    charge: MfsChargeRecord,
    *,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> bool:
    """The charge description quotes the payment amount, e.g. ``৳1000.00``."""

    return format_amount(payment.amount_minor, currency_symbol) in (charge.description or "")


def matches_date_within_tolerance(
    payment: MfsPayment,
    charge: MfsChargeRecord,
    *,
    tariff: MfsTariff = DEFAULT_TARIFF,
    tolerance_minor: int = DEFAULT_MATCH_TOLERANCE_MINOR,
) -> bool:
    """Same calendar day and a fee strictly closer than the tolerance."""

    if payment.occurred_on != charge.occurred_on:
        return False
    expected = mfs_charge_minor(payment.amount_minor, tariff=tariff)
    return abs(charge.amount_minor - expected) < tolerance_minor


def find_recorded_charge(
    payment: MfsPayment,
    charges: Sequence[MfsChargeRecord],
    *,
    tariff: MfsTariff = DEFAULT_TARIFF,
    tolerance_minor: int = DEFAULT_MATCH_TOLERANCE_MINOR,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> Optional[ChargeMatch]:
    """Return the stored charge for ``payment`` or ``None``.

    Each tier is evaluated over every charge before the next tier is tried,
    so a reference match wins even when another charge would match on date.
    """

    tiers = (
        (MatchTier.REFERENCE, lambda charge: matches_reference(payment, charge)),
        (
            MatchTier.DESCRIPTION_AMOUNT,
            lambda charge: matches_description_amount(
                payment, charge, currency_symbol=currency_symbol
            ),
        ),
        (
            MatchTier.DATE_WITHIN_TOLERANCE,
            lambda charge: matches_date_within_tolerance(
                payment, charge, tariff=tariff, tolerance_minor=tolerance_minor
            ),
        ),
    )
    for tier, predicate in tiers:
        for charge in charges:
            if predicate(charge):
                LOGGER.debug(
                    "Payment %s matched recorded charge %s via %s",
                    payment.record_id,
                    charge.record_id,
                    tier.value,
                )
                return ChargeMatch(tier=tier, charge=charge)
    return None


def implied_charge_id(payment_id: str) -> str:
    return f"{IMPLIED_ID_PREFIX}{payment_id}"


def _implied_description(payment: MfsPayment, scope_name: str, currency_symbol: str) -> str:
    action = "Advance to" if isinstance(payment, AdvanceRecord) else "Payment to"
    return (
        f"{MFS_CHARGE_TAG} {action} {scope_name} "
        f"{format_amount(payment.amount_minor, currency_symbol)}"
    )


def find_implied_charges(
    payments: Iterable[MfsPayment],
    existing_charges: Iterable[MfsChargeRecord],
    scope_name: str,
    *,
    tariff: MfsTariff = DEFAULT_TARIFF,
    tolerance_minor: int = DEFAULT_MATCH_TOLERANCE_MINOR,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> List[ImpliedMfsCharge]:
    """Synthesise a charge for every MFS payment without a stored one.

    Payments by other methods are ignored. Output order follows the input
    order of ``payments``.
    """

    charges = list(existing_charges)
    implied: List[ImpliedMfsCharge] = []
    for payment in payments:
        if payment.payment_method is not PaymentMethod.MFS:
            continue
        if find_recorded_charge(
            payment,
            charges,
            tariff=tariff,
            tolerance_minor=tolerance_minor,
            currency_symbol=currency_symbol,
        ):
            continue
        implied.append(
            ImpliedMfsCharge(
                record_id=implied_charge_id(payment.record_id),
                source_record_id=payment.record_id,
                tender_id=payment.tender_id,
                occurred_on=payment.occurred_on,
                amount_minor=mfs_charge_minor(payment.amount_minor, tariff=tariff),
                base_amount_minor=payment.amount_minor,
                description=_implied_description(payment, scope_name, currency_symbol),
                payment_reference=payment.payment_reference,
                notes=(
                    f"Auto-generated: {tariff.describe()} MFS charge implied by "
                    f"payment {payment.record_id} to {scope_name}"
                ),
            )
        )
    LOGGER.debug(
        "Reconciled MFS charges for %s: %s implied against %s recorded",
        scope_name,
        len(implied),
        len(charges),
    )
    return implied
