"""Mini README: Tests for reconciling MFS payments against recorded charges.

Structure:
    * tier tests - reference, description amount and same-day tolerance.
    * find_implied_charges - synthesis, ordering and idempotence.
    * promotion round trip - a written-back charge is matched next time.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from tenderbooks.finance import (
    AdvanceRecord,
    MatchTier,
    MfsChargeRecord,
    PaymentMethod,
    UserScope,
    VendorPaymentRecord,
    find_implied_charges,
    find_recorded_charge,
)


def _advance(
    record_id: str = "adv_1",
    *,
    amount_minor: int = 100000,
    occurred_on: date = date(2024, 1, 10),
    method: PaymentMethod = PaymentMethod.MFS,
    reference: Optional[str] = "REF1",
) -> AdvanceRecord:
    return AdvanceRecord(
        record_id=record_id,
        tender_id="tnd_1",
        scope=UserScope("usr_1"),
        occurred_on=occurred_on,
        amount_minor=amount_minor,
        payment_method=method,
        payment_reference=reference,
    )


def _charge(
    record_id: str,
    *,
    amount_minor: int = 2850,
    occurred_on: date = date(2024, 1, 10),
    description: str = "[MFS CHARGE] Transfer fee",
    reference: Optional[str] = None,
) -> MfsChargeRecord:
    return MfsChargeRecord(
        record_id=record_id,
        tender_id="tnd_1",
        occurred_on=occurred_on,
        amount_minor=amount_minor,
        description=description,
        payment_reference=reference,
    )


def test_reference_tier_wins_over_later_tiers() -> None:
    """A reference match is preferred even when an earlier charge matches by date."""

    same_day = _charge("act_same_day")
    by_reference = _charge("act_ref", occurred_on=date(2024, 2, 1), amount_minor=5000, reference="REF1")

    match = find_recorded_charge(_advance(), [same_day, by_reference])

    assert match is not None
    assert match.tier is MatchTier.REFERENCE
    assert match.charge.record_id == "act_ref"


def test_description_amount_tier() -> None:
    charge = _charge(
        "act_desc",
        occurred_on=date(2024, 3, 1),
        amount_minor=0,
        description="[MFS CHARGE] Advance to Rahim ৳1000.00",
    )

    match = find_recorded_charge(_advance(reference=None), [charge])

    assert match is not None
    assert match.tier is MatchTier.DESCRIPTION_AMOUNT


def test_date_tier_uses_strict_tolerance() -> None:
    payment = _advance(reference=None)

    close = find_recorded_charge(payment, [_charge("act_close", amount_minor=2800)])
    boundary = find_recorded_charge(payment, [_charge("act_boundary", amount_minor=2750)])
    other_day = find_recorded_charge(payment, [_charge("act_other", occurred_on=date(2024, 1, 11))])

    assert close is not None and close.tier is MatchTier.DATE_WITHIN_TOLERANCE
    assert boundary is None
    assert other_day is None


def test_missing_references_never_match_each_other() -> None:
    charge = _charge("act_blank", occurred_on=date(2024, 5, 5), amount_minor=1)

    assert find_recorded_charge(_advance(reference=None), [charge]) is None


def test_implied_charge_is_synthesised_for_unmatched_mfs_payment() -> None:
    implied = find_implied_charges([_advance()], [], "Rahim Uddin")

    assert len(implied) == 1
    charge = implied[0]
    assert charge.record_id == "implied-adv_1"
    assert charge.source_record_id == "adv_1"
    assert charge.amount_minor == 2850
    assert charge.base_amount_minor == 100000
    assert charge.occurred_on == date(2024, 1, 10)
    assert charge.payment_reference == "REF1"
    assert charge.description == "[MFS CHARGE] Advance to Rahim Uddin ৳1000.00"
    assert "1.85% + 10" in (charge.notes or "")
    assert charge.is_implied


def test_non_mfs_payments_are_ignored() -> None:
    payments = [_advance("adv_cash", method=PaymentMethod.CASH), _advance("adv_bank", method=PaymentMethod.BANK)]

    assert find_implied_charges(payments, [], "Rahim Uddin") == []


def test_output_follows_payment_order_and_is_deterministic() -> None:
    payments = [
        _advance("adv_b", occurred_on=date(2024, 1, 20), reference=None),
        _advance("adv_a", occurred_on=date(2024, 1, 5), reference=None, amount_minor=50000),
    ]

    first = find_implied_charges(payments, [], "Karim")
    second = find_implied_charges(payments, [], "Karim")

    assert [charge.record_id for charge in first] == ["implied-adv_b", "implied-adv_a"]
    assert [charge.as_dict() for charge in first] == [charge.as_dict() for charge in second]


def test_vendor_payments_use_payment_wording() -> None:
    payment = VendorPaymentRecord(
        record_id="vpay_1",
        tender_id="tnd_1",
        vendor_id="ven_1",
        occurred_on=date(2024, 1, 10),
        amount_minor=2500000,
        payment_method=PaymentMethod.MFS,
    )

    (charge,) = find_implied_charges([payment], [], "Meghna Bricks")

    assert charge.description == "[MFS CHARGE] Payment to Meghna Bricks ৳25000.00"
    assert charge.amount_minor == 47250


def test_promoted_charge_is_not_implied_again() -> None:
    """Writing an implied charge back must make it a recorded match on the next pass."""

    for reference in ("REF1", None):
        payment = _advance(reference=reference)
        (implied,) = find_implied_charges([payment], [], "Rahim Uddin")
        stored = MfsChargeRecord.from_row({**implied.as_row(), "id": "act_9"})

        assert find_implied_charges([payment], [stored], "Rahim Uddin") == []


def test_single_recorded_charge_can_cover_matching_payments() -> None:
    """Matching does not consume charges, so identical payments share one match."""

    payments = [_advance("adv_1", reference=None), _advance("adv_2", reference=None)]
    charge = _charge("act_1", description="[MFS CHARGE] Advance to Rahim ৳1000.00")

    assert find_implied_charges(payments, [charge], "Rahim") == []


def test_promoted_charge_without_reference_or_amount_matches_by_date() -> None:
    """A stored fee whose text lost the amount is still found on the same day."""

    payment = _advance(reference=None)
    (implied,) = find_implied_charges([payment], [], "Rahim Uddin")
    stored = MfsChargeRecord.from_row(
        {**implied.as_row(), "id": "act_9", "payment_ref": None, "description": "[MFS CHARGE] Transfer fee"}
    )

    match = find_recorded_charge(payment, [stored])

    assert match is not None and match.tier is MatchTier.DATE_WITHIN_TOLERANCE
    assert find_implied_charges([payment], [stored], "Rahim Uddin") == []
