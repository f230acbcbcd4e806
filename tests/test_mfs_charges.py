"""Mini README: Tests for the MFS fee calculator.

Structure:
    * fee formula and rounding checks for MFS transfers.
    * non-MFS methods carry no fee.
    * invalid input raises ``InvalidAmount``.
    * breakdowns shown before confirming a transfer.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from tenderbooks.finance import InvalidAmount, MfsTariff, compute_mfs_charge, compute_total_with_charge
from tenderbooks.finance.mfs import DEFAULT_TARIFF, mfs_charge_minor


@pytest.mark.parametrize(
    ("amount", "expected"),
    [
        ("1000", Decimal("28.50")),
        ("3000", Decimal("65.50")),
        ("5000", Decimal("102.50")),
        ("25000", Decimal("472.50")),
        ("135", Decimal("12.50")),
        ("0", Decimal("10.00")),
    ],
)
def test_mfs_charge_follows_percentage_plus_fixed_fee(amount: str, expected: Decimal) -> None:
    assert compute_mfs_charge(amount) == expected


@pytest.mark.parametrize("method", ["cash", "bank", "due", "advance", "CASH"])
def test_non_mfs_methods_have_no_charge(method: str) -> None:
    assert compute_mfs_charge("1000", method) == Decimal("0.00")


def test_payment_method_is_case_insensitive() -> None:
    assert compute_mfs_charge("1000", " MFS ") == Decimal("28.50")


@pytest.mark.parametrize("amount", ["-1", "nan", "infinity", "not-a-number"])
def test_invalid_amounts_raise(amount: str) -> None:
    """Negative and non-finite amounts are rejected before the method is looked at."""

    with pytest.raises(InvalidAmount):
        compute_mfs_charge(amount)
    with pytest.raises(InvalidAmount):
        compute_mfs_charge(amount, "cash")


def test_unknown_payment_method_is_rejected() -> None:
    with pytest.raises(ValueError):
        compute_mfs_charge("1000", "cheque")


def test_breakdown_for_mfs_transfer() -> None:
    breakdown = compute_total_with_charge("1000", "mfs")

    assert breakdown.base == Decimal("1000.00")
    assert breakdown.percentage_charge == Decimal("18.50")
    assert breakdown.fixed_fee == Decimal("10.00")
    assert breakdown.charge == Decimal("28.50")
    assert breakdown.total == Decimal("1028.50")
    assert breakdown.as_dict()["total"] == "1028.50"


def test_breakdown_for_cash_has_zero_components() -> None:
    breakdown = compute_total_with_charge("1000", "cash")

    assert breakdown.charge == Decimal("0.00")
    assert breakdown.percentage_charge == Decimal("0.00")
    assert breakdown.total == Decimal("1000.00")


def test_custom_tariff_is_applied() -> None:
    tariff = MfsTariff(percentage_rate=Decimal("0.01"), fixed_fee=Decimal("5"))

    assert compute_mfs_charge("1000", tariff=tariff) == Decimal("15.00")
    assert tariff.describe() == "1% + 5"
    assert DEFAULT_TARIFF.describe() == "1.85% + 10"


def test_charge_in_minor_units() -> None:
    assert mfs_charge_minor(100000) == 2850
