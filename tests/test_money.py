"""Mini README: Tests for the integer money helpers.

Covers parsing of user and storage input, half-up rounding into poisha, and
the ``৳`` formatting the MFS reconciler relies on when scanning descriptions.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from tenderbooks.finance import InvalidAmount
from tenderbooks.finance.mfs import compute_mfs_charge
from tenderbooks.finance.money import (
    format_amount,
    from_minor_units,
    non_negative_minor_units,
    to_decimal,
    to_minor_units,
)


def test_to_minor_units_rounds_half_up() -> None:
    assert to_minor_units("1000") == 100000
    assert to_minor_units("2.675") == 268
    assert to_minor_units(0.125) == 13
    assert to_minor_units(Decimal("19.25")) == 1925


def test_from_minor_units_returns_two_places() -> None:
    assert from_minor_units(2850) == Decimal("28.50")
    assert str(from_minor_units(100000)) == "1000.00"


def test_format_amount_matches_description_style() -> None:
    """Formatted amounts must look like the ones written into charge descriptions."""

    assert format_amount(300000) == "৳3000.00"
    assert format_amount(-150) == "-৳1.50"
    assert format_amount(2850, symbol="Tk ") == "Tk 28.50"


@pytest.mark.parametrize("value", [True, None, "abc", "", float("nan"), "inf", [1]])
def test_to_decimal_rejects_non_amounts(value: object) -> None:
    with pytest.raises(InvalidAmount):
        to_decimal(value)  # type: ignore[arg-type]


def test_non_negative_minor_units_rejects_negative() -> None:
    with pytest.raises(InvalidAmount) as excinfo:
        non_negative_minor_units("-1")
    assert excinfo.value.value == "-1"
    assert isinstance(excinfo.value, ValueError)


def test_amounts_too_large_to_round_are_rejected() -> None:
    """Finite values beyond the rounding precision raise the domain error."""

    with pytest.raises(InvalidAmount):
        to_minor_units("1e30")
    with pytest.raises(InvalidAmount):
        compute_mfs_charge("1e30")
    assert to_minor_units("1e20") == 10**22
