"""Mini README: Money helpers working in integer minor units.

Structure:
    * to_decimal - coerce user or storage input into a finite ``Decimal``.
    * to_minor_units / from_minor_units - convert between taka and poisha.
    * format_amount - render ``৳1234.50`` style strings.

Amounts inside the ledger are plain ``int`` poisha so that sums never drift.
Rounding is half-up to two places and happens once, when a value enters or
leaves the integer representation.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from .exceptions import InvalidAmount

MINOR_UNITS_PER_MAJOR = 100
CENT = Decimal("0.01")
DEFAULT_CURRENCY_SYMBOL = "৳"

AmountLike = Union[int, float, str, Decimal]


def to_decimal(value: AmountLike) -> Decimal:
    """Parse ``value`` into a finite ``Decimal`` or raise ``InvalidAmount``."""

    if isinstance(value, bool):
        raise InvalidAmount(value, "booleans are not amounts")
    try:
        if isinstance(value, Decimal):
            parsed = value
        elif isinstance(value, float):
            parsed = Decimal(str(value))
        elif isinstance(value, (int, str)):
            parsed = Decimal(value.strip() if isinstance(value, str) else value)
        else:
            raise InvalidAmount(value, "unsupported type")
    except InvalidOperation as error:
        raise InvalidAmount(value, "not a number") from error
    if not parsed.is_finite():
        raise InvalidAmount(value, "amount must be finite")
    return parsed


def round_half_up(value: Decimal) -> Decimal:
    """Quantize to two places; values too large for the context raise ``InvalidAmount``."""

    try:
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as error:
        raise InvalidAmount(value, "too many digits to round to two places") from error


def to_minor_units(value: AmountLike) -> int:
    """Return ``value`` as whole poisha, rounding half-up once."""

    return int(round_half_up(to_decimal(value)) * MINOR_UNITS_PER_MAJOR)


def non_negative_minor_units(value: AmountLike) -> int:
    """Like ``to_minor_units`` but rejects negative amounts."""

    minor = to_minor_units(value)
    if minor < 0:
        raise InvalidAmount(value, "amount must not be negative")
    return minor


def from_minor_units(minor: int) -> Decimal:
    """Return a two-place ``Decimal`` for an integer poisha amount."""

    return (Decimal(minor) / MINOR_UNITS_PER_MAJOR).quantize(CENT)


def format_amount(minor: int, symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    """Format poisha as ``<symbol><major>.<minor>``, e.g. ``৳1000.00``."""

    value = from_minor_units(minor)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):.2f}"
