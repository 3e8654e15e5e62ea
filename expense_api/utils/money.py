"""
Money helpers

Amounts are stored as NUMERIC(18, 2) and handled as ``Decimal``. Derived
figures (percentages, averages) are rounded half to even to two places.
"""

from decimal import ROUND_HALF_EVEN, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    """Convert request floats and DB values to ``Decimal`` without binary noise."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """``part / whole * 100``, or zero when ``whole`` is zero. Not rounded."""
    if whole == 0:
        return ZERO
    return part / whole * HUNDRED
