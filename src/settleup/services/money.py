from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

MINOR_UNIT = Decimal("0.01")
DEFAULT_TOLERANCE = Decimal("0.01")
ZERO = Decimal("0")

Number = Union[Decimal, int, str, float]


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # через str, иначе Decimal(0.1) тащит двоичный хвост
        return Decimal(str(value))
    return Decimal(value)


def quantize(value: Number) -> Decimal:
    """Round to the currency's minor unit, halves away from zero."""
    return to_decimal(value).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def format_amount(value: Number) -> str:
    return f"{quantize(value):.2f}"
