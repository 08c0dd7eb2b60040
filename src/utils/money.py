"""Decimal helpers shared by models and calculations."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[Decimal, int, float, str]

PAISE = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Number) -> Decimal:
    """Convert without float artefacts (0.1 stays 0.1)."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def money(value: Number) -> Decimal:
    """Round to paise, half away from zero."""
    return to_decimal(value).quantize(PAISE, rounding=ROUND_HALF_UP)


def whole(value: Number) -> Decimal:
    """Round to whole rupees."""
    return to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
