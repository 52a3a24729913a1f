"""Fixed-point money helpers (2 decimal places)"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """Quantize to cents; floats go through str() to avoid binary artefacts"""
    if value is None:
        return ZERO
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def sum_money(values: Iterable[Number]) -> Decimal:
    total = ZERO
    for value in values:
        total += to_money(value)
    return total
