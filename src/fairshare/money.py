"""Fixed-point money arithmetic.

Every amount is a Python ``int`` holding the value multiplied by ``SCALE``
(4 implied decimal digits). Floats are accepted only at the ``to_scaled``
boundary and are converted through ``Decimal`` before scaling.
"""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from pydantic import Strict

from .exceptions import ValidationError, ValidationErrorCode

SCALE = 10_000

# Strict int: pydantic rejects floats, numeric strings and bools for money fields
ScaledInt = Annotated[int, Strict()]

_CENT = Decimal("0.01")
_UNIT = Decimal("1")


def _to_decimal(amount: Decimal | int | str | float) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        return Decimal(str(amount))
    return Decimal(amount)


def _truncating_div(dividend: int, divisor: int) -> int:
    """Integer division rounding toward zero (``//`` floors)."""
    quotient = abs(dividend) // abs(divisor)
    return -quotient if (dividend < 0) != (divisor < 0) else quotient


def to_scaled(amount: Decimal | int | str | float) -> int:
    """
    Convert a decimal amount to a scaled integer.

    Uses ROUND_HALF_UP, which on Decimal rounds half away from zero.

    Args:
        amount: Amount in currency units (e.g. ``Decimal("12.34")``)

    Returns:
        Amount scaled by 10,000

    Raises:
        ValidationError: If the amount is NaN or infinite
    """
    value = _to_decimal(amount)
    if not value.is_finite():
        raise ValidationError(
            f"Cannot scale non-finite amount: {amount}",
            ValidationErrorCode.INVALID_TYPE,
            "amount",
        )
    return int((value * SCALE).quantize(_UNIT, rounding=ROUND_HALF_UP))


def from_scaled(scaled: int) -> Decimal:
    """Convert a scaled integer back to currency units (display/debug only)."""
    return Decimal(scaled) / SCALE


def format_number(scaled: int) -> str:
    """Render a scaled amount with exactly two decimal digits."""
    return str(from_scaled(scaled).quantize(_CENT, rounding=ROUND_HALF_UP))


def format_currency(scaled: int, currency_symbol: str = "") -> str:
    """Render a scaled amount prefixed with an optional currency symbol."""
    return f"{currency_symbol}{format_number(scaled)}"


def multiply_scaled(a: int, b: int) -> int:
    """Multiply two scaled integers, removing the redundant scale factor."""
    return _truncating_div(a * b, SCALE)


def divide_scaled(dividend: int, divisor: int) -> int:
    """Divide a scaled integer by a plain integer, truncating toward zero."""
    if divisor == 0:
        raise ValidationError(
            "divisor cannot be zero", ValidationErrorCode.DIVISION_BY_ZERO, "divisor"
        )
    return _truncating_div(dividend, divisor)


def sum_scaled(values: Iterable[int]) -> int:
    """Sum scaled integers; an empty sequence sums to zero."""
    return sum(values, 0)


class ScaledPercentage:
    """A percentage held at 4-decimal precision, e.g. 33.3333% -> 333333."""

    __slots__ = ("percent4dp",)

    def __init__(self, percent: Decimal | int | str | float):
        self.percent4dp = to_scaled(percent)

    def calculate_share(self, total_scaled: int) -> int:
        """Portion of ``total_scaled`` this percentage covers, truncated."""
        return _truncating_div(total_scaled * self.percent4dp, 100 * SCALE)

    def to_decimal(self) -> Decimal:
        return from_scaled(self.percent4dp)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScaledPercentage):
            return NotImplemented
        return self.percent4dp == other.percent4dp

    def __hash__(self) -> int:
        return hash(self.percent4dp)

    def __repr__(self) -> str:
        return f"ScaledPercentage({self.to_decimal()})"
