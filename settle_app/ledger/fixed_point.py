"""
Fixed-point encoding of on-chain amounts.

Amounts travel as integers scaled by ``10 ** decimals``. Decoding and all
downstream arithmetic happen in ``decimal.Decimal`` under EXACT_CONTEXT,
which traps on any rounding instead of silently losing precision.
"""

from decimal import (
    Context,
    Decimal,
    DivisionByZero,
    Inexact,
    InvalidOperation,
    Overflow,
    localcontext,
)
from typing import Union

from .models import parse_quantity

# Two 256-bit fixed-point values multiplied together fit well inside 200 digits.
EXACT_CONTEXT = Context(
    prec=200,
    traps=[Inexact, InvalidOperation, DivisionByZero, Overflow],
)

Amount = Union[Decimal, int, str]


def to_decimal(value: Amount) -> Decimal:
    """Convert an amount to Decimal, refusing binary floats."""
    if isinstance(value, float):
        raise TypeError("Floating-point amounts are not accepted; use Decimal, int or str")
    if isinstance(value, Decimal):
        return value
    return Decimal(value)


def format_amount(value: Decimal) -> str:
    """Plain decimal string without exponent or trailing zeros: 0E-18 -> "0"."""
    if not value:
        return "0"
    with localcontext(EXACT_CONTEXT):
        return format(value.normalize(), "f")


class FixedPointCodec:
    """Scales human amounts to ledger integers and back."""

    def __init__(self, decimals: int = 18):
        self.decimals = decimals

    def fix(self, value: Amount) -> int:
        """Encode ``value`` as a scaled integer; sub-unit dust is an error."""
        with localcontext(EXACT_CONTEXT):
            scaled = to_decimal(value).scaleb(self.decimals)
            integral = scaled.to_integral_value()
        if scaled != integral:
            raise ValueError(
                f"{value} has more than {self.decimals} fractional digits"
            )
        return int(integral)

    def unfix(self, raw: Union[int, str]) -> Decimal:
        """Decode a scaled integer (int or hex string) to a Decimal amount."""
        with localcontext(EXACT_CONTEXT):
            return Decimal(parse_quantity(raw)).scaleb(-self.decimals)

    def __repr__(self) -> str:
        return f"FixedPointCodec(decimals={self.decimals})"
