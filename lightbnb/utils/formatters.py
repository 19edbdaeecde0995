from decimal import ROUND_HALF_UP, Decimal
from typing import Union

__all__ = ["to_cents", "format_amount"]

Amount = Union[int, float, str, Decimal]


def to_cents(amount: Amount, rounding: str = ROUND_HALF_UP) -> int:
    """Converts an amount in major currency units to whole cents.

    Rounds half-up unless another `decimal` rounding mode is given.
    """
    # str() first so floats like 150.1 keep their printed value
    value = Decimal(str(amount)) * 100
    return int(value.quantize(Decimal("1"), rounding=rounding))


def format_amount(amount_in_cents: int) -> str:
    """Formats an amount from cents to a human-readable string."""
    amount = Decimal(amount_in_cents) / 100
    # Format to 2 decimal places, trimming trailing zeros if it's a whole number
    return f"{amount:g}"
