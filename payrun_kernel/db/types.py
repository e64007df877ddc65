"""
Module: payrun_kernel.db.types
Responsibility: Annotated type aliases and helpers for monetary columns.
    Centralizes precision and rounding so that every model and service uses
    identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Amounts are Decimal quantized to MONEY_DECIMAL_PLACES (2).  round_money()
      is the ONLY sanctioned rounding function for monetary values.
    - No floats anywhere in the payrun kernel.

Failure modes:
    - InvalidAmountError from parse_amount() on non-numeric, non-finite or
      negative input.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated

from sqlalchemy import Numeric, String, Text

from payrun_kernel.exceptions import InvalidAmountError

# Monetary amount: 12 digits total, 2 decimal places
Money = Annotated[Decimal, Numeric(12, 2)]

# Display labels (person name, role)
Label = Annotated[str, String(255)]

# Free text (work description)
LongText = Annotated[str, Text()]

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP
ZERO = Decimal("0.00")
# Largest value Numeric(12, 2) stores
MAX_AMOUNT = Decimal("9999999999.99")


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def parse_amount(value: Decimal | int | str) -> Decimal:
    """
    Convert caller input to a non-negative, rounded monetary Decimal.

    Floats are rejected outright: their binary representation cannot carry
    cents exactly.

    Raises:
        InvalidAmountError: If value is a float, not numeric, not finite,
            negative, or too large for a money column.
    """
    if isinstance(value, float) or isinstance(value, bool):
        raise InvalidAmountError(value, "use Decimal, int or str, not float/bool")
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(value, "not a number")
    if not amount.is_finite():
        raise InvalidAmountError(value, "not finite")
    if amount < 0:
        raise InvalidAmountError(value, "must not be negative")
    amount = round_money(amount)
    if amount > MAX_AMOUNT:
        raise InvalidAmountError(value, f"must not exceed {MAX_AMOUNT}")
    return amount
