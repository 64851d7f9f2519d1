"""Decimal helpers for monetary amounts.

Amounts are stored as JSON numbers rounded to cents and handled as
``Decimal`` in memory so sums are reproducible.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Convert a stored number or string to Decimal without float noise.

    Raises:
        ValueError: If the value is not numeric.
    """
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Not a monetary amount: {value!r}") from e


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_json_number(value: Decimal) -> float:
    """Serialize a cent-rounded Decimal for a JSON document."""
    return float(round_money(value))


def format_amount(value: Decimal) -> str:
    """Format an amount the way payment providers expect ("160.00")."""
    return f"{round_money(value):.2f}"
