"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re
from typing import Any


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "CHF 123.45"
    - "-123.45"
    - "-$123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # Remove currency symbols and codes
    amount_str = re.sub(r"[$€£¥]|\b[A-Z]{3}\b", "", amount_str)
    amount_str = amount_str.replace(",", "").replace("'", "")
    amount_str = amount_str.strip()

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e!r}")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if is_negative else amount


def to_decimal(value: Any) -> Decimal:
    """Coerce a stored amount to Decimal, treating missing or non-numeric values as 0."""
    if value is None or isinstance(value, bool):
        return Decimal(0)
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return Decimal(0)
    return amount if amount.is_finite() else Decimal(0)


def is_blank_or_zero(value: Any) -> bool:
    """Return True for amounts that are missing, blank or numerically zero."""
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    try:
        return Decimal(str(value).strip()) == 0
    except InvalidOperation:
        return False


def count_decimal_places(value: Any) -> int:
    """Count the digits after the decimal point in an amount's raw representation.

    "50.00" counts 2 and the float 100.005 counts 3. Non-numeric values count 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    try:
        exponent = Decimal(str(value).strip()).as_tuple().exponent
    except InvalidOperation:
        return 0
    if not isinstance(exponent, int):
        return 0
    return -exponent if exponent < 0 else 0
