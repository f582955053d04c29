"""Decimal utilities for trade amounts.

All quantities, prices, fees and rebates are carried as Decimal. Fee and rebate
amounts share a single rounding policy: DECIMAL_DIGITS places, ROUND_HALF_UP.
"""

from decimal import ROUND_HALF_UP, Decimal, DivisionByZero, InvalidOperation
from typing import Optional

# Fixed scale for derived fee/rebate amounts
DECIMAL_DIGITS = 8

_THOUSANDS_SEPARATORS = (",", "_", " ")


def parse_decimal(value: Optional[object]) -> Optional[Decimal]:
    """Parse a raw numeric value into a Decimal.

    Accepts Decimal, int, float (converted through str for precision) and
    strings such as "1,234.50". Empty strings map to None.

    Args:
        value: Raw value from an exchange payload or input file.

    Returns:
        Decimal value, or None if the value is absent.

    Raises:
        ValueError: If the value cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Cannot parse amount from boolean: {value!r}")
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    amount_str = str(value).strip()
    if not amount_str:
        return None
    for separator in _THOUSANDS_SEPARATORS:
        amount_str = amount_str.replace(separator, "")

    try:
        return Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Cannot parse amount '{value}': {e}") from e


def null_or_zero(amount: Optional[Decimal]) -> bool:
    """Return True if the amount is missing or numerically zero."""
    return amount is None or amount == 0


def scale_amount(amount: Decimal, decimal_places: int = DECIMAL_DIGITS) -> Decimal:
    """Round an amount to a fixed number of decimal places (half-up).

    Args:
        amount: Amount to round.
        decimal_places: Target scale (default DECIMAL_DIGITS).

    Returns:
        The amount quantized to exactly ``decimal_places`` digits.

    Raises:
        decimal.InvalidOperation: If the result does not fit the current
            decimal context precision.
    """
    return amount.quantize(Decimal(1).scaleb(-decimal_places), rounding=ROUND_HALF_UP)


def eval_unit_price(
    quote_amount: Optional[Decimal],
    volume: Optional[Decimal],
) -> Optional[Decimal]:
    """Derive a unit price as quote_amount / volume.

    Returns:
        The unit price, or None when either value is missing or the volume
        is zero.
    """
    if quote_amount is None or null_or_zero(volume):
        return None
    try:
        return quote_amount / volume  # type: ignore[operator]
    except (DivisionByZero, InvalidOperation):
        return None


def format_amount(amount: Optional[Decimal]) -> str:
    """Format a Decimal for tabular output without exponent notation.

    Args:
        amount: The amount to format, or None.

    Returns:
        Plain decimal string like "0.5" or "1.50000000", or "" for None.
    """
    if amount is None:
        return ""
    return format(amount, "f")

