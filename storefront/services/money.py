"""
Money Utilities - Safe Decimal operations for monetary values.

Avoids float precision issues by using Decimal throughout. Floats only
appear at JSON boundaries (persisted snapshot, API responses).
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

Numeric = Union[str, int, float, Decimal]

# Default precision for money operations (2 decimal places)
MONEY_PRECISION = Decimal("0.01")

# Precision for currencies displayed without minor units (JPY)
INTEGER_PRECISION = Decimal("1")


def to_decimal(value: Union[Numeric, None]) -> Decimal:
    """
    Convert any value to Decimal safely.

    Args:
        value: Value to convert (str, int, float, Decimal, or None)

    Returns:
        Decimal representation of the value, or Decimal("0") if None/invalid
    """
    if value is None:
        return Decimal("0")

    if isinstance(value, Decimal):
        return value

    if isinstance(value, bool):
        return Decimal("0")

    try:
        # Convert via string to avoid float precision issues
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")


def parse_decimal(value: object) -> Decimal | None:
    """
    Strict variant of to_decimal: None for anything that is not a finite number.

    Used where "missing" and "zero" must stay distinguishable (product prices,
    exchange rates).
    """
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (str, int, float, Decimal)):
        return None
    try:
        result = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not result.is_finite():
        return None
    return result


def round_money(value: Numeric, to_int: bool = False) -> Decimal:
    """
    Round monetary value to appropriate precision.

    Args:
        value: Value to round
        to_int: If True, round to integer (for JPY)

    Returns:
        Rounded Decimal value
    """
    decimal_value = to_decimal(value)
    precision = INTEGER_PRECISION if to_int else MONEY_PRECISION
    return decimal_value.quantize(precision, rounding=ROUND_HALF_UP)


def to_minor_units(value: Numeric) -> int:
    """
    Convert decimal amount to minor units (kobo/cents).

    Used for payment gateways that expect integer minor units.

    Args:
        value: Amount in major units (e.g., 2500.50 NGN)

    Returns:
        Amount in minor units (e.g., 250050 kobo)
    """
    decimal_value = to_decimal(value)
    return int((decimal_value * 100).to_integral_value(rounding=ROUND_HALF_UP))


def to_float(value: Numeric) -> float:
    """
    Convert Decimal to float for JSON serialization.

    Use only at API boundaries, not for internal calculations.
    """
    return float(to_decimal(value))


def to_json_number(value: Numeric) -> Union[int, float, str]:
    """
    Convert Decimal to the most compact JSON value that reads back exactly.

    Integral values become ints and short fractions become floats, so that
    a value written, read back and written again produces the same JSON
    text. Values a double cannot hold exactly (more than ~15 significant
    digits) are written as decimal strings.
    """
    decimal_value = to_decimal(value)
    if decimal_value == decimal_value.to_integral_value():
        return int(decimal_value)
    as_float = float(decimal_value)
    if Decimal(repr(as_float)) == decimal_value:
        return as_float
    return str(decimal_value)


def format_money(value: Numeric, currency: str) -> str:
    """
    Format monetary value with currency symbol.

    Args:
        value: Value to format
        currency: Currency code (NGN, USD, EUR, etc.)

    Returns:
        Formatted string with currency symbol, e.g. "₦2,000.00" or "-$49.87"
    """
    from storefront.services.currency import CURRENCY_SYMBOLS, INTEGER_CURRENCIES

    decimal_value = to_decimal(value)
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    sign = "-" if decimal_value < 0 else ""
    magnitude = abs(decimal_value)

    if currency in INTEGER_CURRENCIES:
        formatted = f"{int(round_money(magnitude, to_int=True)):,}"
    else:
        formatted = f"{round_money(magnitude):,.2f}"

    if symbol == currency:
        return f"{sign}{formatted} {currency}"
    return f"{sign}{symbol}{formatted}"
