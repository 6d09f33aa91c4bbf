"""
Currency tables

Single source of truth for the currencies the storefront can display and
for the approximate rates used when the live rate source is unreachable.
All rates are expressed relative to the base currency (NGN).
"""
from decimal import Decimal
from typing import Dict, Optional

# Currency symbols mapping
CURRENCY_SYMBOLS: Dict[str, str] = {
    "NGN": "₦",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "GHS": "₵",
    "JPY": "¥",
}

SUPPORTED_CURRENCIES = frozenset(CURRENCY_SYMBOLS)

# Currencies that should be displayed as integers (no decimals)
INTEGER_CURRENCIES = {"JPY"}

# Conservative approximations, 1 NGN = X target.
# Used only when the live fetch fails.
FALLBACK_RATES: Dict[str, Decimal] = {
    "USD": Decimal("0.00067"),
    "EUR": Decimal("0.00062"),
    "GBP": Decimal("0.00053"),
    "GHS": Decimal("0.008"),
    "JPY": Decimal("0.1"),
    "NGN": Decimal("1"),
}


def normalize_currency(code: Optional[str]) -> Optional[str]:
    """
    Normalize a currency code ("usd " -> "USD").

    Returns:
        Upper-cased three-letter code, or None if the input is not one
    """
    if not code or not isinstance(code, str):
        return None
    normalized = code.strip().upper()
    if len(normalized) != 3 or not normalized.isalpha():
        return None
    return normalized
