"""
Currency conversion and formatting.

Rates come from a static demo table; nothing here talks to a rate service.
"""

import re
from typing import Callable, Dict, List

from spendsight_mcp.models.transaction import Transaction

RateLookup = Callable[[str, str], float]

STATIC_EXCHANGE_RATES: Dict[str, Dict[str, float]] = {
    "USD": {"USD": 1, "EUR": 0.92, "GBP": 0.79, "CAD": 1.36, "AUD": 1.53, "JPY": 149.5},
    "EUR": {"USD": 1.09, "EUR": 1, "GBP": 0.86, "CAD": 1.48, "AUD": 1.67, "JPY": 163.5},
    "GBP": {"USD": 1.27, "EUR": 1.16, "GBP": 1, "CAD": 1.72, "AUD": 1.94, "JPY": 190.0},
    "CAD": {"USD": 0.74, "EUR": 0.68, "GBP": 0.58, "CAD": 1, "AUD": 1.13, "JPY": 110.0},
    "AUD": {"USD": 0.65, "EUR": 0.60, "GBP": 0.51, "CAD": 0.88, "AUD": 1, "JPY": 97.5},
    "JPY": {"USD": 0.0067, "EUR": 0.0061, "GBP": 0.0053, "CAD": 0.0091, "AUD": 0.0103, "JPY": 1},
}

CURRENCY_SYMBOLS: Dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "CAD": "C$",
    "AUD": "A$",
    "JPY": "¥",
}

_NON_NUMERIC = re.compile(r"[^\d.-]")


def get_exchange_rate(from_currency: str, to_currency: str) -> float:
    """Rate from one currency to another; 1 for unknown pairs."""
    if from_currency == to_currency:
        return 1.0
    return STATIC_EXCHANGE_RATES.get(from_currency, {}).get(to_currency) or 1.0


def convert_currency(amount: float, from_currency: str, to_currency: str) -> float:
    """
    Convert an amount, rounded to cents.

    Unknown source currencies fall back to the USD row of the table.
    """
    if from_currency == to_currency:
        return amount

    rate = (
        STATIC_EXCHANGE_RATES.get(from_currency, {}).get(to_currency)
        or STATIC_EXCHANGE_RATES["USD"].get(to_currency)
        or 1
    )
    return round(amount * rate, 2)


def with_conversion(
    txn: Transaction,
    to_currency: str,
    rate: RateLookup = get_exchange_rate,
) -> Transaction:
    """
    Return a copy of ``txn`` carrying its value in ``to_currency``.

    The recorded amount and currency stay untouched; the original values,
    the converted amount and its currency are filled in as provenance.
    """
    to_currency = to_currency.upper()
    converted = round(txn.amount * rate(txn.currency, to_currency), 2)
    return txn.model_copy(
        update={
            "original_amount": txn.amount,
            "original_currency": txn.currency,
            "converted_amount": converted,
            "converted_currency": to_currency,
        }
    )


def format_currency(amount: float, currency: str) -> str:
    symbol = get_currency_symbol(currency)
    return f"{symbol}{amount:.2f}"


def parse_currency_amount(formatted: str) -> float:
    """Parse a formatted amount like "$1,234.50"; 0 when unparseable."""
    cleaned = _NON_NUMERIC.sub("", formatted)
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def get_supported_currencies() -> List[str]:
    return list(STATIC_EXCHANGE_RATES)


def is_valid_currency(currency: str) -> bool:
    return currency.upper() in STATIC_EXCHANGE_RATES


def get_currency_symbol(currency: str) -> str:
    return CURRENCY_SYMBOLS.get(currency, currency)
