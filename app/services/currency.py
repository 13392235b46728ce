# app/services/currency.py
#
# Currency helpers: the list of supported codes and amount formatting.

import logging
import math
from typing import Dict, List

import config

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = config.DEFAULT_CURRENCY

COMMON_CURRENCIES: List[Dict[str, str]] = [
    {"code": "USD", "name": "United States Dollar"},
    {"code": "EUR", "name": "Euro"},
    {"code": "JPY", "name": "Japanese Yen"},
    {"code": "GBP", "name": "British Pound Sterling"},
    {"code": "AUD", "name": "Australian Dollar"},
    {"code": "CAD", "name": "Canadian Dollar"},
    {"code": "CHF", "name": "Swiss Franc"},
    {"code": "CNY", "name": "Chinese Yuan Renminbi"},
    {"code": "INR", "name": "Indian Rupee"},
    {"code": "BRL", "name": "Brazilian Real"},
    {"code": "RUB", "name": "Russian Ruble"},
    {"code": "KRW", "name": "South Korean Won"},
    {"code": "SGD", "name": "Singapore Dollar"},
    {"code": "NZD", "name": "New Zealand Dollar"},
    {"code": "MXN", "name": "Mexican Peso"},
]

CURRENCY_CODES = {c["code"] for c in COMMON_CURRENCIES}

_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "JPY": "¥",
    "GBP": "£",
    "AUD": "A$",
    "CAD": "CA$",
    "CHF": "CHF ",
    "CNY": "CN¥",
    "INR": "₹",
    "BRL": "R$",
    "RUB": "RUB ",
    "KRW": "₩",
    "SGD": "SGD ",
    "NZD": "NZ$",
    "MXN": "MX$",
}


def format_currency(amount: float, currency_code: str = DEFAULT_CURRENCY) -> str:
    """
    Format an amount with two decimals and the currency symbol.

    Unknown codes fall back to USD formatting.
    """
    code = (currency_code or "").strip().upper()
    if code not in _SYMBOLS:
        logger.warning("[currency] Unknown currency code %r, falling back to USD", currency_code)
        code = "USD"

    value = float(amount or 0.0)
    sign = "-" if value < 0 else ""
    return f"{sign}{_SYMBOLS[code]}{abs(value):,.2f}"



def format_amount_rounded(amount: float, currency_code: str) -> str:
    # Report tables use whole units, rounded half-up: "USD 1,235"
    value = float(amount or 0.0)
    return f"{currency_code} {int(math.floor(value + 0.5)):,}"
