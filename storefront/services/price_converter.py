# storefront/services/price_converter.py
"""
Currency conversion and price formatting shared by every view of the cart.

All conversions go through USD: rate tables are only ever fetched USD-based
(`rates[X]` = units of X per 1 USD), so X -> Y is always X -> USD -> Y.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Mapping

from storefront.domain.errors import CurrencyConversionError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW", "VND", "IDR", "CLP"})

CURRENCY_SYMBOLS = {
    "USD": "$", "INR": "₹", "GBP": "£", "EUR": "€", "JPY": "¥",
    "CAD": "C$", "AUD": "A$", "CNY": "¥", "BRL": "R$", "MXN": "MX$",
    "KRW": "₩", "SGD": "S$", "AED": "د.إ", "SAR": "﷼", "HKD": "HK$",
    "CHF": "CHF", "SEK": "kr", "NOK": "kr", "DKK": "kr", "PLN": "zł",
    "NZD": "NZ$", "THB": "฿", "MYR": "RM", "IDR": "Rp", "PHP": "₱",
    "ZAR": "R", "TRY": "₺", "ARS": "$", "CLP": "$", "CZK": "Kč",
    "TWD": "NT$",
}

_CENT = Decimal("0.01")
_UNIT = Decimal("1")


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def can_convert(from_currency: str, to_currency: str, rates: Mapping[str, Decimal]) -> bool:
    if from_currency == to_currency:
        return True
    return bool(rates.get("USD") and rates.get(from_currency) and rates.get(to_currency))


def convert(amount, from_currency: str, to_currency: str, rates: Mapping[str, Decimal]):
    """
    Convert `amount` from one currency to another via USD.

    Same currency returns `amount` untouched. A missing rate (or a table
    without USD) logs a warning and also returns `amount` untouched, so the
    caller shows the original price instead of failing.
    """
    if from_currency == to_currency:
        return amount

    if not can_convert(from_currency, to_currency, rates):
        logger.warning(f"Missing exchange rate for {from_currency} or {to_currency}")
        return amount

    value = _to_decimal(amount)
    usd = value if from_currency == "USD" else value / _to_decimal(rates[from_currency])
    return usd if to_currency == "USD" else usd * _to_decimal(rates[to_currency])


def convert_strict(amount, from_currency: str, to_currency: str, rates: Mapping[str, Decimal]) -> Decimal:
    """Like `convert`, but a missing rate raises instead of passing `amount` through."""
    if not can_convert(from_currency, to_currency, rates):
        raise CurrencyConversionError(f"No exchange rate for {from_currency} -> {to_currency}")
    return _to_decimal(convert(amount, from_currency, to_currency, rates))


def is_zero_decimal(currency: str) -> bool:
    return currency in ZERO_DECIMAL_CURRENCIES


def round_amount(amount, currency: str) -> Decimal:
    exp = _UNIT if is_zero_decimal(currency) else _CENT
    return _to_decimal(amount).quantize(exp, rounding=ROUND_HALF_UP)


def currency_symbol(currency: str) -> str:
    return CURRENCY_SYMBOLS.get(currency, f"{currency} ")


def format_price(amount, currency: str) -> str:
    rounded = round_amount(amount, currency)
    sign = "-" if rounded < 0 else ""
    rounded = abs(rounded)

    if is_zero_decimal(currency):
        numeral = f"{int(rounded):,}"
    else:
        numeral = f"{rounded:,.2f}"

    return f"{sign}{currency_symbol(currency)}{numeral}"


def to_minor_units(amount, currency: str) -> int:
    """Unit amount for the payment provider (cents, or whole units for JPY & co)."""
    if is_zero_decimal(currency):
        return int(round_amount(amount, currency))
    return int((_to_decimal(amount) * 100).quantize(_UNIT, rounding=ROUND_HALF_UP))
