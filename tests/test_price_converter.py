"""
Tests for storefront/services/price_converter.py.

Covers:
- same-currency conversion is the identity, whatever the rate table holds
- two-hop conversion through USD and the round trip back
- missing rates degrade to the unconverted amount, or raise in strict mode
- rounding and display formatting, zero-decimal currencies included
- minor units for the payment provider
"""

from decimal import Decimal

import pytest

from storefront.domain.errors import CurrencyConversionError
from storefront.services.price_converter import (
    can_convert,
    convert,
    convert_strict,
    currency_symbol,
    format_price,
    round_amount,
    to_minor_units,
)

RATES = {"USD": Decimal("1"), "EUR": Decimal("0.9"), "JPY": Decimal("150"), "GBP": Decimal("0.8")}


class TestConvert:

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("7.35"), 12.5, 3])
    def test_same_currency_returns_amount_untouched(self, amount):
        assert convert(amount, "EUR", "EUR", {}) is amount
        assert convert(amount, "USD", "USD", RATES) is amount

    def test_usd_to_eur(self):
        assert convert(Decimal("10"), "USD", "EUR", RATES) == Decimal("9.00")

    def test_eur_to_usd(self):
        assert convert(Decimal("9"), "EUR", "USD", RATES) == Decimal("10.00")

    def test_cross_rate_goes_through_usd(self):
        # 9 EUR -> 10 USD -> 1500 JPY
        assert convert(Decimal("9"), "EUR", "JPY", RATES) == Decimal("1500")

    def test_float_amounts_are_accepted(self):
        assert convert(10.0, "USD", "GBP", RATES) == Decimal("8.0")

    def test_round_trip_within_rounding(self):
        for source, target in [("EUR", "JPY"), ("GBP", "EUR"), ("USD", "JPY")]:
            there = convert(Decimal("19.99"), source, target, RATES)
            back = convert(there, target, source, RATES)
            assert round_amount(back, source) == Decimal("19.99")

    def test_missing_rate_returns_amount(self):
        amount = Decimal("5")
        assert convert(amount, "USD", "CHF", RATES) is amount
        assert convert(amount, "CHF", "EUR", RATES) is amount

    def test_table_without_usd_returns_amount(self):
        amount = Decimal("5")
        assert convert(amount, "EUR", "GBP", {"EUR": Decimal("0.9"), "GBP": Decimal("0.8")}) is amount

    def test_zero_rate_counts_as_missing(self):
        amount = Decimal("5")
        assert convert(amount, "EUR", "USD", {"USD": Decimal("1"), "EUR": Decimal("0")}) is amount

    def test_can_convert(self):
        assert can_convert("EUR", "JPY", RATES)
        assert can_convert("CHF", "CHF", {})
        assert not can_convert("EUR", "CHF", RATES)

    def test_strict_conversion_raises_on_missing_rate(self):
        assert convert_strict(Decimal("10"), "USD", "EUR", RATES) == Decimal("9.0")
        assert convert_strict(3, "CHF", "CHF", {}) == Decimal("3")
        with pytest.raises(CurrencyConversionError):
            convert_strict(Decimal("10"), "USD", "CHF", RATES)


class TestFormatting:

    def test_round_amount_two_decimals(self):
        assert round_amount(Decimal("1.005"), "USD") == Decimal("1.01")
        assert round_amount(Decimal("2.344"), "EUR") == Decimal("2.34")

    def test_round_amount_zero_decimal(self):
        assert round_amount(Decimal("1499.5"), "JPY") == Decimal("1500")
        assert round_amount(Decimal("1499.4"), "KRW") == Decimal("1499")

    def test_format_standard_currency(self):
        assert format_price(Decimal("1234.5"), "USD") == "$1,234.50"
        assert format_price(Decimal("7"), "EUR") == "€7.00"
        assert format_price(Decimal("257.6"), "TWD") == "NT$257.60"

    def test_format_zero_decimal_currency(self):
        assert format_price(Decimal("123456.7"), "JPY") == "¥123,457"
        assert format_price(Decimal("15450"), "IDR") == "Rp15,450"

    def test_format_unknown_currency_uses_code(self):
        assert format_price(Decimal("10"), "XYZ") == "XYZ 10.00"
        assert currency_symbol("XYZ") == "XYZ "

    def test_format_negative_amount(self):
        assert format_price(Decimal("-1.3"), "USD") == "-$1.30"


class TestMinorUnits:

    def test_cents(self):
        assert to_minor_units(Decimal("11.70"), "USD") == 1170
        assert to_minor_units(Decimal("0.125"), "EUR") == 13

    def test_zero_decimal_currency_uses_whole_units(self):
        assert to_minor_units(Decimal("1500.4"), "JPY") == 1500
