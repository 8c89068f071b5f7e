"""
Tests for decimal helpers and real formatting
"""

import pytest
from decimal import Decimal

from lending_desk.money import (
    format_brl, format_percentage, parse_amount, percent_of, round_money, to_decimal,
)


class TestConversion:
    """Test Decimal conversion and rounding"""

    def test_float_keeps_its_text(self):
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal("2.50") == Decimal("2.50")
        assert to_decimal(3) == Decimal("3")

    @pytest.mark.parametrize("value", [None, True, "abc"])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(ValueError):
            to_decimal(value)

    def test_round_half_up(self):
        assert round_money("2.345") == Decimal("2.35")
        assert round_money("2.344") == Decimal("2.34")
        assert round_money(Decimal("-2.345")) == Decimal("-2.35")

    def test_percent_of_is_unrounded(self):
        assert percent_of(Decimal("100000"), Decimal("0.8")) == Decimal("800")
        assert percent_of(Decimal("33.33"), Decimal("3")) == Decimal("0.9999")


class TestParseAmount:
    """Test typed amounts in both notations"""

    @pytest.mark.parametrize("text,expected", [
        ("R$ 1.234,56", Decimal("1234.56")),
        ("1234.56", Decimal("1234.56")),
        ("3,5", Decimal("3.5")),
        ("1.234.567", Decimal("1234567")),
        ("1,234", Decimal("1234")),
        (" 100 ", Decimal("100")),
        # dots are thousands separators next to the currency symbol
        ("R$ 100.000", Decimal("100000")),
        ("R$ 1.500", Decimal("1500")),
        # three-digit dot groups are thousands separators
        ("1.500", Decimal("1500")),
        ("100.000", Decimal("100000")),
        # anything else keeps a single dot as the decimal point
        ("3.5", Decimal("3.5")),
        ("0.800", Decimal("0.800")),
        ("1500.00", Decimal("1500.00")),
        ("-1.500", Decimal("-1500")),
    ])
    def test_parse(self, text, expected):
        assert parse_amount(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "R$"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_amount(text)


class TestFormatting:
    """Test display formats"""

    def test_format_brl(self):
        assert format_brl(Decimal("1234.56")) == "R$ 1.234,56"
        assert format_brl(Decimal("9000")) == "R$ 9.000,00"
        assert format_brl(Decimal("0.005")) == "R$ 0,01"
        assert format_brl(Decimal("-10")) == "-R$ 10,00"
        assert format_brl(Decimal("1234567.8")) == "R$ 1.234.567,80"

    def test_format_percentage(self):
        assert format_percentage(Decimal("3.5")) == "3,50%"
        assert format_percentage(Decimal("33.333")) == "33,33%"
