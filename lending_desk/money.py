"""
Money Helpers

Decimal precision and Brazilian real formatting for every amount and rate the
lending desk handles. NEVER uses float for monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from typing import Any, Union
import re

# Set global decimal context for financial precision
getcontext().prec = 28

CENT = Decimal('0.01')
ZERO = Decimal('0')
ONE = Decimal('1')
HUNDRED = Decimal('100')

CURRENCY_SYMBOL = "R$"
THOUSANDS_GROUPS = re.compile(r'^[1-9]\d{0,2}(\.\d{3})+$')


def to_decimal(value: Any) -> Decimal:
    """
    Convert a stored or user-supplied value to Decimal.

    Floats go through their string representation so that 0.1 stays 0.1.

    Raises:
        ValueError: If the value is None or not numeric
    """
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ValueError(f"Cannot convert {value!r} to Decimal")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Cannot convert {value!r} to Decimal")


def round_money(value: Union[Decimal, int, str]) -> Decimal:
    """Round to cents, half up"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percentage: Decimal) -> Decimal:
    """Unrounded `amount * percentage / 100`"""
    return amount * percentage / HUNDRED


def parse_amount(value: str) -> Decimal:
    """
    Parse a typed amount such as "R$ 1.234,56", "1234.56" or "3,5".

    A comma followed by at most two digits is a decimal separator (Brazilian
    format); dots in front of it are thousands separators. Without a comma,
    dots are thousands separators when the value carries the R$ symbol or
    every dot group has exactly three digits ("1.500" is 1500); otherwise a
    single dot is a decimal point ("1234.56", "3.5").

    Args:
        value: String representation of number

    Returns:
        Decimal value

    Raises:
        ValueError: If string cannot be converted to valid Decimal
    """
    if not value or not isinstance(value, str):
        raise ValueError("Value must be a non-empty string")

    clean_value = re.sub(r'[^\d.,\-+]', '', value.strip())

    if ',' in clean_value:
        integer_part, _, fraction = clean_value.rpartition(',')
        if len(fraction) <= 2:
            clean_value = integer_part.replace('.', '').replace(',', '') + '.' + fraction
        else:
            clean_value = clean_value.replace(',', '')
    elif CURRENCY_SYMBOL in value or THOUSANDS_GROUPS.match(clean_value.lstrip('+-')):
        clean_value = clean_value.replace('.', '')

    try:
        return Decimal(clean_value)
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal")


def format_brl(amount: Decimal) -> str:
    """Format as Brazilian reais: R$ 1.234,56"""
    rounded = round_money(amount)
    sign = "-" if rounded < ZERO else ""
    text = f"{abs(rounded):,.2f}"
    # swap separators: 1,234.56 -> 1.234,56
    text = text.replace(',', '_').replace('.', ',').replace('_', '.')
    return f"{sign}{CURRENCY_SYMBOL} {text}"


def format_percentage(value: Decimal) -> str:
    """Format a plain percentage (3.5 -> "3,50%")"""
    text = f"{to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP):.2f}"
    return text.replace('.', ',') + "%"
