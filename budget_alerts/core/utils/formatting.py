"""Display formatting for cost amounts."""

from decimal import Decimal
from typing import Union

Number = Union[int, float, Decimal]


def format_currency(amount: Number, currency: str = "USD") -> str:
    """
    Format a currency amount with two fraction digits and thousands separators.

    format_currency(1234.5)  -> "$1,234.50"
    format_currency(-5)      -> "-$5.00"
    format_currency(10, "EUR") -> "10.00 EUR"
    """
    sign = "-" if amount < 0 else ""
    magnitude = abs(amount)
    if currency == "USD":
        return f"{sign}${magnitude:,.2f}"
    return f"{sign}{magnitude:,.2f} {currency}"
