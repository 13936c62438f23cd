"""Money helpers. All amounts travel as integer cents (ZAR)."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

CURRENCY_SYMBOL = "R"
EMPTY_PRICE = "—"


def round_half_up(value: Union[int, float, Decimal]) -> int:
    """Round to the nearest integer with halves going up, like JavaScript's Math.round."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_cents(value: Union[int, str, None]) -> Optional[int]:
    """Coerce an API amount (the backend sends some cents as strings) to int."""
    if value is None or value == "":
        return None
    return int(value)


def format_price(cents: Optional[int]) -> str:
    """
    Render cents as a display price.

    >>> format_price(123450)
    'R 1,234.50'
    >>> format_price(None)
    '—'
    """
    if cents is None:
        return EMPTY_PRICE

    amount = (Decimal(int(cents)) / Decimal(100)).quantize(Decimal("0.01"))
    sign = "-" if amount < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL} {abs(amount):,.2f}"


def format_duration(minutes: int) -> str:
    """`45` -> `45min`, `90` -> `1h 30min`, `120` -> `2h`."""
    hours, mins = divmod(int(minutes), 60)
    if hours and mins:
        return f"{hours}h {mins}min"
    if hours:
        return f"{hours}h"
    return f"{mins}min"
