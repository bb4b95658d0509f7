"""
Month Keys and Money Rounding

A month key is a fixed-width `YYYY-MM` string. Because it is zero-padded,
lexical order on month keys is chronological order.

All money is `Decimal`, rounded half-up to 2 places wherever it is
persisted or returned.
"""

import calendar
import re
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

# ASCII digits only: `\d` also matches other scripts' digits
MONTH_KEY_PATTERN = re.compile(r"^[0-9]{4}-(0[1-9]|1[0-2])$")

MONEY_QUANTUM = Decimal("0.01")


def round_money(value: Union[Decimal, int, float, str]) -> Decimal:
    """Round an amount to 2 decimal places (half-up)."""
    if not isinstance(value, Decimal):
        # str() first so floats keep their printed value, not their binary one
        value = Decimal(str(value))
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def is_month_key(value: str) -> bool:
    return bool(MONTH_KEY_PATTERN.match(value))


def month_of(value: date) -> str:
    """Month key of a calendar date."""
    return f"{value.year:04d}-{value.month:02d}"


def split_month(month: str) -> tuple[int, int]:
    year, month_number = month.split("-")
    return int(year), int(month_number)


def month_bounds(month: str) -> tuple[date, date]:
    """
    Half-open date interval covering a month.

    Returns (first day of month, first day of next month).
    """
    year, month_number = split_month(month)
    start = date(year, month_number, 1)
    if month_number == 12:
        next_start = date(year + 1, 1, 1)
    else:
        next_start = date(year, month_number + 1, 1)
    return start, next_start


def days_in_month(month: str) -> int:
    year, month_number = split_month(month)
    return calendar.monthrange(year, month_number)[1]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utc_now().date()
