"""
Display formatting for amounts and dates.

Amounts follow the de-CH convention used on Swiss invoices:
two fraction digits and an apostrophe (’) between thousands.
"""

import math
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional, Union

DateLike = Union[date, datetime, str]

THOUSANDS_SEPARATOR = "’"
CENT = Decimal("0.01")


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Convert a number-like value to a finite Decimal.

    Returns None for None, blank strings, non-numeric text,
    NaN and infinities.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            return None
        number = Decimal(str(value))
    elif isinstance(value, int):
        number = Decimal(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = Decimal(text)
        except InvalidOperation:
            return None
    if not number.is_finite():
        return None
    return number


def to_non_negative(value: Any) -> Decimal:
    """Like to_decimal, but missing, invalid and negative values become 0."""
    number = to_decimal(value)
    if number is None or number < 0:
        return Decimal("0")
    return number


def fmt_chf(value: Any) -> str:
    """
    Format an amount as a de-CH currency string without symbol.

    >>> fmt_chf(1234.5)
    '1’234.50'
    >>> fmt_chf(None)
    '0.00'
    """
    number = to_decimal(value)
    if number is None:
        return "0.00"
    rounded = number.quantize(CENT, rounding=ROUND_HALF_UP)
    return f"{rounded:,.2f}".replace(",", THOUSANDS_SEPARATOR)


def parse_datetime(value: DateLike) -> datetime:
    """Date, datetime or ISO string (a trailing "Z" included) as a datetime."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = value.strip()
    # fromisoformat() only learned the trailing "Z" in 3.11
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _as_utc(value: DateLike) -> datetime:
    dt = parse_datetime(value)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt


def fmt_date(value: Optional[DateLike]) -> str:
    """Calendar day (YYYY-MM-DD) of a date, timestamp or ISO string."""
    if value is None or value == "":
        return ""
    return _as_utc(value).date().isoformat()


def month_key(value: DateLike) -> str:
    """Year-month key (YYYY-MM) used by the monthly overview."""
    dt = _as_utc(value)
    return f"{dt.year:04d}-{dt.month:02d}"
