"""Date helpers shared by the status engine and the ledger.

Dates are stored as ISO ``YYYY-MM-DD`` strings; an empty string means
"no date". Lexicographic order on that form is chronological order.
"""

import math
from datetime import date, datetime, timedelta
from typing import Optional, Union

from dateutil import parser as date_parser

DateLike = Union[date, datetime, str, None]

INFINITE = math.inf


def to_date(value: DateLike) -> Optional[date]:
    """Parse a date, datetime or string into a date. None if not possible."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError):
        return None


def to_iso(value: DateLike) -> str:
    """Canonical ``YYYY-MM-DD`` form, or "" for absent/unparsable input."""
    parsed = to_date(value)
    return parsed.isoformat() if parsed else ""


def add_days(value: DateLike, days: int) -> str:
    """Offset a date by ``days``. Returns "" instead of raising."""
    parsed = to_date(value)
    if parsed is None:
        return ""
    try:
        return (parsed + timedelta(days=days)).isoformat()
    except OverflowError:
        return ""


def subtract_days(value: DateLike, days: int) -> str:
    return add_days(value, -days)


def days_until(value: DateLike, today: Optional[date] = None) -> Union[int, float]:
    """
    Signed number of days from today to ``value``.

    Negative when the date has passed. Returns INFINITE when there is no
    date, so "nothing due" sorts after every real date.
    """
    parsed = to_date(value)
    if parsed is None:
        return INFINITE
    today = today or date.today()
    return (parsed - today).days


def format_human(value: DateLike) -> str:
    """Format for display, e.g. 'Jan 05, 2025'."""
    if value is None or value == "":
        return ""
    parsed = to_date(value)
    if parsed is None:
        return str(value)
    return parsed.strftime("%b %d, %Y")
