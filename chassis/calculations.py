"""Helper functions for due date and status calculations."""

from datetime import date
from typing import Optional

from dateutil.relativedelta import relativedelta

from .dates import DateLike, INFINITE, days_until, to_date
from .status import Status
from .status_result import StatusResult

DEFAULT_SOON_DAYS = 30

ANNUAL = "annual"
BIT = "bit"
INSPECTION_KINDS = (ANNUAL, BIT)

# Renewal cycle per inspection kind
INSPECTION_INTERVALS = {
    ANNUAL: relativedelta(days=365),
    BIT: relativedelta(days=90),
}


def classify(
    value: DateLike, soon_days: int = DEFAULT_SOON_DAYS, today: Optional[date] = None
) -> StatusResult:
    """
    Classify a due date into a status tier.

    - No date: NONE
    - Date has passed: OVERDUE
    - Within soon_days (inclusive): DUE_SOON
    - Otherwise: OK
    """
    days = days_until(value, today)
    if days == INFINITE:
        return StatusResult(Status.NONE, "-", days)
    if days < 0:
        return StatusResult(Status.OVERDUE, f"Overdue {abs(days)}d", days)
    if days <= soon_days:
        return StatusResult(Status.DUE_SOON, f"Due in {days}d", days)
    return StatusResult(Status.OK, f"OK ({days}d)", days)


def aggregate(
    registration_due: DateLike,
    annual_due: DateLike,
    bit_due: DateLike,
    soon_days: int = DEFAULT_SOON_DAYS,
    today: Optional[date] = None,
) -> StatusResult:
    """Overall status: the classification of whichever date comes first."""
    results = [
        classify(value, soon_days, today)
        for value in (registration_due, annual_due, bit_due)
    ]
    return min(results, key=lambda r: r.days)


def _interval(kind: str) -> relativedelta:
    try:
        return INSPECTION_INTERVALS[kind]
    except KeyError:
        raise ValueError(f"Unknown inspection kind '{kind}'") from None


def inspection_due_date(kind: str, done_date: DateLike) -> str:
    """Due date for an inspection of ``kind`` completed on ``done_date``."""
    interval = _interval(kind)
    done = to_date(done_date)
    if done is None:
        return ""
    return (done + interval).isoformat()


def last_done_from_due(kind: str, due_date: DateLike) -> str:
    """Done date implied by a stored due date (used to pre-fill edits)."""
    interval = _interval(kind)
    due = to_date(due_date)
    if due is None:
        return ""
    return (due - interval).isoformat()
