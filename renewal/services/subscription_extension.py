"""
Subscription due-date extension.

Renewing early extends from the current due date; renewing a lapsed
subscription extends from today, so nobody pays for days already lost.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Union

DEFAULT_EXTENSION_DAYS = 30

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def compute_new_due_date(
    current_due_date: Optional[DateLike],
    now: DateLike,
    days: int = DEFAULT_EXTENSION_DAYS,
) -> date:
    """
    New due date = max(current due date, today) + ``days``, as a date.

    A company with no due date yet extends from today.

    Example:
        >>> compute_new_due_date(date(2024, 1, 10), date(2024, 1, 5))
        datetime.date(2024, 2, 9)
        >>> compute_new_due_date(date(2024, 1, 1), date(2024, 3, 1))
        datetime.date(2024, 3, 31)
    """
    today = _as_date(now)
    if current_due_date is None:
        base = today
    else:
        base = max(_as_date(current_due_date), today)
    return base + timedelta(days=days)
