"""Virtual time cursor arithmetic.

WAIT steps never sleep. They move a timestamp forward, and later TASK steps use that
timestamp as their default due date. The cursor is a plain ``datetime`` value that
the executor threads through every step, branch bodies included.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta

from litestar_automations.core.types import WaitUnit

__all__ = ["add_months", "advance"]

_UNIT_DELTAS = {
    WaitUnit.HOURS: timedelta(hours=1),
    WaitUnit.DAYS: timedelta(days=1),
    WaitUnit.WEEKS: timedelta(weeks=1),
}


def advance(cursor: datetime, amount: float, unit: WaitUnit) -> datetime:
    """Return ``cursor`` shifted forward by ``amount`` ``unit``.

    Months use calendar-month addition, so fractional month amounts are truncated.
    Results past the largest representable datetime are clamped to it.

    Args:
        cursor: The current cursor value.
        amount: How many units to advance.
        unit: Hours, days, weeks or months.

    Returns:
        The new cursor value. The input is never modified.

    Example:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 31, tzinfo=timezone.utc)
        >>> advance(start, 1, WaitUnit.MONTHS).date().isoformat()
        '2024-02-29'
    """
    try:
        if unit == WaitUnit.MONTHS:
            return add_months(cursor, int(amount))
        return cursor + _UNIT_DELTAS[unit] * amount
    except (OverflowError, ValueError):
        return datetime.max.replace(tzinfo=cursor.tzinfo)


def add_months(moment: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the length of the target month."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
