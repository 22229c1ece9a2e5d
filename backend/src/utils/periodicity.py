"""
Periodicity calculations for recurring session series.

A series is generated by repeatedly stepping a start time forward by its
periodicity. Monthly steps keep the day of month and clamp to the last day
of shorter months (Jan 31 -> Feb 28/29), so a series never skips a month.
"""

import calendar
from datetime import datetime, timedelta
from enum import Enum
from typing import List

from core.exceptions import InvalidPeriodicityError


class Periodicity(str, Enum):
    """Recurrence label stored on every session of a series."""

    WEEKLY = "Weekly"
    BIWEEKLY = "BiWeekly"
    MONTHLY = "Monthly"
    NONE = "None"  # Single, non-recurring session


# Periodicities a series can be generated with
SERIES_PERIODICITIES = (Periodicity.WEEKLY, Periodicity.BIWEEKLY, Periodicity.MONTHLY)


def parse_series_periodicity(value: "str | Periodicity") -> Periodicity:
    """
    Convert a raw periodicity value to a series periodicity.

    Raises:
        InvalidPeriodicityError: If the value is not Weekly, BiWeekly or Monthly
    """
    try:
        periodicity = Periodicity(value)
    except ValueError:
        raise InvalidPeriodicityError()
    if periodicity not in SERIES_PERIODICITIES:
        raise InvalidPeriodicityError()
    return periodicity


def add_months(current: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the end of the target month."""
    month_index = current.month - 1 + months
    year = current.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return current.replace(year=year, month=month, day=min(current.day, last_day))


def next_session_date(current: datetime, periodicity: "str | Periodicity") -> datetime:
    """
    Calculate the next session date based on periodicity.

    Args:
        current: Start time of the previous occurrence
        periodicity: Weekly (+7 days), BiWeekly (+14 days) or Monthly (+1 month)

    Returns:
        Start time of the next occurrence (time of day and tzinfo preserved)

    Raises:
        InvalidPeriodicityError: For any other periodicity
    """
    periodicity = parse_series_periodicity(periodicity)

    if periodicity == Periodicity.WEEKLY:
        return current + timedelta(days=7)
    if periodicity == Periodicity.BIWEEKLY:
        return current + timedelta(days=14)
    return add_months(current, 1)


def generate_series_dates(start: datetime, periodicity: "str | Periodicity", count: int) -> List[datetime]:
    """
    Generate follow-up start times for a series.

    Each date is computed from the previous one, so the i-th result equals
    ``next_session_date`` applied i times to ``start``.

    Args:
        start: Start time of the anchor session
        periodicity: Series periodicity
        count: Number of follow-ups to generate

    Returns:
        List of ``count`` follow-up start times (the anchor is not included)
    """
    dates: List[datetime] = []
    current = start
    for _ in range(count):
        current = next_session_date(current, periodicity)
        dates.append(current)
    return dates
