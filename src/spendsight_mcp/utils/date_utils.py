"""
Date utilities for parsing periods into ledger date ranges.
"""

import calendar
from datetime import datetime, time, timedelta
from typing import Tuple

DateRange = Tuple[datetime, datetime]


def _start_of_day(day: datetime) -> datetime:
    return datetime.combine(day.date(), time.min)


def _end_of_day(day: datetime) -> datetime:
    return datetime.combine(day.date(), time.max)


def parse_period(period: str) -> DateRange:
    """
    Parse a period string into inclusive (start, end) datetimes.

    Supported periods:
    - "this_month", "last_month"
    - "this_year", "last_year"
    - "last_7_days", "last_30_days", "last_90_days"
    - "ytd" (year to date)

    Raises:
        ValueError: If period is not recognized
    """
    today = datetime.now()

    if period == "this_month":
        return get_month_range(today.year, today.month)

    elif period == "last_month":
        last_day_last_month = today.replace(day=1) - timedelta(days=1)
        return get_month_range(last_day_last_month.year, last_day_last_month.month)

    elif period == "this_year":
        return datetime(today.year, 1, 1), _end_of_day(datetime(today.year, 12, 31))

    elif period == "last_year":
        year = today.year - 1
        return datetime(year, 1, 1), _end_of_day(datetime(year, 12, 31))

    elif period in ("last_7_days", "last_30_days", "last_90_days"):
        days = int(period.split("_")[1])
        return _start_of_day(today - timedelta(days=days)), _end_of_day(today)

    elif period == "ytd":
        return datetime(today.year, 1, 1), _end_of_day(today)

    else:
        raise ValueError(f"Unknown period: {period}")


def get_month_range(year: int, month: int) -> DateRange:
    """
    Get the inclusive datetime range covering a month.

    Raises:
        ValueError: If month is not in valid range (1-12)
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")

    _, last_day = calendar.monthrange(year, month)
    return datetime(year, month, 1), _end_of_day(datetime(year, month, last_day))
