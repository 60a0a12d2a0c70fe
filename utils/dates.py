"""
Calendar helpers shared by the billing and maintenance services.
"""

import calendar
from datetime import date, datetime
from typing import Union

DateLike = Union[date, datetime]


def add_months(d: DateLike, months: int) -> DateLike:
    """Add N months, clamping the day to the target month's length (Jan 31 + 1 → Feb 28/29)."""
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return d.replace(year=year, month=month, day=day)


def add_years(d: DateLike, years: int) -> DateLike:
    """Add N years to a date, handling Feb 29 → Feb 28."""
    try:
        return d.replace(year=d.year + years)
    except ValueError:
        return d.replace(year=d.year + years, day=28)


def month_end(d: DateLike) -> date:
    """Last calendar day of the month containing d."""
    return date(d.year, d.month, calendar.monthrange(d.year, d.month)[1])


def to_date(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value
