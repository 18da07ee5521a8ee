"""
Calendar Utilities

Pure date arithmetic. Months are 1-based throughout.
"""

import calendar
from datetime import date, datetime, timezone
from typing import Union

from nzbill.models.labels import Language, month_abbreviation


def current_timestamp() -> datetime:
    """Current instant in UTC."""
    return datetime.now(timezone.utc)


def last_day_of_month(month: int, year: int) -> int:
    """Number of days in the month, leap years included."""
    return calendar.monthrange(year, month)[1]


def clamp_day(day: int, month: int, year: int) -> int:
    """
    Clamp a nominal day-of-month to the days the month actually has.

    A template due on the 31st falls on the 28th/29th in February
    and on the 30th in April.
    """
    return min(day, last_day_of_month(month, year))


def days_until_end_of_month(today: date) -> int:
    """
    Days left from `today` until the last day of its month.

    Never less than 1, so it is always safe to divide by.
    """
    last_day = last_day_of_month(today.month, today.year)
    return max(1, last_day - today.day)


def same_month(value: date, month: int, year: int) -> bool:
    return value.month == month and value.year == year


def shift_month(month: int, year: int, offset: int) -> tuple[int, int]:
    """Move `offset` months from (month, year); negative goes back."""
    index = year * 12 + (month - 1) + offset
    return index % 12 + 1, index // 12


def format_short_date(
    value: Union[date, datetime, str],
    language: Language = Language.TH,
) -> str:
    """
    Day plus abbreviated month, e.g. ``"31 ธ.ค."`` or ``"31 Dec"``.

    Accepts ISO strings as stored by the persistence layer.
    """
    if isinstance(value, str):
        value = date.fromisoformat(value[:10])
    return f"{value.day} {month_abbreviation(value.month, language)}"
