"""Small pure helpers shared across the package."""

from nzbill.utils.dates import (
    clamp_day,
    current_timestamp,
    days_until_end_of_month,
    format_short_date,
    last_day_of_month,
    same_month,
    shift_month,
)
from nzbill.utils.identifiers import generate_id

__all__ = [
    "clamp_day",
    "current_timestamp",
    "days_until_end_of_month",
    "format_short_date",
    "generate_id",
    "last_day_of_month",
    "same_month",
    "shift_month",
]
