"""Spending analytics package."""

from nzbill.analytics.calculator import (
    SpendingAnalytics,
    calculate_daily_budget,
    rate_financial_health,
)

__all__ = [
    "SpendingAnalytics",
    "calculate_daily_budget",
    "rate_financial_health",
]
