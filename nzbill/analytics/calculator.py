"""
Spending Analytics

DESIGN DECISION: Analytics are DETERMINISTIC and computed from the
bills already loaded by the BillManager. Nothing here reads storage or
estimates missing data; a month without bills simply totals zero.
"""

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from nzbill.config import get_settings
from nzbill.models.analytics import (
    CategoryTotal,
    FinancialHealth,
    FinancialSummary,
    MonthlyStats,
    TrendPoint,
)
from nzbill.models.bill import Bill, BillCategory
from nzbill.models.labels import Language, category_label, month_abbreviation
from nzbill.utils.dates import days_until_end_of_month, shift_month


Number = Union[Decimal, int, str]

CENT = Decimal("0.01")
TIGHT_BUDGET = Decimal("100")
COMFORTABLE_BUDGET = Decimal("300")
TREND_MONTHS = 6


def calculate_daily_budget(
    total_cash: Number,
    total_debt: Number,
    days_remaining: int,
) -> Decimal:
    """
    How much can be spent per day once unpaid bills are covered.

    Returns 0 when there are no days left or the cash does not cover
    the debt.
    """
    if days_remaining <= 0:
        return Decimal("0")
    remaining = Decimal(str(total_cash)) - Decimal(str(total_debt))
    budget = max(Decimal("0"), remaining / days_remaining)
    return budget.quantize(CENT, rounding=ROUND_HALF_UP)


def rate_financial_health(remaining: Decimal, daily_budget: Decimal) -> FinancialHealth:
    if remaining < 0:
        return FinancialHealth.DANGER
    if daily_budget < TIGHT_BUDGET:
        return FinancialHealth.WARNING
    if daily_budget < COMFORTABLE_BUDGET:
        return FinancialHealth.NORMAL
    return FinancialHealth.GOOD


class SpendingAnalytics:
    """
    Aggregations over a snapshot of the user's bills.

    Build a new instance whenever the bill list changes.
    """

    def __init__(self, bills: list[Bill]):
        self._bills = list(bills)

    def _bills_in(self, month: int, year: int) -> list[Bill]:
        return [bill for bill in self._bills if bill.falls_in(month, year)]

    def monthly_stats(self, month: int, year: int) -> MonthlyStats:
        """Total, paid and unpaid amounts for bills due in the month."""
        stats = MonthlyStats(month=month, year=year)
        for bill in self._bills_in(month, year):
            stats.total += bill.amount
            if bill.is_paid:
                stats.total_paid += bill.amount
            else:
                stats.total_unpaid += bill.amount
            stats.bill_count += 1
        return stats

    def category_breakdown(
        self,
        month: int,
        year: int,
        language: Language = Language.TH,
    ) -> list[CategoryTotal]:
        """
        Amount per category for the month.

        Categories appear in the order their first bill appears; categories
        without bills are left out.
        """
        totals: dict[BillCategory, Decimal] = {}
        for bill in self._bills_in(month, year):
            totals[bill.category] = totals.get(bill.category, Decimal("0")) + bill.amount

        return [
            CategoryTotal(
                category=category,
                label=category_label(category, language),
                total=total,
            )
            for category, total in totals.items()
        ]

    def six_month_trend(
        self,
        reference_date: Optional[date] = None,
        language: Language = Language.TH,
    ) -> list[TrendPoint]:
        """Monthly totals for the reference month and the five before it, oldest first."""
        reference_date = reference_date or date.today()
        trend = []
        for offset in range(-(TREND_MONTHS - 1), 1):
            month, year = shift_month(reference_date.month, reference_date.year, offset)
            trend.append(TrendPoint(
                month=month,
                year=year,
                label=month_abbreviation(month, language),
                total=self.monthly_stats(month, year).total,
            ))
        return trend

    def total_debt(self) -> Decimal:
        return sum(
            (bill.amount for bill in self._bills if not bill.is_paid),
            Decimal("0"),
        )

    def financial_summary(
        self,
        total_cash: Number,
        today: Optional[date] = None,
    ) -> FinancialSummary:
        """
        Everything the planner needs in one object.

        Upcoming bills are unpaid bills due within the configured window;
        overdue bills are unpaid bills due before today.
        """
        today = today or date.today()
        cash = Decimal(str(total_cash))
        debt = self.total_debt()
        remaining = cash - debt
        days_left = days_until_end_of_month(today)
        daily_budget = calculate_daily_budget(cash, debt, days_left)

        horizon = today + timedelta(days=get_settings().app.upcoming_window_days)
        unpaid = sorted(
            (bill for bill in self._bills if not bill.is_paid),
            key=lambda b: b.due_date,
        )

        return FinancialSummary(
            total_cash=cash,
            total_debt=debt,
            remaining=remaining,
            daily_budget=daily_budget,
            days_until_end_of_month=days_left,
            health=rate_financial_health(remaining, daily_budget),
            upcoming_bills=[b for b in unpaid if today <= b.due_date <= horizon],
            overdue_bills=[b for b in unpaid if b.due_date < today],
        )
