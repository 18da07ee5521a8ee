"""Tests for spending analytics."""

from datetime import date
from decimal import Decimal

import pytest

from nzbill.analytics import SpendingAnalytics, calculate_daily_budget, rate_financial_health
from nzbill.models.analytics import FinancialHealth
from nzbill.models.bill import Bill, BillCategory
from nzbill.models.labels import Language


def _bill(name, amount, due_date, category=BillCategory.OTHER, is_paid=False) -> Bill:
    return Bill(
        id=name,
        name=name,
        amount=Decimal(amount),
        due_date=due_date,
        category=category,
        is_paid=is_paid,
    )


@pytest.fixture
def analytics() -> SpendingAnalytics:
    return SpendingAnalytics([
        _bill("power", "850", date(2024, 3, 5), BillCategory.ELECTRICITY, is_paid=True),
        _bill("net", "599", date(2024, 3, 15), BillCategory.INTERNET),
        _bill("power-2", "150", date(2024, 3, 20), BillCategory.ELECTRICITY),
        _bill("rent", "8000", date(2024, 1, 1), BillCategory.RENT, is_paid=True),
        _bill("old", "100", date(2023, 11, 3)),
    ])


class TestDailyBudget:
    """Tests for calculate_daily_budget."""

    def test_basic(self):
        assert calculate_daily_budget(5000, 2000, 10) == Decimal("300")

    def test_debt_exceeds_cash(self):
        assert calculate_daily_budget(1000, 2000, 10) == Decimal("0")

    @pytest.mark.parametrize("days", [0, -1])
    def test_no_days_left(self, days):
        assert calculate_daily_budget(5000, 0, days) == Decimal("0")

    def test_rounds_to_cents(self):
        assert calculate_daily_budget(Decimal("100"), Decimal("0"), 3) == Decimal("33.33")


class TestFinancialHealth:
    @pytest.mark.parametrize(
        "remaining,budget,expected",
        [
            ("-1", "0", FinancialHealth.DANGER),
            ("500", "99.99", FinancialHealth.WARNING),
            ("3000", "100", FinancialHealth.NORMAL),
            ("9000", "300", FinancialHealth.GOOD),
        ],
    )
    def test_thresholds(self, remaining, budget, expected):
        assert rate_financial_health(Decimal(remaining), Decimal(budget)) == expected


class TestSpendingAnalytics:
    """Tests for the aggregations."""

    def test_monthly_stats(self, analytics):
        stats = analytics.monthly_stats(3, 2024)

        assert stats.total == Decimal("1599")
        assert stats.total_paid == Decimal("850")
        assert stats.total_unpaid == Decimal("749")
        assert stats.bill_count == 3

    def test_monthly_stats_empty_month(self, analytics):
        stats = analytics.monthly_stats(7, 2024)

        assert stats.total == Decimal("0")
        assert stats.bill_count == 0

    def test_category_breakdown(self, analytics):
        breakdown = analytics.category_breakdown(3, 2024, Language.EN)

        assert [(c.category, c.label, c.total) for c in breakdown] == [
            (BillCategory.ELECTRICITY, "Electricity", Decimal("1000")),
            (BillCategory.INTERNET, "Internet", Decimal("599")),
        ]

    def test_six_month_trend(self, analytics):
        trend = analytics.six_month_trend(date(2024, 3, 31), Language.TH)

        assert [(p.month, p.year) for p in trend] == [
            (10, 2023), (11, 2023), (12, 2023), (1, 2024), (2, 2024), (3, 2024),
        ]
        assert [p.label for p in trend] == ["ต.ค.", "พ.ย.", "ธ.ค.", "ม.ค.", "ก.พ.", "มี.ค."]
        assert [p.total for p in trend] == [
            Decimal("0"), Decimal("100"), Decimal("0"),
            Decimal("8000"), Decimal("0"), Decimal("1599"),
        ]

    def test_financial_summary(self, analytics):
        summary = analytics.financial_summary(Decimal("5000"), today=date(2024, 3, 10))

        assert summary.total_debt == Decimal("849")
        assert summary.remaining == Decimal("4151")
        assert summary.days_until_end_of_month == 21
        assert summary.daily_budget == Decimal("197.67")
        assert summary.health == FinancialHealth.NORMAL
        assert [b.name for b in summary.upcoming_bills] == ["net", "power-2"]
        assert [b.name for b in summary.overdue_bills] == ["old"]

    def test_financial_summary_in_danger(self):
        analytics = SpendingAnalytics([_bill("car", "9000", date(2024, 3, 30))])

        summary = analytics.financial_summary(1000, today=date(2024, 3, 31))

        assert summary.daily_budget == Decimal("0")
        assert summary.days_until_end_of_month == 1
        assert summary.health == FinancialHealth.DANGER
