"""Result models for spending analytics."""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from nzbill.models.bill import Bill, BillCategory


class FinancialHealth(str, Enum):
    """
    Coarse rating of the user's month.

    DANGER: cash does not cover unpaid bills
    WARNING: daily budget under 100
    NORMAL: daily budget under 300
    GOOD: anything above
    """
    DANGER = "danger"
    WARNING = "warning"
    NORMAL = "normal"
    GOOD = "good"


class MonthlyStats(BaseModel):
    """Totals for bills due in one calendar month."""

    month: int = Field(..., ge=1, le=12)
    year: int
    total: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    total_unpaid: Decimal = Decimal("0")
    bill_count: int = Field(default=0, ge=0)


class CategoryTotal(BaseModel):
    category: BillCategory
    label: str
    total: Decimal


class TrendPoint(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int
    label: str
    total: Decimal


class FinancialSummary(BaseModel):
    """What the planner screen shows."""

    total_cash: Decimal
    total_debt: Decimal
    remaining: Decimal
    daily_budget: Decimal
    days_until_end_of_month: int = Field(..., ge=1)
    health: FinancialHealth
    upcoming_bills: list[Bill] = Field(default_factory=list)
    overdue_bills: list[Bill] = Field(default_factory=list)
