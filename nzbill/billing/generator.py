"""
Recurring Bill Generator

Materializes this month's bills from recurring expense templates.

DESIGN DECISION: Generation is a pure function of (templates, existing
bills, reference date). It is called on every session start, so it must
never emit a second bill for a template that already has one in the
reference month.
"""

from datetime import date
from typing import Optional

from nzbill.config import get_settings
from nzbill.models.bill import (
    Bill,
    GenerationResult,
    RecurringExpense,
    derive_status,
)
from nzbill.models.labels import Language, installment_name
from nzbill.utils.dates import clamp_day, current_timestamp
from nzbill.utils.identifiers import generate_id


GenerationKey = tuple[str, int, int]


def generation_key(recurring_expense_id: str, month: int, year: int) -> GenerationKey:
    """Idempotence key: at most one bill per template per calendar month."""
    return (recurring_expense_id, month, year)


def _already_generated(
    expense: RecurringExpense,
    existing_bills: list[Bill],
    month: int,
    year: int,
) -> bool:
    return any(
        bill.recurring_expense_id == expense.id and bill.falls_in(month, year)
        for bill in existing_bills
    )


def generate_monthly_bills(
    expenses: list[RecurringExpense],
    existing_bills: list[Bill],
    reference_date: Optional[date] = None,
    today: Optional[date] = None,
    language: Language = Language.TH,
) -> GenerationResult:
    """
    Build the bills that are missing for the reference month.

    Args:
        expenses: Recurring expense templates
        existing_bills: Bills already materialized (any month)
        reference_date: Any date in the month to generate for
        today: Date used to decide overdue status (defaults to today)
        language: Language of the installment suffix

    Returns:
        GenerationResult with the new bills. Inactive templates and
        templates that already have a bill this month contribute nothing.
    """
    reference_date = reference_date or date.today()
    today = today or date.today()
    month, year = reference_date.month, reference_date.year
    reminder_days = get_settings().app.default_reminder_days

    new_bills: list[Bill] = []

    for expense in expenses:
        if not expense.active:
            continue

        if _already_generated(expense, existing_bills, month, year):
            continue

        due_date = date(year, month, clamp_day(expense.due_day, month, year))

        name = expense.name
        if expense.is_installment:
            name = installment_name(expense.name, language)

        now = current_timestamp()
        new_bills.append(Bill(
            id=generate_id("bill"),
            name=name,
            amount=expense.amount,
            due_date=due_date,
            category=expense.category,
            is_paid=False,
            status=derive_status(False, due_date, today),
            reminder_days_before=reminder_days,
            is_recurring=True,
            recurring_expense_id=expense.id,
            recurring_day=expense.due_day,
            created_at=now,
            updated_at=now,
        ))

    return GenerationResult(new_bills=new_bills)
