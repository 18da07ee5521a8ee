"""
Paid-Bill Cleanup Selection

Picks paid bills from months before the reference month so they can be
archived. Selection only; deletion happens in BillManager.
"""

from datetime import date
from typing import Optional

from nzbill.models.bill import Bill


def select_stale_bills(
    bills: list[Bill],
    reference_date: Optional[date] = None,
) -> list[Bill]:
    """
    Return paid bills whose due month is strictly before the reference month.

    Unpaid bills are never selected, whatever their age.
    """
    reference_date = reference_date or date.today()
    reference = (reference_date.year, reference_date.month)
    return [
        bill
        for bill in bills
        if bill.is_paid and (bill.due_date.year, bill.due_date.month) < reference
    ]
