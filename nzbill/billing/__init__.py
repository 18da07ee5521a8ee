"""Pure bill lifecycle logic: monthly generation and cleanup selection."""

from nzbill.billing.cleanup import select_stale_bills
from nzbill.billing.generator import generate_monthly_bills, generation_key

__all__ = [
    "generate_monthly_bills",
    "generation_key",
    "select_stale_bills",
]
