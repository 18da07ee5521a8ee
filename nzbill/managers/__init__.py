"""
State managers.

Each manager owns one slice of the signed-in user's data and keeps it
in sync with storage using optimistic updates.
"""

from nzbill.managers.base import CollectionManager, ManagerBase
from nzbill.managers.bills import BillManager
from nzbill.managers.profile import ProfileManager
from nzbill.managers.recurring import RecurringExpenseManager

__all__ = [
    "BillManager",
    "CollectionManager",
    "ManagerBase",
    "ProfileManager",
    "RecurringExpenseManager",
]
