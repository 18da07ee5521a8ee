"""
Shared fixtures.

No test talks to Google Sheets; storages are in-memory, optionally
wrapped in fakes that fail or block on demand.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from nzbill.audit import AuditLogger
from nzbill.managers import BillManager, ProfileManager, RecurringExpenseManager
from nzbill.models.bill import (
    Bill,
    BillCategory,
    BillCreate,
    BillUpdate,
    RecurringExpense,
    RecurringExpenseCreate,
    RecurringExpenseUpdate,
)
from nzbill.models.profile import UserProfile, UserSession
from nzbill.services.storage import (
    InMemoryAuditStorage,
    InMemoryBillStorage,
    InMemoryProfileStorage,
    InMemoryRecurringExpenseStorage,
    StorageError,
)


USER_ID = "user-1"


class FlakyBillStorage(InMemoryBillStorage):
    """In-memory bill storage whose operations can be made to fail."""

    def __init__(self):
        super().__init__()
        self.fail_fetch = False
        self.fail_insert = False
        self.fail_update = False
        self.fail_delete = False
        self.gate: Optional[asyncio.Event] = None
        self.insert_order: list[str] = []

    async def fetch_bills(self, user_id: str) -> list[Bill]:
        if self.fail_fetch:
            raise StorageError("backend unavailable")
        return await super().fetch_bills(user_id)

    async def insert_bill(self, user_id: str, data: BillCreate) -> Bill:
        self.insert_order.append(data.name)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_insert:
            self.insert_calls += 1
            raise StorageError("insert rejected")
        return await super().insert_bill(user_id, data)

    async def update_bill(self, user_id: str, bill_id: str, changes: BillUpdate) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_update:
            raise StorageError("update rejected")
        await super().update_bill(user_id, bill_id, changes)

    async def delete_bill(self, user_id: str, bill_id: str) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_delete:
            raise StorageError("delete rejected")
        await super().delete_bill(user_id, bill_id)


class FlakyRecurringStorage(InMemoryRecurringExpenseStorage):
    def __init__(self):
        super().__init__()
        self.fail_fetch = False
        self.fail_update = False
        self.fail_delete = False

    async def fetch_expenses(self, user_id: str) -> list[RecurringExpense]:
        if self.fail_fetch:
            raise StorageError("backend unavailable")
        return await super().fetch_expenses(user_id)

    async def update_expense(
        self,
        user_id: str,
        expense_id: str,
        changes: RecurringExpenseUpdate,
    ) -> None:
        if self.fail_update:
            raise StorageError("update rejected")
        await super().update_expense(user_id, expense_id, changes)

    async def delete_expense(self, user_id: str, expense_id: str) -> None:
        if self.fail_delete:
            raise StorageError("delete rejected")
        await super().delete_expense(user_id, expense_id)


class FlakyProfileStorage(InMemoryProfileStorage):
    def __init__(self):
        super().__init__()
        self.fail_save = False

    async def save_profile(self, profile: UserProfile) -> None:
        if self.fail_save:
            raise StorageError("save rejected")
        await super().save_profile(profile)


def make_bill_data(
    name: str = "ค่าไฟ",
    amount: str = "850.00",
    due_date: date = date(2024, 3, 10),
    is_paid: bool = False,
    category: BillCategory = BillCategory.ELECTRICITY,
    recurring_expense_id: Optional[str] = None,
) -> BillCreate:
    return BillCreate(
        name=name,
        amount=Decimal(amount),
        due_date=due_date,
        category=category,
        is_paid=is_paid,
        is_recurring=recurring_expense_id is not None,
        recurring_expense_id=recurring_expense_id,
    )


def make_expense(
    expense_id: str = "exp-1",
    name: str = "ค่าเน็ต",
    amount: str = "599.00",
    due_day: int = 15,
    active: bool = True,
    is_installment: bool = False,
    category: BillCategory = BillCategory.INTERNET,
) -> RecurringExpense:
    return RecurringExpense(
        id=expense_id,
        name=name,
        amount=Decimal(amount),
        due_day=due_day,
        category=category,
        active=active,
        is_installment=is_installment,
    )


@pytest.fixture
def session() -> UserSession:
    return UserSession(user_id=USER_ID)


@pytest.fixture
def anonymous_session() -> UserSession:
    return UserSession()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def bill_storage() -> FlakyBillStorage:
    return FlakyBillStorage()


@pytest.fixture
def recurring_storage() -> FlakyRecurringStorage:
    return FlakyRecurringStorage()


@pytest.fixture
def profile_storage() -> FlakyProfileStorage:
    return FlakyProfileStorage()


@pytest.fixture
def bill_manager(bill_storage, session, audit_logger) -> BillManager:
    return BillManager(bill_storage, session, audit_logger)


@pytest.fixture
def recurring_manager(recurring_storage, session, audit_logger) -> RecurringExpenseManager:
    return RecurringExpenseManager(recurring_storage, session, audit_logger)


@pytest.fixture
def profile_manager(profile_storage, session, audit_logger) -> ProfileManager:
    return ProfileManager(profile_storage, session, audit_logger)


async def seed_expenses(
    storage: InMemoryRecurringExpenseStorage,
    *expenses: RecurringExpenseCreate,
) -> list[RecurringExpense]:
    return [await storage.insert_expense(USER_ID, expense) for expense in expenses]
