"""
In-Memory Storage Implementation

Backs the storage interfaces with plain dicts. Used by tests and for
running the core without a configured backend. Rows are kept per user
so that one user's session can never see another's data.
"""

from typing import Optional
from uuid import uuid4

from pydantic import ValidationError

from nzbill.models.audit import AuditEvent
from nzbill.models.bill import (
    Bill,
    BillCreate,
    BillUpdate,
    RecurringExpense,
    RecurringExpenseCreate,
    RecurringExpenseUpdate,
    derive_status,
)
from nzbill.models.profile import UserProfile
from nzbill.services.storage.interface import (
    AuditStorageInterface,
    BillStorageInterface,
    NotFoundError,
    ProfileStorageInterface,
    RecurringExpenseStorageInterface,
    StorageError,
)
from nzbill.utils.dates import current_timestamp


class InMemoryBillStorage(BillStorageInterface):
    """Bill storage held in process memory."""

    def __init__(self):
        self._rows: dict[str, dict[str, Bill]] = {}
        self.insert_calls = 0

    def _user_rows(self, user_id: str) -> dict[str, Bill]:
        return self._rows.setdefault(user_id, {})

    async def fetch_bills(self, user_id: str) -> list[Bill]:
        bills = [bill.with_status() for bill in self._user_rows(user_id).values()]
        return sorted(bills, key=lambda b: b.due_date)

    async def insert_bill(self, user_id: str, data: BillCreate) -> Bill:
        self.insert_calls += 1
        now = current_timestamp()
        bill = Bill(
            **data.model_dump(),
            id=str(uuid4()),
            status=derive_status(data.is_paid, data.due_date),
            created_at=now,
            updated_at=now,
        )
        self._user_rows(user_id)[bill.id] = bill
        return bill

    async def update_bill(
        self,
        user_id: str,
        bill_id: str,
        changes: BillUpdate,
    ) -> None:
        rows = self._user_rows(user_id)
        if bill_id not in rows:
            raise NotFoundError(f"Bill not found: {bill_id}")
        try:
            updated = Bill.model_validate({
                **rows[bill_id].model_dump(),
                **changes.changes(),
                "updated_at": current_timestamp(),
            })
        except ValidationError as e:
            raise StorageError(f"Invalid bill update: {e}")
        rows[bill_id] = updated.with_status()

    async def delete_bill(self, user_id: str, bill_id: str) -> None:
        self._user_rows(user_id).pop(bill_id, None)


class InMemoryRecurringExpenseStorage(RecurringExpenseStorageInterface):
    """Recurring expense storage held in process memory."""

    def __init__(self):
        self._rows: dict[str, dict[str, RecurringExpense]] = {}

    def _user_rows(self, user_id: str) -> dict[str, RecurringExpense]:
        return self._rows.setdefault(user_id, {})

    async def fetch_expenses(self, user_id: str) -> list[RecurringExpense]:
        # Reversed first so equal timestamps still come out newest first
        expenses = list(self._user_rows(user_id).values())[::-1]
        return sorted(expenses, key=lambda e: e.created_at, reverse=True)

    async def insert_expense(
        self,
        user_id: str,
        data: RecurringExpenseCreate,
    ) -> RecurringExpense:
        now = current_timestamp()
        expense = RecurringExpense(
            **data.model_dump(),
            id=str(uuid4()),
            created_at=now,
            updated_at=now,
        )
        self._user_rows(user_id)[expense.id] = expense
        return expense

    async def update_expense(
        self,
        user_id: str,
        expense_id: str,
        changes: RecurringExpenseUpdate,
    ) -> None:
        rows = self._user_rows(user_id)
        if expense_id not in rows:
            raise NotFoundError(f"Recurring expense not found: {expense_id}")
        try:
            rows[expense_id] = RecurringExpense.model_validate({
                **rows[expense_id].model_dump(),
                **changes.changes(),
                "updated_at": current_timestamp(),
            })
        except ValidationError as e:
            raise StorageError(f"Invalid recurring expense update: {e}")

    async def delete_expense(self, user_id: str, expense_id: str) -> None:
        self._user_rows(user_id).pop(expense_id, None)


class InMemoryProfileStorage(ProfileStorageInterface):
    """Profile storage held in process memory."""

    def __init__(self):
        self._rows: dict[str, UserProfile] = {}

    async def fetch_profile(self, user_id: str) -> Optional[UserProfile]:
        return self._rows.get(user_id)

    async def save_profile(self, profile: UserProfile) -> None:
        self._rows[profile.user_id] = profile.model_copy(
            update={"updated_at": current_timestamp()}
        )


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in process memory."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self.events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
