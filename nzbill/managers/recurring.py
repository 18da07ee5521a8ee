"""Recurring expense template manager."""

from typing import Optional

from nzbill.audit import AuditLogger
from nzbill.managers.base import NOT_SIGNED_IN, CollectionManager
from nzbill.models.audit import AuditEventType
from nzbill.models.bill import (
    OperationResult,
    RecurringExpense,
    RecurringExpenseCreate,
    RecurringExpenseUpdate,
)
from nzbill.models.profile import UserSession
from nzbill.services.storage import RecurringExpenseStorageInterface, StorageError


class RecurringExpenseManager(CollectionManager[RecurringExpense]):
    """
    In-memory template list, newest first.

    Template edits never touch bills that were already generated.
    """

    entity_type = "recurring_expense"

    def __init__(
        self,
        storage: RecurringExpenseStorageInterface,
        session: UserSession,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(session, audit_logger)
        self._storage = storage

    @property
    def expenses(self) -> list[RecurringExpense]:
        return list(self._items)

    @property
    def active_expenses(self) -> list[RecurringExpense]:
        return [expense for expense in self._items if expense.active]

    async def fetch(self) -> list[RecurringExpense]:
        if not self.user_id:
            self._items = []
            self.loading = False
            return []

        self.loading = True
        try:
            self._items = await self._storage.fetch_expenses(self.user_id)
            self.error = None
        except StorageError as e:
            await self._fetch_failed(e)
        finally:
            self.loading = False

        return self.expenses

    async def add_expense(self, data: RecurringExpenseCreate) -> Optional[RecurringExpense]:
        """Persist a template and put it at the front of the list."""
        if not self.user_id:
            return None

        try:
            expense = await self._storage.insert_expense(self.user_id, data)
        except StorageError as e:
            await self._save_failed(e)
            return None

        self._items.insert(0, expense)
        await self._audit.log_recurring_changed(
            AuditEventType.RECURRING_CREATED,
            expense_id=expense.id,
            user_id=self.user_id,
            changes=data.model_dump(mode="json"),
        )
        return expense

    async def update_expense(
        self,
        expense_id: str,
        changes: RecurringExpenseUpdate,
    ) -> OperationResult:
        fields = changes.changes()
        if not fields and self.user_id:
            return OperationResult.ok()

        result = await self._optimistic(
            expense_id,
            "update_expense",
            lambda expense: self._revise(expense, fields),
            lambda: self._storage.update_expense(self.user_id, expense_id, changes),
        )
        if result.success:
            await self._audit.log_recurring_changed(
                AuditEventType.RECURRING_UPDATED,
                expense_id=expense_id,
                user_id=self.user_id,
                changes=changes.model_dump(mode="json", exclude_unset=True),
            )
        return result

    async def delete_expense(self, expense_id: str) -> OperationResult:
        result = await self._optimistic(
            expense_id,
            "delete_expense",
            lambda expense: None,
            lambda: self._storage.delete_expense(self.user_id, expense_id),
        )
        if result.success:
            await self._audit.log_recurring_changed(
                AuditEventType.RECURRING_DELETED,
                expense_id=expense_id,
                user_id=self.user_id,
            )
        return result

    async def toggle_active(self, expense_id: str) -> OperationResult:
        """Flip a template between active and paused."""
        if not self.user_id:
            return OperationResult.failed(NOT_SIGNED_IN)

        expense = self._find(expense_id)
        if expense is None:
            return OperationResult.failed(f"recurring_expense not found: {expense_id}")
        return await self.update_expense(
            expense_id,
            RecurringExpenseUpdate(active=not expense.active),
        )
