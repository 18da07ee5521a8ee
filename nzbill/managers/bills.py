"""
Bill Collection Manager

Owns the signed-in user's bill list. Every other component reads bills
from here and writes them through here.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from nzbill.audit import AuditLogger
from nzbill.billing.cleanup import select_stale_bills
from nzbill.config import get_settings
from nzbill.managers.base import NOT_SIGNED_IN, CollectionManager
from nzbill.models.audit import AuditEventType
from nzbill.models.bill import (
    Bill,
    BillCategory,
    BillCreate,
    BillStatus,
    BillUpdate,
    OperationResult,
    derive_status,
)
from nzbill.models.profile import UserSession
from nzbill.services.storage import BillStorageInterface, StorageError
from nzbill.utils.dates import current_timestamp


class BillManager(CollectionManager[Bill]):
    """
    In-memory bill list kept in sync with storage.

    Pay/unpay calls mark the bill in `processing_ids` for their duration;
    a second pay/unpay on the same bill is rejected until the first
    finishes. Different bills can be changed concurrently.
    """

    entity_type = "bill"

    def __init__(
        self,
        storage: BillStorageInterface,
        session: UserSession,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(session, audit_logger)
        self._storage = storage
        self.processing_ids: set[str] = set()

    @property
    def bills(self) -> list[Bill]:
        return list(self._items)

    async def fetch(self) -> list[Bill]:
        """
        Load the user's bills ordered by due date.

        On failure the previous list is kept and `error` is set.
        """
        if not self.user_id:
            self._items = []
            self.loading = False
            return []

        self.loading = True
        try:
            self._items = await self._storage.fetch_bills(self.user_id)
            self.error = None
        except StorageError as e:
            await self._fetch_failed(e)
        finally:
            self.loading = False

        return self.bills

    async def add_bill(
        self,
        data: BillCreate,
        correlation_id: Optional[UUID] = None,
        today: Optional[date] = None,
    ) -> Optional[Bill]:
        """
        Persist a new bill and append it to the list.

        `today` sets the date the local status is derived against.

        Returns the stored bill, or None when there is no user or the
        insert failed.
        """
        if not self.user_id:
            return None

        try:
            bill = await self._storage.insert_bill(self.user_id, data)
        except StorageError as e:
            await self._save_failed(e)
            return None

        bill = bill.with_status(today)
        self._items.append(bill)
        await self._audit.log_bill_created(
            bill_id=bill.id,
            name=bill.name,
            amount=str(bill.amount),
            user_id=self.user_id,
            is_recurring=bill.is_recurring,
            correlation_id=correlation_id,
        )
        return bill

    async def update_bill(self, bill_id: str, changes: BillUpdate) -> OperationResult:
        fields = changes.changes()
        if not fields and self.user_id:
            return OperationResult.ok()

        def transition(bill: Bill) -> Bill:
            return self._revise(bill, fields).with_status()

        result = await self._optimistic(
            bill_id,
            "update_bill",
            transition,
            lambda: self._storage.update_bill(self.user_id, bill_id, changes),
        )
        if result.success:
            await self._audit.log_bill_changed(
                AuditEventType.BILL_UPDATED,
                bill_id=bill_id,
                user_id=self.user_id,
                changes=changes.model_dump(mode="json", exclude_unset=True),
            )
        return result

    async def delete_bill(self, bill_id: str) -> OperationResult:
        result = await self._optimistic(
            bill_id,
            "delete_bill",
            lambda bill: None,
            lambda: self._storage.delete_bill(self.user_id, bill_id),
        )
        if result.success:
            await self._audit.log_bill_changed(
                AuditEventType.BILL_DELETED,
                bill_id=bill_id,
                user_id=self.user_id,
            )
        return result

    async def mark_as_paid(self, bill_id: str) -> OperationResult:
        return await self._set_paid(bill_id, True)

    async def mark_as_unpaid(self, bill_id: str) -> OperationResult:
        return await self._set_paid(bill_id, False)

    async def _set_paid(self, bill_id: str, is_paid: bool) -> OperationResult:
        if not self.user_id:
            return OperationResult.failed(NOT_SIGNED_IN)

        if bill_id in self.processing_ids:
            self._logger.debug("bill_already_processing", bill_id=bill_id)
            return OperationResult.failed(f"Bill is already being updated: {bill_id}")

        # Claimed before the first await so a concurrent call sees it
        self.processing_ids.add(bill_id)
        try:
            def transition(bill: Bill) -> Bill:
                return bill.model_copy(update={
                    "is_paid": is_paid,
                    "status": BillStatus.PAID if is_paid else derive_status(False, bill.due_date),
                    "updated_at": current_timestamp(),
                })

            operation = "mark_as_paid" if is_paid else "mark_as_unpaid"
            result = await self._optimistic(
                bill_id,
                operation,
                transition,
                lambda: self._storage.update_bill(
                    self.user_id, bill_id, BillUpdate(is_paid=is_paid)
                ),
            )
            if result.success:
                await self._audit.log_bill_changed(
                    AuditEventType.BILL_MARKED_PAID if is_paid else AuditEventType.BILL_MARKED_UNPAID,
                    bill_id=bill_id,
                    user_id=self.user_id,
                    changes={"is_paid": is_paid},
                )
            return result
        finally:
            self.processing_ids.discard(bill_id)

    async def remove_stale_paid_bills(
        self,
        reference_date: Optional[date] = None,
    ) -> list[str]:
        """
        Delete paid bills from months before the reference month.

        Returns the ids that were removed. Bills whose delete failed are
        restored to the list and reported in the audit event.
        """
        if not self.user_id:
            return []

        stale = select_stale_bills(self._items, reference_date)
        if not stale:
            return []

        removed: list[str] = []
        failed: list[str] = []
        for bill in stale:
            result = await self.delete_bill(bill.id)
            if result.success:
                removed.append(bill.id)
            else:
                failed.append(bill.id)

        await self._audit.log_stale_bills_removed(
            bill_ids=removed,
            failed_ids=failed,
            user_id=self.user_id,
        )
        return removed

    # =========================================================================
    # QUERIES
    # =========================================================================

    def bills_by_category(self, category: BillCategory) -> list[Bill]:
        return [bill for bill in self._items if bill.category == category]

    def upcoming_bills(
        self,
        days: Optional[int] = None,
        today: Optional[date] = None,
    ) -> list[Bill]:
        """Unpaid bills due between today and `days` from now, soonest first."""
        if days is None:
            days = get_settings().app.upcoming_window_days
        today = today or date.today()
        horizon = today + timedelta(days=days)
        return sorted(
            (
                bill for bill in self._items
                if not bill.is_paid and today <= bill.due_date <= horizon
            ),
            key=lambda b: b.due_date,
        )

    def overdue_bills(self, today: Optional[date] = None) -> list[Bill]:
        """Unpaid bills due before today, oldest first."""
        today = today or date.today()
        return sorted(
            (
                bill for bill in self._items
                if not bill.is_paid and bill.due_date < today
            ),
            key=lambda b: b.due_date,
        )

    def total_debt(self) -> Decimal:
        """Sum of all unpaid bill amounts."""
        return sum(
            (bill.amount for bill in self._items if not bill.is_paid),
            Decimal("0"),
        )

    def sorted_unpaid_bills(self) -> list[Bill]:
        return sorted(
            (bill for bill in self._items if not bill.is_paid),
            key=lambda b: b.due_date,
        )
