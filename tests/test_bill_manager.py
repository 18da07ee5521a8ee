"""Tests for the bill collection manager."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from nzbill.managers import BillManager
from nzbill.models.audit import AuditEventType
from nzbill.models.bill import BillCategory, BillStatus, BillUpdate
from nzbill.services.storage import StorageError
from tests.conftest import USER_ID, make_bill_data


async def _loaded(manager: BillManager, storage, *bills):
    for data in bills:
        await storage.insert_bill(USER_ID, data)
    await manager.fetch()
    return manager.bills


class TestFetch:
    """Tests for loading bills."""

    def test_loading_starts_true(self, bill_manager):
        assert bill_manager.loading is True

    @pytest.mark.asyncio
    async def test_fetch_orders_by_due_date(self, bill_manager, bill_storage):
        bills = await _loaded(
            bill_manager,
            bill_storage,
            make_bill_data("late", due_date=date(2024, 3, 25)),
            make_bill_data("early", due_date=date(2024, 3, 1)),
        )

        assert [b.name for b in bills] == ["early", "late"]
        assert bill_manager.loading is False
        assert bill_manager.error is None

    @pytest.mark.asyncio
    async def test_fetch_failure_keeps_previous_list(self, bill_manager, bill_storage, audit_storage):
        await _loaded(bill_manager, bill_storage, make_bill_data("kept"))
        bill_storage.fail_fetch = True

        await bill_manager.fetch()

        assert [b.name for b in bill_manager.bills] == ["kept"]
        assert bill_manager.error == "backend unavailable"
        assert bill_manager.loading is False
        assert audit_storage.events[-1].event_type == AuditEventType.FETCH_FAILED

    @pytest.mark.asyncio
    async def test_fetch_without_user(self, bill_storage, anonymous_session):
        manager = BillManager(bill_storage, anonymous_session)

        assert await manager.fetch() == []
        assert manager.loading is False


class TestAddBill:
    """Tests for adding bills."""

    @pytest.mark.asyncio
    async def test_add_appends_stored_bill(self, bill_manager, audit_storage):
        await bill_manager.fetch()

        bill = await bill_manager.add_bill(make_bill_data("ค่าไฟ"))

        assert bill is not None
        assert bill.id
        assert bill_manager.bills == [bill]
        assert audit_storage.events[-1].event_type == AuditEventType.BILL_CREATED

    @pytest.mark.asyncio
    async def test_add_failure_returns_none(self, bill_manager, bill_storage, audit_storage):
        await bill_manager.fetch()
        bill_storage.fail_insert = True

        assert await bill_manager.add_bill(make_bill_data()) is None
        assert bill_manager.bills == []
        assert bill_manager.error == "insert rejected"
        assert audit_storage.events[-1].event_type == AuditEventType.SAVE_FAILED

    @pytest.mark.asyncio
    async def test_add_without_user_is_noop(self, bill_storage, anonymous_session):
        manager = BillManager(bill_storage, anonymous_session)

        assert await manager.add_bill(make_bill_data()) is None
        assert bill_storage.insert_calls == 0


class TestMarkAsPaid:
    """Tests for paying and un-paying bills."""

    @pytest.mark.asyncio
    async def test_mark_as_paid(self, bill_manager, bill_storage):
        [bill] = await _loaded(bill_manager, bill_storage, make_bill_data())

        result = await bill_manager.mark_as_paid(bill.id)

        assert result.success
        assert bill_manager.bills[0].is_paid is True
        assert bill_manager.bills[0].status == BillStatus.PAID
        stored = await bill_storage.fetch_bills(USER_ID)
        assert stored[0].is_paid is True
        assert bill_manager.processing_ids == set()

    @pytest.mark.asyncio
    async def test_mark_as_unpaid_restores_derived_status(self, bill_manager, bill_storage):
        [bill] = await _loaded(
            bill_manager,
            bill_storage,
            make_bill_data(due_date=date(2000, 1, 1), is_paid=True),
        )

        result = await bill_manager.mark_as_unpaid(bill.id)

        assert result.success
        assert bill_manager.bills[0].is_paid is False
        assert bill_manager.bills[0].status == BillStatus.OVERDUE

    @pytest.mark.asyncio
    async def test_failed_pay_rolls_back(self, bill_manager, bill_storage, audit_storage):
        [bill] = await _loaded(bill_manager, bill_storage, make_bill_data())
        bill_storage.fail_update = True

        result = await bill_manager.mark_as_paid(bill.id)

        assert not result.success
        assert result.rolled_back
        assert result.error_message == "update rejected"
        assert bill_manager.bills[0].is_paid is False
        assert bill_manager.error == "update rejected"
        assert bill_manager.processing_ids == set()
        assert audit_storage.events[-1].event_type == AuditEventType.OPTIMISTIC_ROLLBACK

    @pytest.mark.asyncio
    async def test_optimistic_state_is_visible_while_in_flight(self, bill_manager, bill_storage):
        [bill] = await _loaded(bill_manager, bill_storage, make_bill_data())
        bill_storage.gate = asyncio.Event()

        task = asyncio.create_task(bill_manager.mark_as_paid(bill.id))
        await asyncio.sleep(0)

        assert bill_manager.bills[0].is_paid is True
        assert bill.id in bill_manager.processing_ids

        bill_storage.gate.set()
        assert (await task).success

    @pytest.mark.asyncio
    async def test_second_call_on_same_bill_is_rejected(self, bill_manager, bill_storage):
        [bill] = await _loaded(bill_manager, bill_storage, make_bill_data())
        bill_storage.gate = asyncio.Event()

        first = asyncio.create_task(bill_manager.mark_as_paid(bill.id))
        await asyncio.sleep(0)
        second = await bill_manager.mark_as_unpaid(bill.id)
        bill_storage.gate.set()
        first_result = await first

        assert first_result.success
        assert not second.success
        assert not second.rolled_back
        assert bill_manager.bills[0].is_paid is True

    @pytest.mark.asyncio
    async def test_different_bills_proceed_concurrently(self, bill_manager, bill_storage):
        first, second = await _loaded(
            bill_manager,
            bill_storage,
            make_bill_data("a", due_date=date(2024, 3, 1)),
            make_bill_data("b", due_date=date(2024, 3, 2)),
        )

        results = await asyncio.gather(
            bill_manager.mark_as_paid(first.id),
            bill_manager.mark_as_paid(second.id),
        )

        assert all(r.success for r in results)
        assert all(b.is_paid for b in bill_manager.bills)

    @pytest.mark.asyncio
    async def test_rollback_keeps_concurrent_change_to_other_bill(self, bill_manager, bill_storage):
        """A failed write restores only its own bill."""
        failing, other = await _loaded(
            bill_manager,
            bill_storage,
            make_bill_data("failing", due_date=date(2024, 3, 1)),
            make_bill_data("other", due_date=date(2024, 3, 2)),
        )
        bill_storage.gate = asyncio.Event()
        bill_storage.fail_update = True

        task = asyncio.create_task(bill_manager.mark_as_paid(failing.id))
        await asyncio.sleep(0)
        # Lands while the first write is still pending
        bill_manager._apply(other.id, other.model_copy(update={"name": "renamed"}))
        bill_storage.gate.set()
        result = await task

        assert result.rolled_back
        names = {b.id: b.name for b in bill_manager.bills}
        assert names[other.id] == "renamed"
        assert bill_manager._find(failing.id).is_paid is False

    @pytest.mark.asyncio
    async def test_unknown_bill(self, bill_manager):
        await bill_manager.fetch()

        result = await bill_manager.mark_as_paid("missing")

        assert not result.success
        assert not result.rolled_back

    @pytest.mark.asyncio
    async def test_without_user(self, bill_storage, anonymous_session):
        manager = BillManager(bill_storage, anonymous_session)

        result = await manager.mark_as_paid("any")

        assert not result.success
        assert manager.processing_ids == set()


class TestUpdateAndDelete:
    """Tests for updating and deleting bills."""

    @pytest.mark.asyncio
    async def test_update(self, bill_manager, bill_storage, audit_storage):
        [bill] = await _loaded(bill_manager, bill_storage, make_bill_data())

        result = await bill_manager.update_bill(
            bill.id, BillUpdate(amount=Decimal("900.00"), notes="meter read")
        )

        assert result.success
        assert bill_manager.bills[0].amount == Decimal("900.00")
        stored = await bill_storage.fetch_bills(USER_ID)
        assert stored[0].notes == "meter read"
        assert audit_storage.events[-1].details["changes"] == {
            "amount": "900.00",
            "notes": "meter read",
        }

    @pytest.mark.asyncio
    async def test_failed_update_rolls_back(self, bill_manager, bill_storage):
        [bill] = await _loaded(bill_manager, bill_storage, make_bill_data(amount="850.00"))
        bill_storage.fail_update = True

        result = await bill_manager.update_bill(bill.id, BillUpdate(amount=Decimal("1")))

        assert result.rolled_back
        assert bill_manager.bills[0].amount == Decimal("850.00")

    @pytest.mark.asyncio
    async def test_empty_update_is_ok(self, bill_manager, bill_storage):
        [bill] = await _loaded(bill_manager, bill_storage, make_bill_data())

        assert (await bill_manager.update_bill(bill.id, BillUpdate())).success

    @pytest.mark.asyncio
    async def test_delete(self, bill_manager, bill_storage):
        [bill] = await _loaded(bill_manager, bill_storage, make_bill_data())

        result = await bill_manager.delete_bill(bill.id)

        assert result.success
        assert bill_manager.bills == []
        assert await bill_storage.fetch_bills(USER_ID) == []

    @pytest.mark.asyncio
    async def test_failed_delete_restores_position(self, bill_manager, bill_storage):
        bills = await _loaded(
            bill_manager,
            bill_storage,
            make_bill_data("a", due_date=date(2024, 3, 1)),
            make_bill_data("b", due_date=date(2024, 3, 2)),
            make_bill_data("c", due_date=date(2024, 3, 3)),
        )
        bill_storage.fail_delete = True

        result = await bill_manager.delete_bill(bills[1].id)

        assert result.rolled_back
        assert [b.name for b in bill_manager.bills] == ["a", "b", "c"]


class TestInvalidUpdates:
    """Updates whose result would not be a valid bill are refused up front."""

    @pytest.mark.asyncio
    async def test_explicit_none_due_date_is_rejected(self, bill_manager, bill_storage, audit_storage):
        [bill] = await _loaded(bill_manager, bill_storage, make_bill_data(due_date=date(2024, 3, 10)))
        bill_storage.fail_update = True

        result = await bill_manager.update_bill(bill.id, BillUpdate(due_date=None))

        assert not result.success
        assert not result.rolled_back
        assert "due_date" in result.error_message
        assert bill_manager.bills[0].due_date == date(2024, 3, 10)
        assert audit_storage.events[-1].event_type == AuditEventType.VALIDATION_FAILED

    @pytest.mark.asyncio
    async def test_explicit_none_paid_flag_is_rejected(self, bill_manager, bill_storage):
        [bill] = await _loaded(bill_manager, bill_storage, make_bill_data())

        result = await bill_manager.update_bill(bill.id, BillUpdate(is_paid=None))

        assert not result.success
        assert bill_manager.bills[0].is_paid is False
        stored = await bill_storage.fetch_bills(USER_ID)
        assert stored[0].is_paid is False

    @pytest.mark.asyncio
    async def test_out_of_range_value_is_rejected(self, bill_manager, bill_storage):
        [bill] = await _loaded(bill_manager, bill_storage, make_bill_data())
        changes = BillUpdate.model_construct(reminder_days_before=-1)

        result = await bill_manager.update_bill(bill.id, changes)

        assert not result.success
        assert bill_manager.bills[0].reminder_days_before == 3

    @pytest.mark.asyncio
    async def test_notes_can_be_cleared(self, bill_manager, bill_storage):
        [bill] = await _loaded(bill_manager, bill_storage, make_bill_data())
        await bill_manager.update_bill(bill.id, BillUpdate(notes="meter read"))

        result = await bill_manager.update_bill(bill.id, BillUpdate(notes=None))

        assert result.success
        assert bill_manager.bills[0].notes is None
        stored = await bill_storage.fetch_bills(USER_ID)
        assert stored[0].notes is None

    @pytest.mark.asyncio
    async def test_storage_refuses_invalid_update(self, bill_storage):
        bill = await bill_storage.insert_bill(USER_ID, make_bill_data())

        with pytest.raises(StorageError):
            await bill_storage.update_bill(USER_ID, bill.id, BillUpdate(due_date=None))


class TestRemoveStalePaidBills:
    """Tests for clearing paid bills of earlier months."""

    @pytest.mark.asyncio
    async def test_removes_only_stale_paid(self, bill_manager, bill_storage, audit_storage):
        await _loaded(
            bill_manager,
            bill_storage,
            make_bill_data("old-paid", due_date=date(2024, 1, 5), is_paid=True),
            make_bill_data("old-unpaid", due_date=date(2024, 1, 6)),
            make_bill_data("current-paid", due_date=date(2024, 3, 1), is_paid=True),
        )

        removed = await bill_manager.remove_stale_paid_bills(date(2024, 3, 15))

        assert len(removed) == 1
        assert [b.name for b in bill_manager.bills] == ["old-unpaid", "current-paid"]
        assert audit_storage.events[-1].event_type == AuditEventType.STALE_BILLS_REMOVED

    @pytest.mark.asyncio
    async def test_failed_deletes_are_reported(self, bill_manager, bill_storage, audit_storage):
        await _loaded(
            bill_manager,
            bill_storage,
            make_bill_data("old-paid", due_date=date(2024, 1, 5), is_paid=True),
        )
        bill_storage.fail_delete = True

        removed = await bill_manager.remove_stale_paid_bills(date(2024, 3, 15))

        assert removed == []
        assert len(bill_manager.bills) == 1
        assert len(audit_storage.events[-1].details["failed"]) == 1


class TestQueries:
    """Tests for derived bill views."""

    @pytest_asyncio.fixture
    async def loaded(self, bill_manager, bill_storage):
        await _loaded(
            bill_manager,
            bill_storage,
            make_bill_data("overdue", "100", date(2024, 3, 1)),
            make_bill_data("soon", "200", date(2024, 3, 12), category=BillCategory.WATER),
            make_bill_data("later", "300", date(2024, 4, 30)),
            make_bill_data("paid", "400", date(2024, 3, 11), is_paid=True),
        )
        return bill_manager

    @pytest.mark.asyncio
    async def test_total_debt(self, loaded):
        assert loaded.total_debt() == Decimal("600")

    @pytest.mark.asyncio
    async def test_upcoming(self, loaded):
        upcoming = loaded.upcoming_bills(days=30, today=date(2024, 3, 10))
        assert [b.name for b in upcoming] == ["soon"]

    @pytest.mark.asyncio
    async def test_upcoming_default_window(self, loaded):
        upcoming = loaded.upcoming_bills(today=date(2024, 4, 1))
        assert [b.name for b in upcoming] == ["later"]

    @pytest.mark.asyncio
    async def test_overdue(self, loaded):
        assert [b.name for b in loaded.overdue_bills(today=date(2024, 3, 10))] == ["overdue"]

    @pytest.mark.asyncio
    async def test_by_category(self, loaded):
        assert [b.name for b in loaded.bills_by_category(BillCategory.WATER)] == ["soon"]

    @pytest.mark.asyncio
    async def test_sorted_unpaid(self, loaded):
        assert [b.name for b in loaded.sorted_unpaid_bills()] == ["overdue", "soon", "later"]
