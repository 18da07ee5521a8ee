"""Tests for the recurring expense manager."""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from nzbill.managers import RecurringExpenseManager
from nzbill.models.audit import AuditEventType
from nzbill.models.bill import GenerationState, RecurringExpenseCreate, RecurringExpenseUpdate
from nzbill.models.labels import Language
from nzbill.orchestrator import BillAutoGenerator
from nzbill.services.storage import StorageError


def _template(name: str, amount: str = "500", due_day: int = 10) -> RecurringExpenseCreate:
    return RecurringExpenseCreate(name=name, amount=Decimal(amount), due_day=due_day)


class TestRecurringExpenseManager:
    """Tests for template CRUD with optimistic updates."""

    @pytest.mark.asyncio
    async def test_add_puts_newest_first(self, recurring_manager, audit_storage):
        await recurring_manager.fetch()

        await recurring_manager.add_expense(_template("first"))
        await recurring_manager.add_expense(_template("second"))

        assert [e.name for e in recurring_manager.expenses] == ["second", "first"]
        assert audit_storage.events[-1].event_type == AuditEventType.RECURRING_CREATED

    @pytest.mark.asyncio
    async def test_fetch_is_newest_first(self, recurring_manager, recurring_storage, session):
        await recurring_storage.insert_expense(session.user_id, _template("older"))
        await recurring_storage.insert_expense(session.user_id, _template("newer"))

        expenses = await recurring_manager.fetch()

        assert [e.name for e in expenses] == ["newer", "older"]
        assert recurring_manager.loading is False

    @pytest.mark.asyncio
    async def test_update(self, recurring_manager):
        await recurring_manager.fetch()
        expense = await recurring_manager.add_expense(_template("Rent", "8000"))

        result = await recurring_manager.update_expense(
            expense.id, RecurringExpenseUpdate(amount=Decimal("8500"))
        )

        assert result.success
        assert recurring_manager.expenses[0].amount == Decimal("8500")

    @pytest.mark.asyncio
    async def test_failed_update_rolls_back(self, recurring_manager, recurring_storage):
        await recurring_manager.fetch()
        expense = await recurring_manager.add_expense(_template("Rent", "8000"))
        recurring_storage.fail_update = True

        result = await recurring_manager.update_expense(
            expense.id, RecurringExpenseUpdate(due_day=1)
        )

        assert result.rolled_back
        assert recurring_manager.expenses[0].due_day == 10
        assert recurring_manager.error == "update rejected"

    @pytest.mark.asyncio
    async def test_toggle_active(self, recurring_manager, recurring_storage, session):
        await recurring_manager.fetch()
        expense = await recurring_manager.add_expense(_template("Gym"))

        assert (await recurring_manager.toggle_active(expense.id)).success
        assert recurring_manager.expenses[0].active is False
        assert recurring_manager.active_expenses == []

        stored = await recurring_storage.fetch_expenses(session.user_id)
        assert stored[0].active is False

        assert (await recurring_manager.toggle_active(expense.id)).success
        assert recurring_manager.expenses[0].active is True

    @pytest.mark.asyncio
    async def test_toggle_unknown(self, recurring_manager):
        await recurring_manager.fetch()

        result = await recurring_manager.toggle_active("missing")

        assert not result.success

    @pytest.mark.asyncio
    async def test_delete_and_failed_delete(self, recurring_manager, recurring_storage):
        await recurring_manager.fetch()
        keep = await recurring_manager.add_expense(_template("keep"))
        drop = await recurring_manager.add_expense(_template("drop"))

        assert (await recurring_manager.delete_expense(drop.id)).success
        assert [e.id for e in recurring_manager.expenses] == [keep.id]

        recurring_storage.fail_delete = True
        result = await recurring_manager.delete_expense(keep.id)

        assert result.rolled_back
        assert [e.id for e in recurring_manager.expenses] == [keep.id]

    @pytest.mark.asyncio
    async def test_fetch_failure(self, recurring_manager, recurring_storage):
        recurring_storage.fail_fetch = True

        await recurring_manager.fetch()

        assert recurring_manager.expenses == []
        assert recurring_manager.loading is False
        assert recurring_manager.error == "backend unavailable"

    @pytest.mark.asyncio
    async def test_without_user(self, recurring_storage, anonymous_session):
        manager = RecurringExpenseManager(recurring_storage, anonymous_session)

        assert await manager.add_expense(_template("x")) is None
        assert not (await manager.toggle_active("x")).success
        assert not (await manager.delete_expense("x")).success
        assert await manager.fetch() == []


@pytest_asyncio.fixture
async def expense(bill_manager, recurring_manager):
    await bill_manager.fetch()
    await recurring_manager.fetch()
    return await recurring_manager.add_expense(_template("ค่าเน็ต", "599", due_day=15))


async def _generate(bill_manager, recurring_manager):
    generator = BillAutoGenerator(bill_manager, recurring_manager, language=Language.TH)
    return await generator.run_if_ready(date(2024, 3, 1), today=date(2024, 3, 1))


class TestInvalidTemplateUpdates:
    """Templates must keep a due day and an active flag generation can use."""

    @pytest.mark.asyncio
    async def test_explicit_none_due_day_is_rejected(
        self,
        expense,
        bill_manager,
        recurring_manager,
        recurring_storage,
        session,
    ):
        result = await recurring_manager.update_expense(
            expense.id, RecurringExpenseUpdate(due_day=None)
        )

        assert not result.success
        assert not result.rolled_back
        assert "due_day" in result.error_message
        assert recurring_manager.expenses[0].due_day == 15
        [stored] = await recurring_storage.fetch_expenses(session.user_id)
        assert stored.due_day == 15

        report = await _generate(bill_manager, recurring_manager)

        assert report.state == GenerationState.DONE
        assert [b.due_date for b in report.created] == [date(2024, 3, 15)]

    @pytest.mark.asyncio
    async def test_explicit_none_active_does_not_pause(self, expense, bill_manager, recurring_manager):
        result = await recurring_manager.update_expense(
            expense.id, RecurringExpenseUpdate(active=None)
        )

        assert not result.success
        assert recurring_manager.expenses[0].active is True
        assert len((await _generate(bill_manager, recurring_manager)).created) == 1

    @pytest.mark.asyncio
    async def test_out_of_range_due_day_is_rejected(self, expense, bill_manager, recurring_manager):
        changes = RecurringExpenseUpdate.model_construct(due_day=40)

        result = await recurring_manager.update_expense(expense.id, changes)

        assert not result.success
        assert recurring_manager.expenses[0].due_day == 15
        report = await _generate(bill_manager, recurring_manager)
        assert report.failed == 0
        assert len(report.created) == 1

    @pytest.mark.asyncio
    async def test_installment_terms_can_be_cleared(self, expense, recurring_manager):
        await recurring_manager.update_expense(expense.id, RecurringExpenseUpdate(total_terms=10))

        result = await recurring_manager.update_expense(
            expense.id, RecurringExpenseUpdate(total_terms=None)
        )

        assert result.success
        assert recurring_manager.expenses[0].total_terms is None

    @pytest.mark.asyncio
    async def test_storage_refuses_invalid_update(self, expense, recurring_storage, session):
        with pytest.raises(StorageError):
            await recurring_storage.update_expense(
                session.user_id, expense.id, RecurringExpenseUpdate(due_day=None)
            )
