"""
Tests for the synchronized entity store.

Coroutines are driven with asyncio.run; the gateway is the in-memory
FakeGateway from conftest.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from conftest import (
    PRINCIPAL,
    FakeGateway,
    make_category,
    make_expense,
    make_income,
)
from finance_tracker.errors import LoadFailed, OperationFailed, ValidationError
from finance_tracker.models import AuditEventType, EntityKind
from finance_tracker.store import PENDING_PREFIX, SynchronizedEntityStore


def loaded_store(gateway, audit_logger=None):
    store = SynchronizedEntityStore(gateway, PRINCIPAL, audit_logger=audit_logger)
    asyncio.run(store.load())
    return store


def expense_fields(amount="2", on="2024-01-02", category_id="c1"):
    return {
        "description": "Coffee",
        "amount": amount,
        "category_id": category_id,
        "date": on,
    }


class TestLoad:
    """Initial load from the remote."""

    def test_load_replaces_collections(self):
        """Test that load() presents the remote's records."""
        gateway = FakeGateway({
            EntityKind.CATEGORY: [make_category("c1", "Food")],
            EntityKind.EXPENSE: [make_expense("e1", "5", date(2024, 1, 1))],
            EntityKind.INCOME: [make_income("i1", "100", date(2024, 1, 1))],
        })
        store = SynchronizedEntityStore(gateway, PRINCIPAL)
        report = asyncio.run(store.load())

        assert report.ok
        assert report.counts[EntityKind.EXPENSE] == 1
        assert [c.id for c in store.categories] == ["c1"]
        assert [e.id for e in store.expenses] == ["e1"]
        assert [i.id for i in store.incomes] == ["i1"]

    def test_load_failure_is_soft(self, audit_logger):
        """Test that a failing kind is shown empty and reported."""
        gateway = FakeGateway({
            EntityKind.CATEGORY: [make_category("c1", "Food")],
            EntityKind.EXPENSE: [make_expense("e1", "5", date(2024, 1, 1))],
        })
        gateway.fail_on = {"list"}
        gateway.fail_kinds = {EntityKind.EXPENSE}

        store = SynchronizedEntityStore(gateway, PRINCIPAL, audit_logger=audit_logger)
        report = asyncio.run(store.load())

        assert not report.ok
        assert isinstance(report.failures[EntityKind.EXPENSE], LoadFailed)
        assert store.expenses == ()
        assert [c.id for c in store.categories] == ["c1"]
        assert any(
            event.event_type == AuditEventType.LOAD_FAILED
            for event in audit_logger.recent_events
        )

    def test_foreign_records_are_dropped(self, audit_logger):
        """Test that records of another principal never enter the session."""
        gateway = FakeGateway({
            EntityKind.EXPENSE: [
                make_expense("mine", "5", date(2024, 1, 1)),
                make_expense("theirs", "7", date(2024, 1, 1), user_id="someone-else"),
            ],
        })
        store = loaded_store(gateway, audit_logger)

        assert [e.id for e in store.expenses] == ["mine"]
        assert any(
            event.event_type == AuditEventType.FOREIGN_RECORD_DROPPED
            for event in audit_logger.recent_events
        )

    def test_store_requires_principal(self):
        """Test that a session cannot start without a principal."""
        with pytest.raises(ValueError):
            SynchronizedEntityStore(FakeGateway(), "")


class TestAdd:
    """Confirmed-only adds."""

    def test_add_inserts_server_record_sorted(self):
        """Test that one new record with the server id lands in date order."""
        gateway = FakeGateway({
            EntityKind.EXPENSE: [
                make_expense("e-new", "1", date(2024, 1, 5)),
                make_expense("e-old", "1", date(2024, 1, 1)),
            ],
        })
        store = loaded_store(gateway)

        created = asyncio.run(store.add(EntityKind.EXPENSE, expense_fields(on="2024-01-03")))

        assert created.id == "srv-1"
        assert created.user_id == PRINCIPAL
        assert [e.id for e in store.expenses] == ["e-new", "srv-1", "e-old"]
        assert len(gateway.operations("create")) == 1

    def test_new_record_precedes_same_date_records(self):
        """Test that ties are broken with the new record first."""
        gateway = FakeGateway({
            EntityKind.EXPENSE: [
                make_expense("a", "1", date(2024, 1, 2)),
                make_expense("b", "1", date(2024, 1, 2)),
            ],
        })
        store = loaded_store(gateway)

        asyncio.run(store.add_expense(expense_fields(on="2024-01-02")))

        assert [e.id for e in store.expenses] == ["srv-1", "a", "b"]

    def test_categories_stay_sorted_by_name(self):
        """Test that categories are ordered by name after an insert."""
        gateway = FakeGateway({
            EntityKind.CATEGORY: [make_category("c1", "Bills"), make_category("c2", "Travel")],
        })
        store = loaded_store(gateway)

        asyncio.run(store.add_category({"name": "food", "color": "teal"}))

        assert [c.name for c in store.categories] == ["Bills", "food", "Travel"]

    @pytest.mark.parametrize("amount", ["0", "-1", 0, -1])
    def test_invalid_amount_never_reaches_remote(self, amount):
        """Test that a non-positive amount fails locally with zero remote calls."""
        gateway = FakeGateway()
        store = SynchronizedEntityStore(gateway, PRINCIPAL)

        with pytest.raises(ValidationError):
            asyncio.run(store.add(EntityKind.EXPENSE, expense_fields(amount=amount)))

        assert gateway.calls == []
        assert store.expenses == ()

    def test_remote_failure_leaves_state_unchanged(self, audit_logger):
        """Test that a rejected create changes nothing locally."""
        gateway = FakeGateway({
            EntityKind.INCOME: [make_income("i1", "100", date(2024, 1, 1))],
        })
        store = loaded_store(gateway, audit_logger)
        gateway.fail_on = {"create"}

        with pytest.raises(OperationFailed) as exc_info:
            asyncio.run(store.add_income(
                {"description": "Bonus", "amount": "50", "date": "2024-02-01"}
            ))

        assert exc_info.value.operation == "create"
        assert exc_info.value.__cause__ is not None
        assert [i.id for i in store.incomes] == ["i1"]
        assert len(gateway.operations("create")) == 1
        assert audit_logger.recent_events[-1].event_type == AuditEventType.OPERATION_FAILED

    def test_listeners_are_notified(self):
        """Test that subscribers hear about mutations until they unsubscribe."""
        store = loaded_store(FakeGateway())
        seen = []
        unsubscribe = store.subscribe(seen.append)

        asyncio.run(store.add_expense(expense_fields()))
        unsubscribe()
        asyncio.run(store.add_expense(expense_fields()))

        assert seen == [EntityKind.EXPENSE]


class TestOptimisticAdd:
    """Opt-in optimistic adds."""

    def test_tentative_record_replaced_on_success(self):
        """Test that the pending record is swapped for the confirmed one."""
        gateway = FakeGateway()
        store = loaded_store(gateway)
        snapshots = []
        store.subscribe(lambda kind: snapshots.append(store.expenses))

        created = asyncio.run(
            store.add(EntityKind.EXPENSE, expense_fields(), optimistic=True)
        )

        tentative = snapshots[0][0]
        assert tentative.id.startswith(PENDING_PREFIX)
        assert [e.id for e in store.expenses] == [created.id]
        assert not store.is_pending(tentative.id)

    def test_tentative_record_rolled_back_on_failure(self):
        """Test that the pending record disappears when the remote rejects it."""
        gateway = FakeGateway({
            EntityKind.EXPENSE: [make_expense("e1", "1", date(2024, 1, 1))],
        })
        store = loaded_store(gateway)
        gateway.fail_on = {"create"}

        with pytest.raises(OperationFailed):
            asyncio.run(store.add(EntityKind.EXPENSE, expense_fields(), optimistic=True))

        assert [e.id for e in store.expenses] == ["e1"]

    def test_reload_during_create_keeps_confirmed_record(self):
        """Test that a load() racing an optimistic add does not lose the record."""
        gateway = SlowCreateGateway()
        store = loaded_store(gateway)

        async def add_while_reloading():
            adding = asyncio.ensure_future(
                store.add_expense(expense_fields(), optimistic=True)
            )
            await gateway.create_started.wait()
            await store.load()
            gateway.release.set()
            return await adding

        created = asyncio.run(add_while_reloading())

        assert [e.id for e in store.expenses] == [created.id]
        assert not any(store.is_pending(e.id) for e in store.expenses)

    def test_reload_that_already_saw_record_does_not_duplicate(self):
        """Test that a load() returning the new record yields exactly one copy."""
        gateway = SlowCreateGateway(store_before_release=True)
        store = loaded_store(gateway)

        async def add_while_reloading():
            adding = asyncio.ensure_future(
                store.add_expense(expense_fields(), optimistic=True)
            )
            await gateway.create_started.wait()
            await store.load()
            gateway.release.set()
            return await adding

        created = asyncio.run(add_while_reloading())

        assert [e.id for e in store.expenses] == [created.id]


class SlowCreateGateway(FakeGateway):
    """Holds create() open until the test releases it."""

    def __init__(self, store_before_release=False):
        super().__init__()
        self.store_before_release = store_before_release
        self.create_started = asyncio.Event()
        self.release = asyncio.Event()

    async def create(self, kind, principal, draft):
        entity = None
        if self.store_before_release:
            entity = await super().create(kind, principal, draft)
        self.create_started.set()
        await self.release.wait()
        if entity is None:
            entity = await super().create(kind, principal, draft)
        return entity


class TestRemove:
    """Deletes."""

    def test_remove_drops_record_preserving_order(self):
        """Test that a delete keeps the remaining order."""
        gateway = FakeGateway({
            EntityKind.EXPENSE: [
                make_expense("a", "1", date(2024, 1, 3)),
                make_expense("b", "1", date(2024, 1, 2)),
                make_expense("c", "1", date(2024, 1, 1)),
            ],
        })
        store = loaded_store(gateway)

        asyncio.run(store.remove_expense("b"))

        assert [e.id for e in store.expenses] == ["a", "c"]

    def test_remove_unknown_id_still_asks_remote(self):
        """Test that an unknown id reaches the remote and surfaces OperationFailed."""
        gateway = FakeGateway({
            EntityKind.INCOME: [make_income("i1", "10", date(2024, 1, 1))],
        })
        store = loaded_store(gateway)

        with pytest.raises(OperationFailed) as exc_info:
            asyncio.run(store.remove(EntityKind.INCOME, "nope"))

        assert gateway.operations("delete") == [
            ("delete", EntityKind.INCOME, PRINCIPAL, "nope"),
        ]
        assert exc_info.value.entity_id == "nope"
        assert [i.id for i in store.incomes] == ["i1"]

    def test_remove_failure_keeps_record(self):
        """Test that a failed delete leaves the record in place."""
        gateway = FakeGateway({
            EntityKind.CATEGORY: [make_category("c1", "Food")],
        })
        store = loaded_store(gateway)
        gateway.fail_on = {"delete"}

        with pytest.raises(OperationFailed):
            asyncio.run(store.remove_category("c1"))

        assert [c.id for c in store.categories] == ["c1"]

    def test_category_delete_orphans_expenses(self):
        """Test that deleting a category leaves its expenses dangling."""
        gateway = FakeGateway({
            EntityKind.CATEGORY: [make_category("c1", "Food")],
            EntityKind.EXPENSE: [make_expense("e1", "5", date(2024, 1, 1), category_id="c1")],
        })
        store = loaded_store(gateway)
        expense = store.expenses[0]
        assert store.category_for(expense).name == "Food"

        asyncio.run(store.remove_category("c1"))

        assert [e.id for e in store.expenses] == ["e1"]
        assert store.category_for(expense) is None


class TestConcurrency:
    """Unserialized operations."""

    def test_concurrent_adds_all_land(self):
        """Test that concurrent adds each produce exactly one record."""
        gateway = FakeGateway()
        store = loaded_store(gateway)

        async def add_many():
            await asyncio.gather(*(
                store.add_expense(expense_fields(amount=str(n + 1), on=f"2024-01-0{n + 1}"))
                for n in range(3)
            ))

        asyncio.run(add_many())

        assert len(store.expenses) == 3
        assert [e.date for e in store.expenses] == sorted(
            (e.date for e in store.expenses), reverse=True,
        )
        assert sum(e.amount for e in store.expenses) == Decimal("6")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
