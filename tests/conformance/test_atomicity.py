"""
Atomicity Conformance Tests

INVARIANT: Operations are all-or-nothing.

    ∀ operation O:
        O succeeds ⟹ every transfer and record change in O is applied
        O fails ⟹ nothing in O is applied and nothing is published

A rejected operation leaves products, customers, totals, balances, the
audit log and the notification log exactly as they were.
"""

from hypothesis import given, settings, note

from retail_ledger import Store, InsufficientFunds, OutOfStock, DuplicateId, WrongPaymentAmount
from tests.conftest import snapshot
from tests.conformance.commands import commands, new_store, try_command, OWNER


class TestAtomicityProperties:
    """Property-based atomicity tests."""

    @given(commands)
    @settings(max_examples=100, deadline=None)
    def test_rejected_commands_change_nothing(self, cmds):
        """
        PROPERTY: Any rejected command leaves the whole store untouched.
        """
        store = new_store()
        for cmd in cmds:
            before = snapshot(store)
            applied = try_command(store, cmd)
            note(f"{cmd}: {'applied' if applied else 'rejected'}")
            if not applied:
                assert snapshot(store) == before

    @given(commands)
    @settings(max_examples=100, deadline=None)
    def test_applied_commands_log_exactly_once(self, cmds):
        """
        PROPERTY: Each applied command adds exactly one audit entry.
        """
        store = new_store()
        for cmd in cmds:
            log_length = len(store.transaction_log)
            applied = try_command(store, cmd)
            expected = log_length + 1 if applied else log_length
            assert len(store.transaction_log) == expected


class TestAtomicityExamples:
    """Explicit atomicity examples."""

    def _store(self) -> Store:
        store = new_store()
        store.add_product(OWNER, "Widget", "desc", 10, 1)
        store.register("ana", 1, "Ana", "CO")
        store.register("bob", 2, "Bob", "US")
        store.fund("ana", 5)
        return store

    def test_unfunded_purchase_keeps_stock(self):
        """Stock is not decremented when the payment transfer fails."""
        store = self._store()
        before = snapshot(store)

        try:
            store.purchase("ana", "Widget", 10)
        except InsufficientFunds:
            pass

        assert snapshot(store) == before
        assert store.products["Widget"].stock == 1

    def test_wrong_amount_keeps_everything(self):
        store = self._store()
        store.fund("ana", 100)
        before = snapshot(store)

        for tendered in (9, 11):
            try:
                store.purchase("ana", "Widget", tendered)
            except WrongPaymentAmount:
                pass

        assert snapshot(store) == before

    def test_last_unit_sold_once(self):
        store = self._store()
        store.fund("bob", 10)
        store.credit_purchase("ana", "Widget")

        try:
            store.purchase("bob", "Widget", 10)
        except OutOfStock:
            pass

        assert store.products["Widget"].stock == 0
        assert store.get_balance("bob") == 10
        assert store.my_total_spent("bob") == 0

    def test_duplicate_id_registers_nothing(self):
        store = self._store()
        before = snapshot(store)

        try:
            store.register("cy", 2, "Cy", "AR")
        except DuplicateId:
            pass

        assert snapshot(store) == before
        assert not store.has_customer("cy")
