"""
Tests for customers.py - Customer Registry

Tests:
- compute_registration (new record, id collision, re-registration)
- get_customer zero-valued default
- require_registered decided by caller record, not by external id 0
- require_no_debt
"""

import pytest

from retail_ledger import (
    Customer, DuplicateId, AlreadyRegistered, NotRegistered, OutstandingDebt,
    compute_registration, get_customer, is_registered,
    require_registered, require_no_debt,
    SYSTEM_WALLET, STORE_WALLET,
)
from retail_ledger.core import TABLE_CUSTOMERS, TABLE_REGISTERED_IDS
from tests.fake_view import FakeView


ANA = Customer(1, "Ana", "CO")


class TestComputeRegistration:

    def test_new_customer(self):
        pending = compute_registration(FakeView(), "ana", 1, "Ana", "CO")

        assert pending.origin == "register"
        assert pending.caller == "ana"
        customer_change, id_change = pending.changes
        assert customer_change.table == TABLE_CUSTOMERS
        assert customer_change.key == "ana"
        assert customer_change.old is None
        assert customer_change.new == Customer(1, "Ana", "CO", total_spent=0, debt=0)
        assert id_change.table == TABLE_REGISTERED_IDS
        assert (id_change.key, id_change.old, id_change.new) == (1, False, True)

    def test_id_taken_by_other_caller(self):
        view = FakeView(customers={"ana": ANA})
        with pytest.raises(DuplicateId, match="External id 1"):
            compute_registration(view, "bob", 1, "Bob", "US")

    def test_id_collision_checked_before_re_registration(self):
        view = FakeView(customers={"ana": ANA})
        with pytest.raises(DuplicateId):
            compute_registration(view, "ana", 1, "Ana", "CO")

    def test_re_registration_with_fresh_id_rejected(self):
        view = FakeView(customers={"ana": Customer(1, "Ana", "CO", total_spent=5, debt=7)})
        with pytest.raises(AlreadyRegistered):
            compute_registration(view, "ana", 2, "Ana", "CO")

    def test_id_zero_is_a_valid_id(self):
        pending = compute_registration(FakeView(), "zed", 0, "Zed", "AR")
        assert pending.changes[1].key == 0

    def test_non_int_id_rejected(self):
        with pytest.raises(ValueError, match="external_id must be int"):
            compute_registration(FakeView(), "ana", "1", "Ana", "CO")

    @pytest.mark.parametrize("caller", [SYSTEM_WALLET, STORE_WALLET])
    def test_reserved_wallet_cannot_register(self, caller):
        with pytest.raises(ValueError, match="reserved wallet"):
            compute_registration(FakeView(), caller, 7, "Sys", "CO")


class TestRegistryReads:

    def test_get_customer(self):
        assert get_customer(FakeView(customers={"ana": ANA}), "ana") == ANA

    def test_get_customer_unregistered_is_zero_valued(self):
        assert get_customer(FakeView(), "ghost") == Customer.empty()

    def test_is_registered(self):
        view = FakeView(customers={"ana": ANA})
        assert is_registered(view, "ana")
        assert not is_registered(view, "ghost")


class TestGuards:

    def test_require_registered_returns_record(self):
        assert require_registered(FakeView(customers={"ana": ANA}), "ana") == ANA

    def test_require_registered_rejects_unknown_caller(self):
        with pytest.raises(NotRegistered, match="ghost"):
            require_registered(FakeView(), "ghost")

    def test_unregistered_caller_rejected_even_when_id_zero_is_taken(self):
        """An unregistered caller's default record carries id 0; that must not count."""
        view = FakeView(customers={"zed": Customer(0, "Zed", "AR")})
        assert view.is_id_registered(0)
        with pytest.raises(NotRegistered):
            require_registered(view, "ghost")

    def test_require_no_debt_clean(self):
        require_no_debt(FakeView(customers={"ana": ANA}), "ana")

    def test_require_no_debt_indebted(self):
        view = FakeView(customers={"ana": Customer(1, "Ana", "CO", debt=1)})
        with pytest.raises(OutstandingDebt, match="outstanding debt of 1"):
            require_no_debt(view, "ana")
