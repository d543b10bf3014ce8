"""
conftest.py - Shared pytest fixtures for retail ledger tests

Provides common fixtures used across unit, conformance and functional tests:
- Basic stores (empty, stocked, with a registered customer)
- Comparison and invariant helpers
"""

import pytest
from datetime import datetime

from retail_ledger import Store


OWNER = "owner"


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def snapshot(store: Store) -> dict:
    """Capture every piece of mutable store state for before/after comparison."""
    return {
        "products": dict(store.products),
        "customers": dict(store.customers),
        "registered_ids": set(store.registered_ids),
        "totals": dict(store.totals),
        "country_totals": dict(store.country_totals),
        "lifecycle": dict(store.lifecycle),
        "balances": {w: b for w, b in store.balances.items() if b != 0},
        "log_length": len(store.transaction_log),
        "notifications": len(store.notifications),
    }


def assert_invariants(store: Store) -> None:
    """Assert value conservation, aggregate agreement and non-negative stock."""
    conservation = store.verify_conservation()
    assert conservation["valid"], f"Value not conserved: {conservation}"
    aggregates = store.verify_aggregates()
    assert aggregates["valid"], f"Aggregates drifted: {aggregates['discrepancies']}"
    for product in store.products.values():
        assert product.stock >= 0


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def empty_store():
    """Fresh store with no products or customers."""
    return Store("test", OWNER, datetime(2025, 1, 1), verbose=False)


@pytest.fixture
def stocked_store(empty_store):
    """Store with a Widget (price 10, stock 5) and a Gadget (price 2, stock 1)."""
    empty_store.add_product(OWNER, "Widget", "desc", 10, 5)
    empty_store.add_product(OWNER, "Gadget", "cheap", 2, 1)
    return empty_store


@pytest.fixture
def customer_store(stocked_store):
    """Stocked store with 'ana' (id 1, CO) registered and holding 100 units."""
    stocked_store.register("ana", 1, "Ana", "CO")
    stocked_store.fund("ana", 100)
    return stocked_store


@pytest.fixture
def indebted_store(customer_store):
    """Customer store where 'ana' bought a Widget on credit (debt 10)."""
    customer_store.credit_purchase("ana", "Widget")
    return customer_store
