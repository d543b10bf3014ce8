"""
Tests for access.py and catalog.py - Owner Gate and Product Catalog

Tests:
- require_owner / is_owner
- compute_add_product insert-or-replace semantics
- get_product (zero-valued) vs find_product (strict)
- price_of loyalty rule, kept exactly as deployed
- stock_decrement
"""

import pytest

from retail_ledger import (
    Product, Customer, Unauthorized, NotFound, OutOfStock,
    is_owner, require_owner,
    compute_add_product, get_product, find_product, price_of, stock_decrement,
)
from retail_ledger.core import TABLE_PRODUCTS
from tests.fake_view import FakeView


WIDGET = Product("Widget", "desc", 10, 5)


# ============================================================================
# Owner gate
# ============================================================================

class TestOwnerGate:

    def test_owner_passes(self):
        view = FakeView(owner="owner")
        assert is_owner(view, "owner")
        require_owner(view, "owner")

    def test_non_owner_rejected(self):
        view = FakeView(owner="owner")
        assert not is_owner(view, "ana")
        with pytest.raises(Unauthorized, match="ana is not the owner"):
            require_owner(view, "ana")


# ============================================================================
# compute_add_product
# ============================================================================

class TestComputeAddProduct:

    def test_new_product(self):
        view = FakeView()
        pending = compute_add_product(view, "owner", "Widget", "desc", 10, 5)

        assert pending.origin == "add_product"
        assert pending.transfers == ()
        assert pending.events == ()
        (change,) = pending.changes
        assert change.table == TABLE_PRODUCTS
        assert change.key == "Widget"
        assert change.old is None
        assert change.new == WIDGET

    def test_existing_product_is_replaced_including_stock(self):
        view = FakeView(products={"Widget": WIDGET})
        pending = compute_add_product(view, "owner", "Widget", "new desc", 12, 1)

        (change,) = pending.changes
        assert change.old == WIDGET
        assert change.new == Product("Widget", "new desc", 12, 1)

    def test_non_owner_rejected(self):
        with pytest.raises(Unauthorized):
            compute_add_product(FakeView(), "ana", "Widget", "desc", 10, 5)

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError, match="name cannot be empty"):
            compute_add_product(FakeView(), "owner", "", "desc", 10, 5)

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError, match="price must be non-negative"):
            compute_add_product(FakeView(), "owner", "Widget", "desc", -10, 5)


# ============================================================================
# Reads
# ============================================================================

class TestProductReads:

    def test_get_product_known(self):
        assert get_product(FakeView(products={"Widget": WIDGET}), "Widget") == WIDGET

    def test_get_product_unknown_is_zero_valued(self):
        assert get_product(FakeView(), "Nothing") == Product.empty()

    def test_find_product_unknown_raises(self):
        with pytest.raises(NotFound, match="'Nothing' not found"):
            find_product(FakeView(), "Nothing")

    def test_find_product_known(self):
        assert find_product(FakeView(products={"Widget": WIDGET}), "Widget") == WIDGET


# ============================================================================
# price_of
# ============================================================================

class TestPriceOf:
    """The discount applies only to products priced below the discount itself."""

    def _view(self, price):
        return FakeView(products={"P": Product("P", "", price, 1)})

    def test_new_customer_pays_list_price(self):
        assert price_of(self._view(10), "P", Customer(1, "Ana", "CO")) == 10

    def test_loyal_customer_on_regular_price_pays_list_price(self):
        loyal = Customer(1, "Ana", "CO", total_spent=100)
        assert price_of(self._view(10), "P", loyal) == 10
        assert price_of(self._view(3), "P", loyal) == 3

    def test_loyal_customer_on_cheap_product_gets_negative_price(self):
        loyal = Customer(1, "Ana", "CO", total_spent=51)
        assert price_of(self._view(2), "P", loyal) == 2 - 3
        assert price_of(self._view(1), "P", loyal) == -2
        assert price_of(self._view(0), "P", loyal) == -3

    def test_threshold_is_strictly_greater_than_fifty(self):
        customer = Customer(1, "Ana", "CO", total_spent=50)
        assert price_of(self._view(2), "P", customer) == 2

    def test_unknown_product_is_free(self):
        assert price_of(FakeView(), "Nothing", Customer.empty()) == 0


# ============================================================================
# stock_decrement
# ============================================================================

class TestStockDecrement:

    def test_decrements_by_one(self):
        change = stock_decrement(FakeView(products={"Widget": WIDGET}), "Widget")
        assert change.old.stock == 5
        assert change.new.stock == 4
        assert change.new.price == 10

    def test_zero_stock_raises(self):
        view = FakeView(products={"Widget": Product("Widget", "", 10, 0)})
        with pytest.raises(OutOfStock):
            stock_decrement(view, "Widget")

    def test_unknown_product_is_out_of_stock(self):
        with pytest.raises(OutOfStock):
            stock_decrement(FakeView(), "Nothing")
