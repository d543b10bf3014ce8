"""
catalog.py - Product Catalog

This module provides the catalog side of the store:
1. compute_add_product() - Owner-only insert-or-replace of a product by name
2. get_product() / find_product() - Lenient and strict reads
3. price_of() - Effective price after the loyalty rule
4. stock_decrement() - RecordChange removing one unit of stock

Products are keyed by name. Writing a name that already exists replaces the
whole record, stock included.

All functions take StoreView (read-only) and return immutable results.
"""

from __future__ import annotations
from dataclasses import replace

from .access import require_owner
from .core import (
    StoreView, Product, Customer, RecordChange, PendingOperation,
    NotFound, OutOfStock,
    TABLE_PRODUCTS, LOYALTY_SPEND_THRESHOLD, LOYALTY_DISCOUNT,
    build_operation,
)


def compute_add_product(
    view: StoreView,
    caller: str,
    name: str,
    description: str,
    price: int,
    stock: int,
) -> PendingOperation:
    """
    Insert or overwrite the product stored under name.

    There is no existence check: an existing product of the same name is
    replaced, resetting its stock. No notification is emitted.

    Args:
        view: Read-only store access
        caller: Requesting identity (must be the owner)
        name: Product name, the catalog key
        description: Product description
        price: Unit price in whole currency units
        stock: Units available

    Returns:
        PendingOperation with a single products RecordChange. The change's
        old snapshot is None when the name was not in the catalog.

    Raises:
        Unauthorized: If caller is not the owner.
        ValueError: If name is empty or price/stock are invalid.
    """
    require_owner(view, caller)
    if not name or not name.strip():
        raise ValueError("product name cannot be empty")

    new = Product(name=name, description=description, price=price, stock=stock)
    old = view.get_product_record(name)
    change = RecordChange(TABLE_PRODUCTS, name, old, new)
    return build_operation(view, "add_product", caller, changes=[change])


def get_product(view: StoreView, name: str) -> Product:
    """Return the product, or the zero-valued Product for an unknown name."""
    product = view.get_product_record(name)
    return product if product is not None else Product.empty()


def find_product(view: StoreView, name: str) -> Product:
    """
    Strict lookup.

    Raises:
        NotFound: If no product is stored under name.
    """
    product = view.get_product_record(name)
    if product is None:
        raise NotFound(f"Product {name!r} not found")
    return product


def price_of(view: StoreView, name: str, customer: Customer) -> int:
    """
    Effective unit price of a product for a customer.

    Loyal customers (total_spent above LOYALTY_SPEND_THRESHOLD) get
    LOYALTY_DISCOUNT off, but only on products priced *below* the discount.
    The condition is kept exactly as deployed, so the discounted price is
    negative whenever it applies (2 becomes -1). Purchases reject negative
    prices with NegativePrice.
    """
    price = get_product(view, name).price
    if customer.total_spent > LOYALTY_SPEND_THRESHOLD and price < LOYALTY_DISCOUNT:
        return price - LOYALTY_DISCOUNT
    return price


def stock_decrement(view: StoreView, name: str) -> RecordChange:
    """
    Build the change removing one unit of stock.

    Raises:
        OutOfStock: If the product is unknown or its stock is zero.
    """
    product = view.get_product_record(name)
    if product is None or product.stock <= 0:
        raise OutOfStock(f"Product {name!r} is out of stock")
    return RecordChange(
        TABLE_PRODUCTS, name, product, replace(product, stock=product.stock - 1)
    )
