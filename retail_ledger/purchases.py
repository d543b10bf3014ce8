"""
purchases.py - Purchase, Credit and Payment Flows

This module is the only place money-bearing operations are computed:
1. compute_purchase() - Cash purchase, tendered value goes to the owner
2. compute_credit_purchase() - Purchase on credit, no value moves
3. compute_credit_payment() - Settle the full outstanding debt

Customer states are derived from the record, there is no state field:

    Unregistered -> Clean -> Indebted -> Clean (after full repayment)

Each function checks its guards in a fixed order and raises the first
failure, then returns a PendingOperation whose transfers come before its
record changes. The store validates transfers first, so a transfer that
cannot be honoured rejects the whole operation.

Aggregate counters (total purchases, total debts, purchases by country) are
owned here; product and customer records are changed through snapshots read
from the view.
"""

from __future__ import annotations
from dataclasses import replace
from typing import List

from .catalog import price_of, stock_decrement
from .customers import require_registered, require_no_debt
from .core import (
    StoreView, Customer, Transfer, RecordChange, PendingOperation,
    PurchaseEvent, CreditPaymentEvent,
    WrongPaymentAmount, NegativePrice,
    TABLE_CUSTOMERS, TABLE_TOTALS, TABLE_COUNTRY_TOTALS,
    TOTAL_PURCHASES, TOTAL_DEBTS, METHOD_CASH, METHOD_CREDIT,
    build_operation,
)


def _total_change(view: StoreView, key: str, delta: int) -> RecordChange:
    old = view.get_total(key)
    return RecordChange(TABLE_TOTALS, key, old, old + delta)


def _country_change(view: StoreView, country: str, delta: int) -> RecordChange:
    old = view.get_country_total(country)
    return RecordChange(TABLE_COUNTRY_TOTALS, country, old, old + delta)


def _customer_change(caller: str, old: Customer, **updates) -> RecordChange:
    return RecordChange(TABLE_CUSTOMERS, caller, old, replace(old, **updates))


def _payment_transfers(view: StoreView, caller: str, tendered: int, reason: str) -> List[Transfer]:
    # The owner paying themselves moves nothing.
    if tendered == 0 or caller == view.owner:
        return []
    return [Transfer(tendered, caller, view.owner, reason)]


def _effective_price(view: StoreView, product: str, customer: Customer) -> int:
    price = price_of(view, product, customer)
    if price < 0:
        raise NegativePrice(f"Effective price of {product!r} is negative ({price})")
    return price


def compute_purchase(
    view: StoreView,
    caller: str,
    product: str,
    tendered: int,
) -> PendingOperation:
    """
    Buy one unit of a product for cash.

    Args:
        view: Read-only store access
        caller: Buying identity
        product: Product name
        tendered: Value sent with the call, in smallest units. Must equal
            price_of(product) * unit_scale exactly.

    Returns:
        PendingOperation containing:
        - Transfer of the tendered value from caller to owner
        - Customer total_spent += price
        - total_purchases and purchases_by_country[country] += price
        - Product stock -= 1
        - PurchaseEvent(caller, "CASH", product, price)

    Raises:
        NotRegistered: Caller has no customer record.
        OutstandingDebt: Caller carries debt.
        OutOfStock: Product stock is zero (or product unknown).
        NegativePrice: The effective price is negative.
        WrongPaymentAmount: tendered differs from the amount due.
    """
    customer = require_registered(view, caller)
    require_no_debt(view, caller)
    stock_change = stock_decrement(view, product)
    price = _effective_price(view, product, customer)

    due = price * view.unit_scale
    if tendered != due:
        raise WrongPaymentAmount(
            f"Purchase of {product!r} requires exactly {due}, got {tendered}"
        )

    transfers = _payment_transfers(view, caller, tendered, f"purchase_{product}")
    changes = [
        _customer_change(caller, customer, total_spent=customer.total_spent + price),
        _total_change(view, TOTAL_PURCHASES, price),
        _country_change(view, customer.country, price),
        stock_change,
    ]
    events = [PurchaseEvent(caller, METHOD_CASH, product, price)]
    return build_operation(view, "purchase", caller, transfers, changes, events)


def compute_credit_purchase(
    view: StoreView,
    caller: str,
    product: str,
) -> PendingOperation:
    """
    Buy one unit of a product on credit.

    No value is tendered. The price is added to the customer's debt and to
    total_debts, moving the customer into the indebted state.

    Returns:
        PendingOperation containing:
        - Customer debt += price
        - total_debts += price
        - Product stock -= 1
        - PurchaseEvent(caller, "CREDIT", product, price)

    Raises:
        NotRegistered, OutstandingDebt, OutOfStock, NegativePrice
    """
    customer = require_registered(view, caller)
    require_no_debt(view, caller)
    stock_change = stock_decrement(view, product)
    price = _effective_price(view, product, customer)

    changes = [
        _customer_change(caller, customer, debt=customer.debt + price),
        _total_change(view, TOTAL_DEBTS, price),
        stock_change,
    ]
    events = [PurchaseEvent(caller, METHOD_CREDIT, product, price)]
    return build_operation(view, "credit_purchase", caller, changes=changes, events=events)


def compute_credit_payment(
    view: StoreView,
    caller: str,
    tendered: int,
) -> PendingOperation:
    """
    Settle the caller's entire debt.

    The tendered value must equal debt * unit_scale exactly; partial
    repayment is not accepted. With zero debt only a zero tender succeeds.

    Returns:
        PendingOperation containing:
        - Transfer of the tendered value from caller to owner
        - Customer total_spent += debt, debt = 0
        - total_purchases and purchases_by_country[country] += debt
        - total_debts -= debt
        - CreditPaymentEvent(caller, debt)

    Raises:
        NotRegistered: Caller has no customer record.
        WrongPaymentAmount: tendered differs from the debt due.
    """
    customer = require_registered(view, caller)
    amount = customer.debt

    due = amount * view.unit_scale
    if tendered != due:
        raise WrongPaymentAmount(
            f"Credit payment requires exactly {due}, got {tendered}"
        )

    transfers = _payment_transfers(view, caller, tendered, "credit_payment")
    changes = []
    if amount:
        changes = [
            _customer_change(
                caller, customer,
                total_spent=customer.total_spent + amount,
                debt=0,
            ),
            _total_change(view, TOTAL_PURCHASES, amount),
            _country_change(view, customer.country, amount),
            _total_change(view, TOTAL_DEBTS, -amount),
        ]
    events = [CreditPaymentEvent(caller, amount)]
    return build_operation(view, "credit_payment", caller, transfers, changes, events)
