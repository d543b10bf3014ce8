#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Retail Ledger Step by Step

A walk through one trading day in a small shop. Each step builds on the
previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Foundation     - The empty store, the catalog, customers
  4-6:   Buying         - Cash purchases, rejections, atomicity
  7-8:   Credit         - Buying on credit, settling the full debt
  9:     Loyalty        - The spend threshold and cheap products
  10-11: Audit          - Conservation, aggregates, replay
  12:    Teardown       - Three owner attempts end the store

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import sys

from retail_ledger import (
    Store, LedgerError, CatalogWrite,
    InsufficientFunds, OutstandingDebt, NegativePrice, SystemDestroyed,
    SYSTEM_WALLET, LOYALTY_SPEND_THRESHOLD, LOYALTY_DISCOUNT,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)
    owner: str = "owner"

    widget_price: int = 10
    widget_stock: int = 8
    gadget_price: int = 2
    gadget_stock: int = 3

    ana_funding: int = 100
    bob_funding: int = 5


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def show_customer(store: Store, caller: str):
    c = store.customers[caller]
    print(f"{caller:6s} id={c.external_id} country={c.country} "
          f"spent={c.total_spent} debt={c.debt} wallet={store.get_balance(caller)}")


# ============================================================================
# PHASE 1: FOUNDATION
# ============================================================================

def step_01_empty_store():
    step_header(1, "The Empty Store",
        "A store has one owner, fixed for its whole life.")

    print(">>> store = Store('corner_shop', owner='owner')")
    store = Store("corner_shop", CONFIG.owner, initial_time=CONFIG.start_time, verbose=True)

    section_header("Initial State")
    print(f"Store name:      {store.name}")
    print(f"Owner:           {store.owner}")
    print(f"Current time:    {store.current_time}")
    print(f"Unit scale:      {store.unit_scale}")
    print(f"Destroy after:   {store.destroy_threshold} owner attempts")
    print(f"Transaction log: {len(store.transaction_log)} entries")
    return store


def step_02_catalog(store: Store):
    step_header(2, "Listing Products",
        "Only the owner writes the catalog. Writing a name again replaces it.")

    print(">>> store.add_product('owner', 'Widget', ...)")
    result = store.add_product(CONFIG.owner, "Widget", "A widget",
                               CONFIG.widget_price, CONFIG.widget_stock)
    print(f"Result: {result}")

    print(">>> store.add_product('owner', 'Gadget', ...)")
    store.add_product(CONFIG.owner, "Gadget", "A cheap gadget",
                      CONFIG.gadget_price, CONFIG.gadget_stock)

    section_header("A customer tries to list a product")
    try:
        store.add_product("ana", "Freebie", "", 0, 100)
    except LedgerError as e:
        print(f"Rejected: {type(e).__name__}: {e}")

    assert result == CatalogWrite.CREATED
    return store


def step_03_customers(store: Store):
    step_header(3, "Registering Customers",
        "Each caller registers once, under an external id nobody else holds.")

    store.register("ana", 1, "Ana", "CO")
    store.register("bob", 2, "Bob", "US")

    section_header("Value enters from the system wallet")
    store.fund("ana", CONFIG.ana_funding)
    store.fund("bob", CONFIG.bob_funding)
    show_customer(store, "ana")
    show_customer(store, "bob")
    print(f"system wallet: {store.get_balance(SYSTEM_WALLET)}")

    section_header("Eve tries to take Ana's id")
    try:
        store.register("eve", 1, "Eve", "AR")
    except LedgerError as e:
        print(f"Rejected: {type(e).__name__}: {e}")
    return store


# ============================================================================
# PHASE 2: BUYING
# ============================================================================

def step_04_cash_purchase(store: Store):
    step_header(4, "A Cash Purchase",
        "The tendered value must equal the price exactly.")

    store.advance_time(CONFIG.start_time + timedelta(hours=1))
    store.purchase("ana", "Widget", CONFIG.widget_price)

    section_header("After")
    show_customer(store, "ana")
    print(f"Widget stock:       {store.products['Widget'].stock}")
    print(f"Total purchases:    {store.total_purchases(CONFIG.owner)}")
    print(f"Purchases from CO:  {store.purchases_by_country(CONFIG.owner, 'CO')}")
    return store


def step_05_rejections(store: Store):
    step_header(5, "Rejected Purchases",
        "Guards fail before anything is staged.")

    for label, call in [
        ("Ana pays 9 for a 10 widget", lambda: store.purchase("ana", "Widget", 9)),
        ("Eve is not registered", lambda: store.purchase("eve", "Widget", 10)),
        ("Ana asks for the total debts", lambda: store.total_debts("ana")),
    ]:
        try:
            call()
        except LedgerError as e:
            print(f"{label:32s} -> {type(e).__name__}")
    return store


def step_06_atomicity(store: Store):
    step_header(6, "Atomicity",
        "A purchase that cannot be paid leaves stock and totals untouched.")

    stock_before = store.products["Widget"].stock
    try:
        store.purchase("bob", "Widget", CONFIG.widget_price)
    except InsufficientFunds as e:
        print(f"Rejected: {e}")
    print(f"Widget stock before/after: {stock_before}/{store.products['Widget'].stock}")
    return store


# ============================================================================
# PHASE 3: CREDIT
# ============================================================================

def step_07_credit_purchase(store: Store):
    step_header(7, "Buying on Credit",
        "No value moves. The price becomes debt and blocks further purchases.")

    store.credit_purchase("bob", "Widget")
    show_customer(store, "bob")
    print(f"Total debts: {store.total_debts(CONFIG.owner)}")

    try:
        store.purchase("bob", "Gadget", CONFIG.gadget_price)
    except OutstandingDebt as e:
        print(f"Rejected: {e}")
    return store


def step_08_pay_credit(store: Store):
    step_header(8, "Settling Debt",
        "Only the full debt is accepted. Settled debt counts as spend.")

    store.fund("bob", CONFIG.widget_price)
    store.pay_credit("bob", store.my_debt("bob"))
    show_customer(store, "bob")
    print(f"Total debts:       {store.total_debts(CONFIG.owner)}")
    print(f"Purchases from US: {store.purchases_by_country(CONFIG.owner, 'US')}")
    return store


# ============================================================================
# PHASE 4: LOYALTY
# ============================================================================

def step_09_loyalty(store: Store):
    step_header(9, "The Loyalty Rule",
        f"Above {LOYALTY_SPEND_THRESHOLD} spent, products priced below "
        f"{LOYALTY_DISCOUNT} come out negative and cannot be sold.")

    while store.my_total_spent("ana") <= LOYALTY_SPEND_THRESHOLD:
        store.purchase("ana", "Widget", CONFIG.widget_price)
    show_customer(store, "ana")

    print(f"Widget price for ana: {store.price_of('ana', 'Widget')}")
    print(f"Gadget price for ana: {store.price_of('ana', 'Gadget')}")
    print(f"Gadget price for bob: {store.price_of('bob', 'Gadget')}")
    try:
        store.purchase("ana", "Gadget", 0)
    except NegativePrice as e:
        print(f"Rejected: {e}")
    return store


# ============================================================================
# PHASE 5: AUDIT
# ============================================================================

def step_10_conservation(store: Store):
    step_header(10, "Conservation and Aggregates",
        "Wallets sum to zero and counters agree with customer records.")

    print(f"verify_conservation(): {store.verify_conservation()}")
    print(f"verify_aggregates():   {store.verify_aggregates()}")
    print(f"Notifications so far:  {len(store.notifications)}")
    return store


def step_11_replay(store: Store):
    step_header(11, "Replay",
        "Re-executing the log rebuilds the exact same store.")

    store.verbose = False
    replayed = store.replay()
    print(f"Customers match: {replayed.customers == store.customers}")
    print(f"Products match:  {replayed.products == store.products}")
    print(f"Totals match:    {replayed.totals == store.totals}")
    store.verbose = True
    return store


# ============================================================================
# PHASE 6: TEARDOWN
# ============================================================================

def step_12_teardown(store: Store):
    step_header(12, "Teardown",
        "The owner's third attempt destroys the store for good.")

    store.subscribe(lambda event: print(f"Observer saw: {event}"))
    for _ in range(store.destroy_threshold):
        print(f"Attempt {store.attempt_destroy(CONFIG.owner)}")

    try:
        store.purchase("ana", "Widget", CONFIG.widget_price)
    except SystemDestroyed as e:
        print(f"Rejected: {e}")
    return store


def main():
    print("=" * 70)
    print("       RETAIL LEDGER TUTORIAL")
    print("=" * 70)

    store = step_01_empty_store()
    for step in (
        step_02_catalog, step_03_customers,
        step_04_cash_purchase, step_05_rejections, step_06_atomicity,
        step_07_credit_purchase, step_08_pay_credit,
        step_09_loyalty,
        step_10_conservation, step_11_replay,
        step_12_teardown,
    ):
        wait_for_enter()
        store = step(store)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See retail_ledger/purchases.py for the purchase flows
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
