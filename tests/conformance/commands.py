"""
Random command sequences for property-based store tests.

A command is a plain tuple so hypothesis can shrink and print it:

    ("add", product, price, stock)
    ("register", caller, external_id, country)
    ("fund", caller, amount)
    ("purchase", caller, product, offset)   tendered = list price + offset
    ("credit", caller, product)
    ("pay", caller, offset)                 tendered = current debt + offset
    ("destroy",)

Offsets are mostly zero so that most commands succeed; non-zero offsets
exercise the exact-payment rule.
"""

from datetime import datetime

from hypothesis import strategies as st

from retail_ledger import Store, LedgerError


OWNER = "owner"
CALLERS = ["ana", "bob", "cy", OWNER]
PRODUCTS = ["Widget", "Gadget", "Gizmo"]
COUNTRIES = ["CO", "US", "AR"]

offsets = st.sampled_from([0, 0, 0, 0, -1, 1])

add_cmd = st.tuples(
    st.just("add"),
    st.sampled_from(PRODUCTS),
    st.integers(min_value=0, max_value=30),
    st.integers(min_value=0, max_value=4),
)
register_cmd = st.tuples(
    st.just("register"),
    st.sampled_from(CALLERS),
    st.integers(min_value=0, max_value=3),
    st.sampled_from(COUNTRIES),
)
fund_cmd = st.tuples(
    st.just("fund"),
    st.sampled_from(CALLERS),
    st.integers(min_value=1, max_value=100),
)
purchase_cmd = st.tuples(
    st.just("purchase"),
    st.sampled_from(CALLERS),
    st.sampled_from(PRODUCTS),
    offsets,
)
credit_cmd = st.tuples(
    st.just("credit"),
    st.sampled_from(CALLERS),
    st.sampled_from(PRODUCTS),
)
pay_cmd = st.tuples(st.just("pay"), st.sampled_from(CALLERS), offsets)
destroy_cmd = st.just(("destroy",))

command = st.one_of(
    add_cmd, register_cmd, fund_cmd, purchase_cmd, credit_cmd, pay_cmd, destroy_cmd,
)
commands = st.lists(command, min_size=1, max_size=40)


def new_store(name: str = "prop") -> Store:
    return Store(name, OWNER, datetime(2025, 1, 1), verbose=False)


def run_command(store: Store, cmd: tuple) -> None:
    """Apply one command to the store. Domain failures raise LedgerError."""
    kind = cmd[0]
    if kind == "add":
        _, product, price, stock = cmd
        store.add_product(OWNER, product, "", price, stock)
    elif kind == "register":
        _, caller, external_id, country = cmd
        store.register(caller, external_id, caller.title(), country)
    elif kind == "fund":
        _, caller, amount = cmd
        store.fund(caller, amount)
    elif kind == "purchase":
        _, caller, product, offset = cmd
        listed = store.products.get(product)
        price = listed.price if listed else 0
        store.purchase(caller, product, max(price + offset, 0) * store.unit_scale)
    elif kind == "credit":
        _, caller, product = cmd
        store.credit_purchase(caller, product)
    elif kind == "pay":
        _, caller, offset = cmd
        record = store.customers.get(caller)
        debt = record.debt if record else 0
        store.pay_credit(caller, max(debt + offset, 0) * store.unit_scale)
    else:
        store.attempt_destroy(OWNER)


def try_command(store: Store, cmd: tuple) -> bool:
    """Run a command, returning False if the store rejected it."""
    try:
        run_command(store, cmd)
    except LedgerError:
        return False
    return True
