"""
customers.py - Customer Registry

Customers are keyed by caller identity and carry a globally unique external
id. Registration is the only way a record comes into existence; purchases
and payments update it through the purchases module.

Guards:
    require_registered  - caller holds a customer record
    require_no_debt     - caller's debt is exactly zero

Registration status is decided by the caller's own record, never by looking
up the external id stored on a default record: an unregistered caller must
not pass because somebody else registered id 0.
"""

from __future__ import annotations

from .core import (
    StoreView, Customer, RecordChange, PendingOperation,
    DuplicateId, AlreadyRegistered, NotRegistered, OutstandingDebt,
    TABLE_CUSTOMERS, TABLE_REGISTERED_IDS,
    SYSTEM_WALLET, STORE_WALLET,
    build_operation,
)


def compute_registration(
    view: StoreView,
    caller: str,
    external_id: int,
    name: str,
    country: str,
) -> PendingOperation:
    """
    Register caller as a customer with zero spend and zero debt.

    Args:
        view: Read-only store access
        caller: Identity being registered
        external_id: Globally unique id for this customer
        name: Customer name
        country: Country used for per-country purchase totals

    Returns:
        PendingOperation creating the customer record and marking the id taken.

    Raises:
        DuplicateId: If external_id was already registered by any caller.
        AlreadyRegistered: If caller already holds a customer record.
        ValueError: If external_id is not an int, or caller is a reserved
            wallet name.
    """
    if not isinstance(external_id, int) or isinstance(external_id, bool):
        raise ValueError(f"external_id must be int, got {type(external_id)}")
    if caller in (SYSTEM_WALLET, STORE_WALLET):
        raise ValueError(f"caller cannot be the reserved wallet {caller!r}")
    if view.is_id_registered(external_id):
        raise DuplicateId(f"External id {external_id} is already registered")
    # Re-registering would silently discard spend and debt history.
    if view.get_customer_record(caller) is not None:
        raise AlreadyRegistered(f"{caller} is already registered")

    customer = Customer(external_id=external_id, name=name, country=country)
    changes = [
        RecordChange(TABLE_CUSTOMERS, caller, None, customer),
        RecordChange(TABLE_REGISTERED_IDS, external_id, False, True),
    ]
    return build_operation(view, "register", caller, changes=changes)


def get_customer(view: StoreView, caller: str) -> Customer:
    """Return the caller's record, or the zero-valued Customer if unregistered."""
    customer = view.get_customer_record(caller)
    return customer if customer is not None else Customer.empty()


def is_registered(view: StoreView, caller: str) -> bool:
    return view.get_customer_record(caller) is not None


def require_registered(view: StoreView, caller: str) -> Customer:
    """
    Enforce that caller is a registered customer.

    Returns:
        The caller's customer record.

    Raises:
        NotRegistered: If caller has no customer record.
    """
    customer = view.get_customer_record(caller)
    if customer is None:
        raise NotRegistered(f"{caller} is not a registered customer")
    return customer


def require_no_debt(view: StoreView, caller: str) -> None:
    """
    Enforce that caller carries no debt. Debt gates purchases as a whole:
    any outstanding amount blocks, partial repayment does not exist.

    Raises:
        OutstandingDebt: If caller's debt is above zero.
    """
    customer = get_customer(view, caller)
    if customer.debt != 0:
        raise OutstandingDebt(f"{caller} has outstanding debt of {customer.debt}")
