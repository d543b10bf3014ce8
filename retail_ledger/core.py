"""
Core types and pure functions for the retail ledger.

This module provides the foundational data structures and protocols for the store:
1. Protocols: StoreView for read-only store access
2. Immutable records: Product, Customer, Transfer, RecordChange
3. Notifications: PurchaseEvent, CreditPaymentEvent, DestroyedEvent
4. Transactions: PendingOperation (intent) and Operation (fact)
5. Exceptions: LedgerError and domain-specific error types
6. Constants: currency scale, loyalty thresholds, reserved wallets

All functions in this module are pure and operate on read-only views.
No function can mutate store state directly.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import (
    Dict, List, Optional, Any, Protocol,
    Tuple, FrozenSet, Union, runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved wallet for issuance. Exempt from balance validation.
SYSTEM_WALLET = "system"

# Wallet holding value owned by the store itself; swept to the owner on teardown.
STORE_WALLET = "store"

# Smallest tendered units per whole currency unit.
DEFAULT_UNIT_SCALE = 1
WEI_PER_ETHER = 10 ** 18

# Owner destroy attempts required before teardown.
DESTROY_THRESHOLD = 3

# Loyalty discount: customers who spent more than the threshold get the
# discount on qualifying products (see catalog.price_of).
LOYALTY_SPEND_THRESHOLD = 50
LOYALTY_DISCOUNT = 3

# Payment methods reported in purchase notifications.
METHOD_CASH = "CASH"
METHOD_CREDIT = "CREDIT"

# Record tables touched by RecordChange.
TABLE_PRODUCTS = "products"
TABLE_CUSTOMERS = "customers"
TABLE_REGISTERED_IDS = "registered_ids"
TABLE_TOTALS = "totals"
TABLE_COUNTRY_TOTALS = "country_totals"
TABLE_LIFECYCLE = "lifecycle"

TABLES = frozenset({
    TABLE_PRODUCTS, TABLE_CUSTOMERS, TABLE_REGISTERED_IDS,
    TABLE_TOTALS, TABLE_COUNTRY_TOTALS, TABLE_LIFECYCLE,
})

# Keys within the totals and lifecycle tables.
TOTAL_PURCHASES = "total_purchases"
TOTAL_DEBTS = "total_debts"
LIFECYCLE_ATTEMPTS = "destroy_attempts"
LIFECYCLE_DESTROYED = "destroyed"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class Unauthorized(LedgerError):
    """Raised when a non-owner attempts an owner-only action."""
    pass


class DuplicateId(LedgerError):
    """Raised when a registration reuses an external id already registered by anyone."""
    pass


class AlreadyRegistered(LedgerError):
    """Raised when a caller that already holds a customer record registers again."""
    pass


class NotRegistered(LedgerError):
    """Raised when an unregistered caller attempts a customer-only action."""
    pass


class OutstandingDebt(LedgerError):
    """Raised when an indebted customer attempts a new purchase."""
    pass


class OutOfStock(LedgerError):
    """Raised when purchasing a product whose stock is zero."""
    pass


class WrongPaymentAmount(LedgerError):
    """Raised when the tendered value differs from the amount due, in either direction."""
    pass


class NotFound(LedgerError):
    """Raised by strict lookups of products that do not exist."""
    pass


class SystemDestroyed(LedgerError):
    """Raised for any operation on a store that has been torn down."""
    pass


class InsufficientFunds(LedgerError):
    """Raised when a transfer would take a wallet balance below zero."""
    pass


class NegativePrice(LedgerError):
    """Raised when a purchase would be charged at a negative effective price."""
    pass


class StaleState(LedgerError):
    """Raised when a pending operation was computed against state that has since changed."""
    pass


class SubscriberError(Exception):
    """
    Raised after an operation committed and every notification was
    delivered, when one or more subscribers raised during delivery.

    Not a LedgerError: the operation itself succeeded.

    Attributes:
        operation: The committed Operation
        errors: (notification, exception) pairs in delivery order
    """

    def __init__(self, operation, errors):
        self.operation = operation
        self.errors = errors
        first = errors[0][1]
        super().__init__(
            f"{len(errors)} subscriber error(s) after {operation.exec_id}: "
            f"{type(first).__name__}: {first}"
        )


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of an operation execution attempt.

    APPLIED: Operation was validated and applied to the store.
    REJECTED: Operation failed validation (insufficient funds, stale state,
              destroyed store). Nothing was applied.
    """
    APPLIED = "applied"
    REJECTED = "rejected"


class CatalogWrite(Enum):
    """Whether add_product inserted a new product or replaced an existing one."""
    CREATED = "created"
    REPLACED = "replaced"


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Product:
    """
    A catalog entry, keyed by name.

    Attributes:
        name: Unique product name (the catalog key).
        description: Free-form description.
        price: Unit price in whole currency units (non-negative).
        stock: Remaining purchasable units (non-negative).
    """
    name: str
    description: str
    price: int
    stock: int

    def __post_init__(self):
        if not isinstance(self.price, int) or isinstance(self.price, bool):
            raise ValueError(f"Product price must be int, got {type(self.price)}")
        if not isinstance(self.stock, int) or isinstance(self.stock, bool):
            raise ValueError(f"Product stock must be int, got {type(self.stock)}")
        if self.price < 0:
            raise ValueError(f"Product price must be non-negative, got {self.price}")
        if self.stock < 0:
            raise ValueError(f"Product stock must be non-negative, got {self.stock}")

    @classmethod
    def empty(cls) -> Product:
        """The zero-valued record returned for unknown names."""
        return cls(name="", description="", price=0, stock=0)

    def is_empty(self) -> bool:
        return self == Product.empty()


@dataclass(frozen=True, slots=True)
class Customer:
    """
    A registered customer, keyed by caller identity.

    Attributes:
        external_id: Globally unique id chosen at registration.
        name: Customer name.
        country: Country the customer's purchases are aggregated under.
        total_spent: Whole units paid so far, cash purchases plus repaid credit.
        debt: Outstanding credit balance in whole units.
    """
    external_id: int
    name: str
    country: str
    total_spent: int = 0
    debt: int = 0

    def __post_init__(self):
        if self.total_spent < 0:
            raise ValueError(f"Customer total_spent must be non-negative, got {self.total_spent}")
        if self.debt < 0:
            raise ValueError(f"Customer debt must be non-negative, got {self.debt}")

    @classmethod
    def empty(cls) -> Customer:
        """The zero-valued record returned for unregistered callers."""
        return cls(external_id=0, name="", country="")

    @property
    def indebted(self) -> bool:
        return self.debt > 0


# ============================================================================
# NOTIFICATIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class PurchaseEvent:
    """A cash or credit purchase was committed."""
    buyer: str
    method: str
    product: str
    price: int

    def __post_init__(self):
        if self.method not in (METHOD_CASH, METHOD_CREDIT):
            raise ValueError(f"Unknown purchase method: {self.method}")


@dataclass(frozen=True, slots=True)
class CreditPaymentEvent:
    """A customer settled their outstanding debt."""
    buyer: str
    amount: int


@dataclass(frozen=True, slots=True)
class DestroyedEvent:
    """The store was torn down by its owner."""
    owner: str
    attempts: int


Notification = Union[PurchaseEvent, CreditPaymentEvent, DestroyedEvent]


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class StoreView(Protocol):
    """
    Read-only interface to store state.

    Compute functions accept a StoreView to declare that they only read.
    The Store class implements this protocol but also provides mutation
    methods. For testing, FakeView provides a dict-backed implementation.
    """

    @property
    def owner(self) -> str:
        """Identity of the single privileged principal."""
        ...

    @property
    def unit_scale(self) -> int:
        """Smallest tendered units per whole currency unit."""
        ...

    @property
    def destroy_threshold(self) -> int:
        """Owner destroy attempts required before teardown."""
        ...

    @property
    def current_time(self) -> datetime:
        """Current logical time of the store."""
        ...

    def get_product_record(self, name: str) -> Optional[Product]:
        """Return the stored product, or None if the name is unknown."""
        ...

    def get_customer_record(self, caller: str) -> Optional[Customer]:
        """Return the stored customer for a caller, or None if unregistered."""
        ...

    def is_id_registered(self, external_id: int) -> bool:
        """Return True if any caller has registered this external id."""
        ...

    def get_total(self, key: str) -> int:
        """Return an aggregate counter (TOTAL_PURCHASES or TOTAL_DEBTS)."""
        ...

    def get_country_total(self, country: str) -> int:
        """Return total purchases for a country (0 if none)."""
        ...

    def get_lifecycle(self, key: str) -> Any:
        """Return a lifecycle value (LIFECYCLE_ATTEMPTS or LIFECYCLE_DESTROYED)."""
        ...

    def get_balance(self, wallet: str) -> int:
        """Return a wallet's balance in smallest units (0 if never used)."""
        ...


# ============================================================================
# VALUE TRANSFERS AND RECORD CHANGES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Transfer:
    """
    A single one-way transfer of tendered value between wallets.

    Attributes:
        amount: Quantity in smallest currency units (positive int).
        source: Wallet debited.
        dest: Wallet credited.
        reason: Identifier of the operation generating this transfer.
    """
    amount: int
    source: str
    dest: str
    reason: str

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Transfer source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Transfer dest cannot be empty")
        if not self.reason or not self.reason.strip():
            raise ValueError("Transfer reason cannot be empty")
        if not isinstance(self.amount, int) or isinstance(self.amount, bool):
            raise ValueError(f"Transfer amount must be int, got {type(self.amount)}")
        if self.amount <= 0:
            raise ValueError(f"Transfer amount must be positive, got {self.amount}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Transfer({self.amount}: {self.source}→{self.dest})"


@dataclass(frozen=True, slots=True)
class RecordChange:
    """
    Before/after snapshot of one record, for atomic apply and audit.

    old is None when the record did not exist before the change.

    Attributes:
        table: One of TABLES
        key: Record key within the table (product name, caller, id, counter name)
        old: Record value before the change
        new: Record value after the change
    """
    table: str
    key: Any
    old: Any
    new: Any

    def __post_init__(self):
        if self.table not in TABLES:
            raise ValueError(f"Unknown table: {self.table}")

    def changed_fields(self) -> Dict[str, Tuple[Any, Any]]:
        """
        Compute fields that differ between old and new.

        Records are compared field by field; scalar values are reported under
        the key "value".
        """
        def as_dict(value: Any) -> Dict[str, Any]:
            if value is None:
                return {}
            if hasattr(value, "__dataclass_fields__"):
                return {name: getattr(value, name) for name in value.__dataclass_fields__}
            return {"value": value}

        old = as_dict(self.old)
        new = as_dict(self.new)
        changes = {}
        for key in sorted(set(old) | set(new)):
            if old.get(key) != new.get(key):
                changes[key] = (old.get(key), new.get(key))
        return changes


# ============================================================================
# PENDING AND EXECUTED OPERATIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class PendingOperation:
    """
    An operation before execution - represents INTENT.

    Created by compute functions and submitted to the store for execution.
    Transfers are validated and applied before record changes; notifications
    are published only after everything is applied.

    Attributes:
        transfers: Value transfers between wallets
        changes: Record changes with old and new snapshots
        events: Notifications to publish on commit
        origin: Name of the operation ("purchase", "register", ...)
        caller: Identity that requested the operation
        timestamp: When this pending operation was created
    """
    transfers: Tuple[Transfer, ...]
    changes: Tuple[RecordChange, ...]
    events: Tuple[Notification, ...]
    origin: str
    caller: str
    timestamp: datetime

    def is_empty(self) -> bool:
        """Return True if this pending operation has no transfers, changes, or events."""
        return not self.transfers and not self.changes and not self.events

    def __repr__(self) -> str:
        return (f"PendingOperation({self.origin} by {self.caller}: "
                f"{len(self.transfers)} transfers, {len(self.changes)} changes, "
                f"{len(self.events)} events)")


def build_operation(
    view: StoreView,
    origin: str,
    caller: str,
    transfers: Optional[List[Transfer]] = None,
    changes: Optional[List[RecordChange]] = None,
    events: Optional[List[Notification]] = None,
) -> PendingOperation:
    """
    Build a PendingOperation from transfers, record changes, and events.

    This is the standard way to create operations.

    Args:
        view: Read-only store view (provides current_time)
        origin: Operation name for the audit log
        caller: Requesting identity
        transfers: Value transfers to include
        changes: Record changes to include
        events: Notifications to publish on commit

    Returns:
        A PendingOperation ready for execution

    Example:
        def compute_restock(view, caller, name):
            old = view.get_product_record(name)
            new = replace(old, stock=old.stock + 10)
            change = RecordChange(TABLE_PRODUCTS, name, old, new)
            return build_operation(view, "restock", caller, changes=[change])
    """
    return PendingOperation(
        transfers=tuple(transfers or ()),
        changes=tuple(changes or ()),
        events=tuple(events or ()),
        origin=origin,
        caller=caller,
        timestamp=view.current_time,
    )


@dataclass(frozen=True, slots=True)
class Operation:
    """
    An executed, immutable record of store state changes - represents FACT.

    Attributes:
        transfers: Value transfers applied
        changes: Record changes applied
        events: Notifications published
        origin: Operation name
        caller: Requesting identity
        timestamp: When the PendingOperation was created
        exec_id: Unique execution identifier (store + sequence)
        store_name: Name of the store that executed this
        sequence_number: Monotonic sequence within the store
        tables: Set of tables touched (auto-populated)
    """
    transfers: Tuple[Transfer, ...]
    changes: Tuple[RecordChange, ...]
    events: Tuple[Notification, ...]
    origin: str
    caller: str
    timestamp: datetime
    exec_id: str
    store_name: str
    sequence_number: int
    tables: FrozenSet[str] = None

    def __post_init__(self):
        if not self.transfers and not self.changes and not self.events:
            raise ValueError("Operation must have transfers, changes, or events")
        if self.tables is None:
            object.__setattr__(
                self, 'tables',
                frozenset(c.table for c in self.changes)
            )

    def __repr__(self) -> str:
        w = 80  # Inner content width
        bar = "─" * w

        def pad(text: str) -> str:
            """Pad or truncate text to exactly w characters."""
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            "",
            f"┌{bar}┐",
            f"│{pad(' Operation: ' + self.exec_id)}│",
            f"├{bar}┤",
            f"│{pad('   origin    : ' + self.origin)}│",
            f"│{pad('   caller    : ' + self.caller)}│",
            f"│{pad('   timestamp : ' + str(self.timestamp))}│",
            f"│{pad('   sequence  : ' + str(self.sequence_number))}│",
        ]
        if self.transfers:
            lines.append(f"├{bar}┤")
            lines.append(f"│{pad(' Transfers (' + str(len(self.transfers)) + '):')}│")
            for i, t in enumerate(self.transfers):
                lines.append(f"│{pad(f'   [{i}] {t.amount}: {t.source} → {t.dest}')}│")
        if self.changes:
            lines.append(f"├{bar}┤")
            lines.append(f"│{pad(' Changes (' + str(len(self.changes)) + '):')}│")
            for c in self.changes:
                lines.append(f"│{pad(f'   [{c.table}:{c.key}]')}│")
                for field_name, (old_val, new_val) in c.changed_fields().items():
                    lines.append(f"│{pad(f'      {field_name}: {old_val!r} → {new_val!r}')}│")
        if self.events:
            lines.append(f"├{bar}┤")
            for e in self.events:
                lines.append(f"│{pad('   ' + repr(e))}│")
        lines.append(f"└{bar}┘")
        return "\n".join(lines)
