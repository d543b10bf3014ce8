"""
store.py - Stateful Retail Ledger

The Store class is the aggregate root of the retail ledger. It is the only
module that mutates state, ensuring controlled and auditable changes.

Key responsibilities:
    - Implements StoreView protocol for safe read-only access by pure functions
    - Serializes every operation behind a single re-entrant lock
    - Executes operations atomically (all transfers and changes, or none)
    - Gates queries (owner-only aggregates, customer-only balances)
    - Keeps the audit trail and the append-only notification log
"""

from __future__ import annotations
from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set, Tuple
import threading

from .access import is_owner, require_owner
from .catalog import compute_add_product, get_product, find_product, price_of
from .customers import compute_registration, get_customer, require_registered
from .lifecycle import compute_destroy_attempt
from .purchases import compute_purchase, compute_credit_purchase, compute_credit_payment
from .core import (
    # Types
    Product, Customer, Transfer, RecordChange, Notification,
    PendingOperation, Operation, ExecuteResult, CatalogWrite,
    # Constants
    SYSTEM_WALLET, STORE_WALLET, DEFAULT_UNIT_SCALE, DESTROY_THRESHOLD,
    TABLE_PRODUCTS, TABLE_CUSTOMERS, TABLE_REGISTERED_IDS,
    TABLE_TOTALS, TABLE_COUNTRY_TOTALS, TABLE_LIFECYCLE,
    TOTAL_PURCHASES, TOTAL_DEBTS, LIFECYCLE_ATTEMPTS, LIFECYCLE_DESTROYED,
    # Exceptions
    LedgerError, InsufficientFunds, StaleState, SystemDestroyed, SubscriberError,
    build_operation,
)


Subscriber = Callable[[Notification], None]


class Store:
    """
    Single-owner retail ledger with full validation and audit trail.

    Implements the StoreView protocol, allowing the store to be passed to
    pure compute functions that access only read-only methods.

    Design Principles:
        - Compute, then execute: every public operation builds a
          PendingOperation from a read-only view and submits it. Guards fail
          before anything is staged.
        - Always validates: transfers are checked against wallet balances and
          every change's old snapshot against current state.
        - Always logs: every applied operation is recorded in the audit trail.

    Thread Safety:
        All public operations and queries hold one re-entrant lock, so no
        operation observes another's partial effects. Subscribers run under
        the same lock and may query the store.

    Example:
        store = Store("corner_shop", owner="owner")
        store.add_product("owner", "Widget", "A widget", 10, 5)
        store.register("ana", 1, "Ana", "CO")
        store.fund("ana", 10)
        store.purchase("ana", "Widget", 10)
    """

    def __init__(
        self,
        name: str,
        owner: str,
        initial_time: Optional[datetime] = None,
        unit_scale: int = DEFAULT_UNIT_SCALE,
        destroy_threshold: int = DESTROY_THRESHOLD,
        verbose: bool = True,
    ):
        """
        Create a store.

        Args:
            name: Store identifier
            owner: Identity of the privileged principal, fixed for the store's lifetime
            initial_time: Starting logical time (default: 1970-01-01)
            unit_scale: Smallest tendered units per whole currency unit
            destroy_threshold: Owner destroy attempts before teardown
            verbose: Enable console output (default: True)

        Raises:
            ValueError: If owner is empty or reserved, or unit_scale/destroy_threshold
                        are not positive ints
        """
        if not owner or not owner.strip():
            raise ValueError("owner cannot be empty")
        if owner in (SYSTEM_WALLET, STORE_WALLET):
            raise ValueError(f"owner cannot be the reserved wallet {owner!r}")
        if not isinstance(unit_scale, int) or isinstance(unit_scale, bool) or unit_scale <= 0:
            raise ValueError(f"unit_scale must be a positive int, got {unit_scale!r}")
        if (not isinstance(destroy_threshold, int) or isinstance(destroy_threshold, bool)
                or destroy_threshold <= 0):
            raise ValueError(f"destroy_threshold must be a positive int, got {destroy_threshold!r}")

        self.name = name
        self._owner = owner
        self._unit_scale = unit_scale
        self._destroy_threshold = destroy_threshold
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)
        self.verbose = verbose

        self.products: Dict[str, Product] = {}
        self.customers: Dict[str, Customer] = {}
        self.registered_ids: Set[int] = set()
        self.totals: Dict[str, int] = {TOTAL_PURCHASES: 0, TOTAL_DEBTS: 0}
        self.country_totals: Dict[str, int] = {}
        self.lifecycle: Dict[str, Any] = {LIFECYCLE_ATTEMPTS: 0, LIFECYCLE_DESTROYED: False}
        self.balances: Dict[str, int] = defaultdict(int)

        self.transaction_log: List[Operation] = []
        self.notifications: List[Notification] = []
        self._subscribers: List[Subscriber] = []
        self._next_sequence: int = 0
        self._lock = threading.RLock()

    # ========================================================================
    # StoreView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def unit_scale(self) -> int:
        return self._unit_scale

    @property
    def destroy_threshold(self) -> int:
        return self._destroy_threshold

    @property
    def current_time(self) -> datetime:
        """Current logical time of the store."""
        return self._current_time

    def get_product_record(self, name: str) -> Optional[Product]:
        return self.products.get(name)

    def get_customer_record(self, caller: str) -> Optional[Customer]:
        return self.customers.get(caller)

    def is_id_registered(self, external_id: int) -> bool:
        return external_id in self.registered_ids

    def get_total(self, key: str) -> int:
        return self.totals[key]

    def get_country_total(self, country: str) -> int:
        return self.country_totals.get(country, 0)

    def get_lifecycle(self, key: str) -> Any:
        return self.lifecycle[key]

    def get_balance(self, wallet: str) -> int:
        """Balance of a wallet in smallest units (0 if the wallet was never used)."""
        return self.balances.get(wallet, 0)

    def has_customer(self, caller: str) -> bool:
        return caller in self.customers

    @property
    def destroy_attempts(self) -> int:
        return self.lifecycle[LIFECYCLE_ATTEMPTS]

    @property
    def is_destroyed(self) -> bool:
        return self.lifecycle[LIFECYCLE_DESTROYED]

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the store's logical clock. Time can only move forward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # OPERATIONS (Mutating)
    # ========================================================================

    def _ensure_live(self) -> None:
        if self.is_destroyed:
            raise SystemDestroyed(f"Store {self.name} has been destroyed")

    def add_product(
        self,
        caller: str,
        name: str,
        description: str,
        price: int,
        stock: int,
    ) -> CatalogWrite:
        """
        Insert or replace a product (owner only).

        Returns:
            CatalogWrite.CREATED for a new name, CatalogWrite.REPLACED when an
            existing product (and its stock) was overwritten.
        """
        with self._lock:
            self._ensure_live()
            pending = compute_add_product(self, caller, name, description, price, stock)
            self._submit(pending)
            if pending.changes[0].old is None:
                return CatalogWrite.CREATED
            return CatalogWrite.REPLACED

    def register(self, caller: str, external_id: int, name: str, country: str) -> Customer:
        """Register caller as a customer and return the new record."""
        with self._lock:
            self._ensure_live()
            self._submit(compute_registration(self, caller, external_id, name, country))
            if self.verbose:
                print(f"📝 Registered: {caller} (id={external_id}, {name}, {country})")
            return self.customers[caller]

    def purchase(self, caller: str, product: str, tendered: int) -> Operation:
        """Buy one unit of product for cash; tendered must equal price * unit_scale."""
        with self._lock:
            self._ensure_live()
            return self._submit(compute_purchase(self, caller, product, tendered))

    def credit_purchase(self, caller: str, product: str) -> Operation:
        """Buy one unit of product on credit."""
        with self._lock:
            self._ensure_live()
            return self._submit(compute_credit_purchase(self, caller, product))

    def pay_credit(self, caller: str, tendered: int) -> Operation:
        """Settle the caller's full debt; tendered must equal debt * unit_scale."""
        with self._lock:
            self._ensure_live()
            return self._submit(compute_credit_payment(self, caller, tendered))

    def attempt_destroy(self, caller: str) -> int:
        """
        Count an owner destroy attempt; the threshold-th attempt tears the store down.

        Returns:
            The attempt count after this call.
        """
        with self._lock:
            self._ensure_live()
            self._submit(compute_destroy_attempt(self, caller))
            return self.destroy_attempts

    def fund(self, wallet: str, amount: int) -> Operation:
        """
        Issue value into a wallet from SYSTEM_WALLET.

        This stands in for value arriving from the host environment; it is
        the only way value enters the store's wallets.

        Raises:
            ValueError: If wallet is SYSTEM_WALLET or amount is not positive
        """
        if wallet == SYSTEM_WALLET:
            raise ValueError("cannot fund the system wallet")
        with self._lock:
            self._ensure_live()
            pending = build_operation(
                self, "fund", SYSTEM_WALLET,
                transfers=[Transfer(amount, SYSTEM_WALLET, wallet, f"fund_{wallet}")],
            )
            return self._submit(pending)

    # ========================================================================
    # QUERIES
    # ========================================================================

    def _require_reader(self, caller: str) -> None:
        if not is_owner(self, caller):
            require_registered(self, caller)

    def get_product(self, caller: str, name: str) -> Product:
        """Product data (zero-valued for unknown names). Owner or registered customers."""
        with self._lock:
            self._ensure_live()
            self._require_reader(caller)
            return get_product(self, name)

    def find_product(self, caller: str, name: str) -> Product:
        """Strict product lookup raising NotFound. Owner or registered customers."""
        with self._lock:
            self._ensure_live()
            self._require_reader(caller)
            return find_product(self, name)

    def price_of(self, caller: str, name: str) -> int:
        """Effective price of a product for the caller. Owner or registered customers."""
        with self._lock:
            self._ensure_live()
            self._require_reader(caller)
            return price_of(self, name, get_customer(self, caller))

    def total_purchases(self, caller: str) -> int:
        with self._lock:
            self._ensure_live()
            require_owner(self, caller)
            return self.totals[TOTAL_PURCHASES]

    def purchases_by_country(self, caller: str, country: str) -> int:
        with self._lock:
            self._ensure_live()
            require_owner(self, caller)
            return self.get_country_total(country)

    def total_debts(self, caller: str) -> int:
        with self._lock:
            self._ensure_live()
            require_owner(self, caller)
            return self.totals[TOTAL_DEBTS]

    def my_debt(self, caller: str) -> int:
        with self._lock:
            self._ensure_live()
            return require_registered(self, caller).debt

    def my_total_spent(self, caller: str) -> int:
        with self._lock:
            self._ensure_live()
            return require_registered(self, caller).total_spent

    # ========================================================================
    # NOTIFICATIONS
    # ========================================================================

    def subscribe(self, callback: Subscriber) -> None:
        """
        Register an observer called with each notification after its
        operation commits. Every notification reaches every subscriber even
        if some of them raise; the failures are then reported together as
        SubscriberError. The operation itself stays committed.
        """
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.remove(callback)

    # ========================================================================
    # EXECUTION
    # ========================================================================

    def _generate_exec_id(self, sequence: int) -> str:
        """
        Generate a unique execution ID.

        Format: exec:{store_name}:{sequence:012d}
        """
        return f"exec:{self.name}:{sequence:012d}"

    def execute(self, pending: PendingOperation) -> ExecuteResult:
        """
        Execute a PendingOperation atomically.

        All transfers and record changes are applied together or not at all.

        Returns:
            ExecuteResult.APPLIED if successful
            ExecuteResult.REJECTED if validation failed (nothing was applied)
        """
        with self._lock:
            if pending.is_empty():
                return ExecuteResult.APPLIED
            try:
                self._validate_pending(pending)
            except LedgerError as e:
                if self.verbose:
                    print(f"✗ REJECTED: {pending.origin}: {e}")
                return ExecuteResult.REJECTED
            self._apply(pending)
            return ExecuteResult.APPLIED

    def _submit(self, pending: PendingOperation) -> Optional[Operation]:
        """Validate (raising on failure) and apply. Used by the public operations."""
        if pending.is_empty():
            return None
        try:
            self._validate_pending(pending)
        except LedgerError as e:
            if self.verbose:
                print(f"✗ REJECTED: {pending.origin}: {e}")
            raise
        return self._apply(pending)

    def _validate_pending(self, pending: PendingOperation) -> None:
        """
        Validate a pending operation against all constraints.

        Checks performed:
        1. Store is not destroyed
        2. Timestamp is not in the future
        3. Wallet balances stay non-negative (SYSTEM_WALLET exempt)
        4. Every change's old snapshot matches the state it will replace

        Raises:
            SystemDestroyed, LedgerError, InsufficientFunds, StaleState
        """
        if self.is_destroyed:
            raise SystemDestroyed(f"Store {self.name} has been destroyed")

        if pending.timestamp > self._current_time:
            raise LedgerError("future timestamp")

        net: Dict[str, int] = defaultdict(int)
        for t in pending.transfers:
            net[t.source] -= t.amount
            net[t.dest] += t.amount
        for wallet, delta in net.items():
            if wallet == SYSTEM_WALLET:
                continue
            proposed = self.get_balance(wallet) + delta
            if proposed < 0:
                raise InsufficientFunds(
                    f"{wallet}: balance {self.get_balance(wallet)} cannot cover {-delta}"
                )

        # Changes are checked in order so that a later change on the same
        # record is compared with the earlier change's result.
        staged: Dict[Tuple[str, Any], Any] = {}
        for c in pending.changes:
            slot = (c.table, c.key)
            current = staged[slot] if slot in staged else self._read(c.table, c.key)
            if current != c.old:
                raise StaleState(
                    f"{c.table}[{c.key!r}]: expected {c.old!r}, found {current!r}"
                )
            staged[slot] = c.new

    def _read(self, table: str, key: Any) -> Any:
        if table == TABLE_PRODUCTS:
            return self.products.get(key)
        if table == TABLE_CUSTOMERS:
            return self.customers.get(key)
        if table == TABLE_REGISTERED_IDS:
            return key in self.registered_ids
        if table == TABLE_TOTALS:
            return self.totals[key]
        if table == TABLE_COUNTRY_TOTALS:
            return self.country_totals.get(key, 0)
        return self.lifecycle[key]

    def _write(self, table: str, key: Any, value: Any) -> None:
        if table == TABLE_PRODUCTS:
            self.products[key] = value
        elif table == TABLE_CUSTOMERS:
            self.customers[key] = value
        elif table == TABLE_REGISTERED_IDS:
            if value:
                self.registered_ids.add(key)
            else:
                self.registered_ids.discard(key)
        elif table == TABLE_TOTALS:
            self.totals[key] = value
        elif table == TABLE_COUNTRY_TOTALS:
            self.country_totals[key] = value
        else:
            self.lifecycle[key] = value

    def _apply(self, pending: PendingOperation) -> Operation:
        """Apply a validated operation. Cannot fail part way."""
        sequence = self._next_sequence
        self._next_sequence += 1

        op = Operation(
            transfers=pending.transfers,
            changes=pending.changes,
            events=pending.events,
            origin=pending.origin,
            caller=pending.caller,
            timestamp=pending.timestamp,
            exec_id=self._generate_exec_id(sequence),
            store_name=self.name,
            sequence_number=sequence,
        )

        # Value moves before any record is touched.
        for t in op.transfers:
            self.balances[t.source] -= t.amount
            self.balances[t.dest] += t.amount
        for c in op.changes:
            self._write(c.table, c.key, c.new)

        self.transaction_log.append(op)
        self.notifications.extend(op.events)

        if self.verbose:
            self._print_op_result(op, "APPLIED", "✓")
        self._notify(op)
        return op

    def _notify(self, op: Operation) -> None:
        """Deliver every event to every subscriber, then report failures."""
        errors = []
        for event in op.events:
            for callback in list(self._subscribers):
                try:
                    callback(event)
                except Exception as e:
                    errors.append((event, e))
                    if self.verbose:
                        print(f"✗ SUBSCRIBER FAILED: {op.exec_id}: {type(e).__name__}: {e}")
        if errors:
            raise SubscriberError(op, errors)

    def _print_op_result(self, op: Operation, result: str, icon: str) -> None:
        """Print operation details with a result line replacing the closing bar."""
        lines = repr(op).split('\n')
        w = 80
        bar = "─" * w
        text = ' ' + icon + ' ' + result
        lines[-1] = f"├{bar}┤"
        lines.append(f"│{text + ' ' * (w - len(text))}│")
        lines.append(f"└{bar}┘")
        print("\n".join(lines))

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def verify_conservation(self) -> Dict[str, Any]:
        """
        Verify that value is conserved across wallets.

        Every transfer debits one wallet and credits another, so balances
        across all wallets (SYSTEM_WALLET included, which goes negative by
        the amount issued) always sum to zero.

        Returns:
            Dict with keys:
            - 'valid': bool
            - 'supply': int - sum of all balances
            - 'issued': int - value issued from SYSTEM_WALLET
        """
        supply = sum(self.balances[w] for w in sorted(self.balances))
        return {
            'valid': supply == 0,
            'supply': supply,
            'issued': -self.balances.get(SYSTEM_WALLET, 0),
        }

    def verify_aggregates(self) -> Dict[str, Any]:
        """
        Verify that aggregate counters agree with per-customer records.

        Invariants:
            total_purchases + total_debts == Σ (total_spent + debt) over customers
            total_debts == Σ debt over customers
            Σ purchases_by_country == total_purchases

        Returns:
            Dict with keys:
            - 'valid': bool - True if all invariants hold
            - 'discrepancies': List[Dict] - name, expected, actual for each violation
        """
        spent = sum(c.total_spent for c in self.customers.values())
        debt = sum(c.debt for c in self.customers.values())
        by_country = sum(self.country_totals.values())
        purchases = self.totals[TOTAL_PURCHASES]
        debts = self.totals[TOTAL_DEBTS]

        checks = [
            ('purchases_plus_debts', spent + debt, purchases + debts),
            ('total_debts', debt, debts),
            ('purchases_by_country', purchases, by_country),
        ]
        discrepancies = [
            {'name': name, 'expected': expected, 'actual': actual}
            for name, expected, actual in checks
            if expected != actual
        ]
        return {
            'valid': len(discrepancies) == 0,
            'discrepancies': discrepancies,
        }

    def clone(self) -> Store:
        """
        Create an independent copy of this store.

        Records are frozen, so copying the containers is enough. The clone
        has its own lock and no subscribers.
        """
        cloned = Store.__new__(Store)
        cloned.name = self.name
        cloned._owner = self._owner
        cloned._unit_scale = self._unit_scale
        cloned._destroy_threshold = self._destroy_threshold
        cloned._current_time = self._current_time
        cloned.verbose = self.verbose

        with self._lock:
            cloned.products = dict(self.products)
            cloned.customers = dict(self.customers)
            cloned.registered_ids = set(self.registered_ids)
            cloned.totals = dict(self.totals)
            cloned.country_totals = dict(self.country_totals)
            cloned.lifecycle = dict(self.lifecycle)
            cloned.balances = defaultdict(int, self.balances)
            cloned.transaction_log = list(self.transaction_log)
            cloned.notifications = list(self.notifications)
            cloned._next_sequence = self._next_sequence

        cloned._subscribers = []
        cloned._lock = threading.RLock()
        return cloned

    def replay(self) -> Store:
        """
        Create a new store by re-executing the transaction log.

        Every logged operation is re-validated, so a log whose snapshots do
        not chain (a tampered or reordered log) fails to replay.

        Raises:
            LedgerError: If any operation is rejected during replay
        """
        new_store = Store(
            name=f"{self.name}_replayed",
            owner=self._owner,
            unit_scale=self._unit_scale,
            destroy_threshold=self._destroy_threshold,
            verbose=self.verbose,
        )
        for op in self.transaction_log:
            if op.timestamp > new_store.current_time:
                new_store.advance_time(op.timestamp)
            pending = PendingOperation(
                transfers=op.transfers,
                changes=op.changes,
                events=op.events,
                origin=op.origin,
                caller=op.caller,
                timestamp=op.timestamp,
            )
            if new_store.execute(pending) == ExecuteResult.REJECTED:
                raise LedgerError(f"Replay failed at {op.exec_id}")
        return new_store
