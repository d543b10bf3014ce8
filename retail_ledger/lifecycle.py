"""
lifecycle.py - Destroy-After-Threshold Teardown

The owner tears the store down by calling attempt_destroy repeatedly. The
first attempts only count; the attempt that reaches the threshold (3 by
default) publishes DestroyedEvent, sweeps any value held by the store
wallet to the owner and moves the store into its terminal state. There is
no way back out of that state.
"""

from __future__ import annotations

from .access import require_owner
from .core import (
    StoreView, Transfer, RecordChange, PendingOperation, DestroyedEvent,
    STORE_WALLET, TABLE_LIFECYCLE, LIFECYCLE_ATTEMPTS, LIFECYCLE_DESTROYED,
    build_operation,
)


def compute_destroy_attempt(view: StoreView, caller: str) -> PendingOperation:
    """
    Count one destroy attempt, tearing the store down at the threshold.

    Returns:
        PendingOperation that increments the attempt counter. At the
        threshold it additionally contains:
        - Transfer of the store wallet's balance to the owner (if any)
        - The lifecycle change marking the store destroyed
        - DestroyedEvent(owner, attempts)

    Raises:
        Unauthorized: If caller is not the owner.
    """
    require_owner(view, caller)

    old_attempts = view.get_lifecycle(LIFECYCLE_ATTEMPTS)
    attempts = old_attempts + 1
    changes = [RecordChange(TABLE_LIFECYCLE, LIFECYCLE_ATTEMPTS, old_attempts, attempts)]
    if attempts < view.destroy_threshold:
        return build_operation(view, "destroy_attempt", caller, changes=changes)

    transfers = []
    residual = view.get_balance(STORE_WALLET)
    if residual > 0:
        transfers.append(Transfer(residual, STORE_WALLET, view.owner, "teardown_sweep"))
    changes.append(RecordChange(TABLE_LIFECYCLE, LIFECYCLE_DESTROYED, False, True))
    events = [DestroyedEvent(view.owner, attempts)]
    return build_operation(view, "destroy", caller, transfers, changes, events)
