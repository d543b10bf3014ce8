"""
access.py - Owner Gate

The store has exactly one privileged identity, fixed when the Store is
created. Guards here are plain functions over a StoreView, called at the
top of every owner-only compute function.
"""

from __future__ import annotations

from .core import StoreView, Unauthorized


def is_owner(view: StoreView, caller: str) -> bool:
    """Return True if caller is the store owner."""
    return caller == view.owner


def require_owner(view: StoreView, caller: str) -> None:
    """
    Enforce that only the owner may proceed.

    Raises:
        Unauthorized: If caller is not the owner.
    """
    if not is_owner(view, caller):
        raise Unauthorized(f"{caller} is not the owner")
