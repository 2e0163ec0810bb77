"""Ledger state transitions.

Every public mutating function here takes the JSON-like state dict as its first
argument and either fully applies or leaves the state exactly as it found it.
"""

from __future__ import annotations

__all__ = [
    "accounts",
    "bonding",
    "commitments",
    "custody",
    "epochs",
    "rebates",
    "rewards",
    "roles",
    "transfers",
]
