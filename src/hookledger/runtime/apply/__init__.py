"""Domain-specific apply modules.

Each module claims a set of tx types and maps envelope payloads onto the
matching `hookledger.ledger` transition. Returning None means "not claimed".
"""

from __future__ import annotations

__all__ = [
    "admin",
    "bonding",
    "commitments",
    "rebates",
    "rewards",
]
