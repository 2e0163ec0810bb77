# src/hookledger/ledger/constants.py
from __future__ import annotations

"""Ledger constants.

Fixed-point:
- Reward accumulator scale: 1e18
- Bonding rewards-per-share precision: 1e18
"""

# Accumulator scale for the points-weighted reward ledger
SCALE: int = 10**18

# Rewards-per-share precision for the bonding ledger
PRECISION: int = 10**18

# Currency id used when a call does not name one
NATIVE_CURRENCY: str = "NATIVE"

# Ledger ids (custody, guards and epoch flags are keyed by these)
REWARDS: str = "rewards"
BONDING: str = "bonding"
COMMITMENTS: str = "commitments"
REBATES: str = "rebates"

LEDGERS = (REWARDS, BONDING, COMMITMENTS, REBATES)

# Roles resolved through the central registry (owner fallback when unset)
ROLE_ADMIN: str = "admin"
ROLE_SETTLEMENT: str = "settlement"
ROLE_FEE_PUBLISHER: str = "fee_publisher"
ROLE_WITHDRAWER: str = "withdrawer"
ROLE_REBATE_OPERATOR: str = "rebate_operator"

ROLES = (ROLE_ADMIN, ROLE_SETTLEMENT, ROLE_FEE_PUBLISHER, ROLE_WITHDRAWER, ROLE_REBATE_OPERATOR)

# Commitment defaults (overridable via state["params"])
DEFAULT_MIN_COMMITMENT: int = 1
DEFAULT_MAX_RUSH: int = 100
