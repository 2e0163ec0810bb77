"""hookledger: incentive ledgers for a hook marketplace.

Reward accumulation, multi-target bonding, funding commitments and rebate
credits, each held in its own custody and settled at most once per epoch.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
