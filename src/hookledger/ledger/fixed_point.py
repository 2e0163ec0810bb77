# src/hookledger/ledger/fixed_point.py
from __future__ import annotations

"""Scaled fixed-point accumulator.

Rounding policy: every division truncates toward zero (floor, since all
operands are non-negative). The value lost on each absorb is returned as
`dust` in scaled units so callers can record it instead of losing it silently.
"""

from dataclasses import dataclass, replace
from typing import Tuple

from hookledger.ledger.constants import SCALE


@dataclass(frozen=True)
class ScaledAccumulator:
    value: int = 0
    scale: int = SCALE

    def absorb(self, amount: int, weight: int) -> Tuple["ScaledAccumulator", int, int]:
        """Spread `amount` over `weight` units.

        Returns (new accumulator, per-unit increment, dust in scaled units).
        """
        a = int(amount)
        w = int(weight)
        if a < 0:
            raise ValueError("amount must be >= 0")
        if w <= 0:
            raise ValueError("weight must be > 0")
        scaled = a * int(self.scale)
        inc = scaled // w
        dust = scaled - inc * w
        return replace(self, value=int(self.value) + inc), inc, dust

    def owed(self, weight: int, checkpoint: int) -> int:
        """Whole units owed to `weight` units since `checkpoint`."""
        delta = int(self.value) - int(checkpoint)
        if delta <= 0 or int(weight) <= 0:
            return 0
        return int(weight) * delta // int(self.scale)

    def whole(self, scaled: int) -> int:
        return int(scaled) // int(self.scale)


__all__ = ["ScaledAccumulator"]
