# src/hookledger/ledger/errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

Json = Dict[str, Any]

PRECONDITION_VIOLATION = "precondition_violation"
STATE_CONFLICT = "state_conflict"
CUSTODY_SHORTFALL = "custody_shortfall"
FORBIDDEN = "forbidden"


@dataclass(eq=False)
class LedgerError(RuntimeError):
    """Canonical error for ledger state transitions.

    `code` is the failure class callers branch on, `reason` the specific rule
    that was violated.
    """

    code: str
    reason: str
    details: Json = field(default_factory=dict)

    def __str__(self) -> str:
        if not self.details:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"

    def to_json(self) -> Json:
        return {"code": self.code, "reason": self.reason, "details": dict(self.details)}


class PreconditionViolation(LedgerError):
    """Malformed call shape. Never worth retrying unchanged."""

    def __init__(self, reason: str, details: Optional[Json] = None) -> None:
        super().__init__(PRECONDITION_VIOLATION, reason, details or {})


class StateConflict(LedgerError):
    """Call conflicts with recorded state (duplicate, missing, insufficient)."""

    def __init__(self, reason: str, details: Optional[Json] = None) -> None:
        super().__init__(STATE_CONFLICT, reason, details or {})


class CustodyShortfall(LedgerError):
    """Accounting promises more than the ledger actually holds."""

    def __init__(self, reason: str, details: Optional[Json] = None) -> None:
        super().__init__(CUSTODY_SHORTFALL, reason, details or {})


class Forbidden(LedgerError):
    def __init__(self, reason: str, details: Optional[Json] = None) -> None:
        super().__init__(FORBIDDEN, reason, details or {})


__all__ = [
    "CUSTODY_SHORTFALL",
    "FORBIDDEN",
    "PRECONDITION_VIOLATION",
    "STATE_CONFLICT",
    "CustodyShortfall",
    "Forbidden",
    "LedgerError",
    "PreconditionViolation",
    "StateConflict",
]
