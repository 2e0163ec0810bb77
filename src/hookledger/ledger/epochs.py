# src/hookledger/ledger/epochs.py
from __future__ import annotations

from typing import Any, Dict, List

from hookledger.ledger.errors import PreconditionViolation, StateConflict
from hookledger.ledger.state import ensure_child, ensure_root

Json = Dict[str, Any]


def require_epoch(epoch: Any) -> int:
    if isinstance(epoch, bool):
        raise PreconditionViolation("invalid_epoch", {"epoch": epoch})
    try:
        e = int(epoch)
    except Exception:
        raise PreconditionViolation("invalid_epoch", {"epoch": repr(epoch)}) from None
    if e < 0:
        raise PreconditionViolation("invalid_epoch", {"epoch": e})
    return e


def _flags(state: Json, ledger: str) -> Json:
    return ensure_child(ensure_root(state, "epochs"), ledger)


def is_epoch_processed(state: Json, ledger: str, epoch: int) -> bool:
    return bool(_flags(state, ledger).get(str(int(epoch)), False))


def processed_epochs(state: Json, ledger: str) -> List[int]:
    return sorted(int(k) for k, v in _flags(state, ledger).items() if v)


def claim_epoch(state: Json, ledger: str, epoch: Any) -> int:
    """Check-and-set the epoch flag. Caller must run inside `atomic` so the flag
    is rolled back together with the epoch's other effects."""
    e = require_epoch(epoch)
    flags = _flags(state, ledger)
    if flags.get(str(e)):
        raise StateConflict("epoch_already_processed", {"ledger": ledger, "epoch": e})
    flags[str(e)] = True
    return e


__all__ = ["claim_epoch", "is_epoch_processed", "processed_epochs", "require_epoch"]
