# src/hookledger/runtime/dispatch.py
from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from hookledger.ledger.errors import LedgerError
from hookledger.runtime.apply.accounts import apply_accounts
from hookledger.runtime.apply.admin import apply_admin
from hookledger.runtime.apply.bonding import apply_bonding
from hookledger.runtime.apply.commitments import apply_commitments
from hookledger.runtime.apply.rebates import apply_rebates
from hookledger.runtime.apply.rewards import apply_rewards
from hookledger.runtime.tx import ApplyContext, TxEnvelope

Json = Dict[str, Any]
ApplyFn = Callable[[Json, TxEnvelope, ApplyContext], Optional[Json]]


_APPLIERS: tuple[ApplyFn, ...] = (
    apply_rewards,
    apply_bonding,
    apply_commitments,
    apply_rebates,
    apply_admin,
    apply_accounts,
)


def apply_tx(state: Json, env: Any, ctx: Optional[ApplyContext] = None) -> Json:
    """Dispatch an envelope to the first domain applier that claims it.

    Ledger errors propagate unchanged. Anything else escaping an applier is a
    bug and is wrapped as `domain_error` so callers still get one error type.
    """
    if not isinstance(state, dict):
        raise TypeError(f"state must be dict, got {type(state)}")

    env_norm = TxEnvelope.from_json(env)
    ctx = ctx or ApplyContext()

    t = str(env_norm.tx_type or "").strip().upper()
    if not t:
        raise LedgerError("precondition_violation", "missing_tx_type", {})

    for fn in _APPLIERS:
        try:
            out = fn(state, env_norm, ctx)
        except LedgerError:
            raise
        except Exception as e:
            raise LedgerError(
                "domain_error",
                type(e).__name__,
                {"tx_type": t, "domain": fn.__name__, "error": str(e)},
            ) from e

        if out is not None:
            return out

    raise LedgerError("precondition_violation", "tx_type_not_implemented", {"tx_type": t})


__all__ = ["apply_tx"]
