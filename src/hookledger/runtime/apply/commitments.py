# src/hookledger/runtime/apply/commitments.py
from __future__ import annotations

from typing import Any, Dict, Optional, Set

from hookledger.ledger import commitments
from hookledger.runtime.apply.common import as_list, payload, pick, require, tx_type
from hookledger.runtime.tx import ApplyContext, TxEnvelope

Json = Dict[str, Any]

COMMITMENTS_TX_TYPES: Set[str] = {
    "COMMITMENT_CREATE",
    "COMMITMENT_TOP_UP",
    "COMMITMENT_RATE_UPDATE",
    "COMMITMENT_SETTLE_EPOCH",
}


def apply_commitments(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Optional[Json]:
    t = tx_type(env)
    if t not in COMMITMENTS_TX_TYPES:
        return None

    p = payload(env)

    if t == "COMMITMENT_CREATE":
        return commitments.create_commitment(
            state,
            env.signer,
            value=env.value,
            max_spend_per_epoch=pick(p, "max_spend_per_epoch") or 0,
            min_rate=pick(p, "min_rate") or 0,
            rush=pick(p, "rush") or 0,
            epoch=ctx.epoch,
        )
    if t == "COMMITMENT_TOP_UP":
        return commitments.top_up(state, env.signer, value=env.value)
    if t == "COMMITMENT_RATE_UPDATE":
        return commitments.update_rate(
            state,
            env.signer,
            new_rush=require(p, "rush", "new_rush"),
            effective_epoch=require(p, "effective_epoch"),
            epoch=ctx.epoch,
        )
    if t == "COMMITMENT_SETTLE_EPOCH":
        return commitments.settle_epoch(
            state,
            env.signer,
            require(p, "epoch"),
            as_list(p, "accounts"),
            as_list(p, "consumed", "consumed_amounts"),
        )

    return None


__all__ = ["COMMITMENTS_TX_TYPES", "apply_commitments"]
