# src/hookledger/runtime/apply/rebates.py
from __future__ import annotations

from typing import Any, Dict, Optional, Set

from hookledger.ledger import rebates
from hookledger.runtime.apply.common import as_list, payload, require, tx_type
from hookledger.runtime.tx import ApplyContext, TxEnvelope

Json = Dict[str, Any]

REBATES_TX_TYPES: Set[str] = {"REBATE_PUSH", "REBATE_WITHDRAW"}


def apply_rebates(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Optional[Json]:
    t = tx_type(env)
    if t not in REBATES_TX_TYPES:
        return None

    p = payload(env)

    if t == "REBATE_PUSH":
        return rebates.push_credit(state, env.signer, require(p, "epoch"), as_list(p, "accounts"), as_list(p, "amounts"))
    if t == "REBATE_WITHDRAW":
        return rebates.withdraw(state, env.signer, receiver=ctx.receiver_for(env.signer))

    return None


__all__ = ["REBATES_TX_TYPES", "apply_rebates"]
