# src/hookledger/runtime/apply/rewards.py
from __future__ import annotations

from typing import Any, Dict, Optional, Set

from hookledger.ledger import rewards
from hookledger.runtime.apply.common import as_list, currency, payload, pick, require, require_value, tx_type
from hookledger.runtime.tx import ApplyContext, TxEnvelope

Json = Dict[str, Any]

REWARDS_TX_TYPES: Set[str] = {
    "REWARD_DEPOSIT",
    "POINTS_MINT",
    "POINTS_BATCH_MINT",
    "REWARD_WITHDRAW",
}


def apply_rewards(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Optional[Json]:
    t = tx_type(env)
    if t not in REWARDS_TX_TYPES:
        return None

    p = payload(env)

    if t == "REWARD_DEPOSIT":
        amount = pick(p, "amount")
        amt = require_value(env, amount) if amount is not None else int(env.value)
        return rewards.receive_deposit(state, amt, currency(p))
    if t == "POINTS_MINT":
        return rewards.mint(state, env.signer, require(p, "account"), require(p, "points", "amount"))
    if t == "POINTS_BATCH_MINT":
        return rewards.batch_mint(state, env.signer, as_list(p, "accounts"), as_list(p, "points", "amounts"))
    if t == "REWARD_WITHDRAW":
        return rewards.withdraw(state, env.signer, currency(p), receiver=ctx.receiver_for(env.signer))

    return None


__all__ = ["REWARDS_TX_TYPES", "apply_rewards"]
