# src/hookledger/runtime/apply/bonding.py
from __future__ import annotations

from typing import Any, Dict, Optional, Set

from hookledger.ledger import bonding
from hookledger.runtime.apply.common import as_list, currency, payload, pick, require, require_value, tx_type
from hookledger.runtime.tx import ApplyContext, TxEnvelope

Json = Dict[str, Any]

BONDING_TX_TYPES: Set[str] = {
    "BOND_DEPOSIT",
    "BOND_FEE_RECORD",
    "BOND_CLAIM",
    "BOND_WITHDRAW",
}


def apply_bonding(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Optional[Json]:
    t = tx_type(env)
    if t not in BONDING_TX_TYPES:
        return None

    p = payload(env)

    if t == "BOND_DEPOSIT":
        amount = require_value(env, require(p, "amount"))
        account = pick(p, "account") or env.signer
        return bonding.deposit_principal(state, require(p, "target"), currency(p), amount, account)
    if t == "BOND_FEE_RECORD":
        amount = require_value(env, require(p, "amount"))
        return bonding.record_fee(state, env.signer, require(p, "target"), currency(p), amount)
    if t == "BOND_CLAIM":
        return bonding.claim_rewards(
            state,
            env.signer,
            as_list(p, "targets"),
            as_list(p, "currencies"),
            receiver=ctx.receiver_for(env.signer),
        )
    if t == "BOND_WITHDRAW":
        account = require(p, "account")
        to = pick(p, "to") or account
        return bonding.withdraw_principal(
            state,
            env.signer,
            require(p, "target"),
            account,
            currency(p),
            require(p, "amount"),
            to,
            receiver=ctx.receiver_for(str(to)),
        )

    return None


__all__ = ["BONDING_TX_TYPES", "apply_bonding"]
