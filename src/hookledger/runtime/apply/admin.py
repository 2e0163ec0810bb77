# src/hookledger/runtime/apply/admin.py
from __future__ import annotations

from typing import Any, Dict, Optional, Set

from hookledger.ledger import roles, transfers
from hookledger.runtime.apply.common import currency, payload, pick, require, require_value, tx_type
from hookledger.runtime.tx import ApplyContext, TxEnvelope

Json = Dict[str, Any]

ADMIN_TX_TYPES: Set[str] = {
    "OWNER_SET",
    "ROLE_GRANT",
    "ROLE_REVOKE",
    "CUSTODY_RECEIVE",
    "CUSTODY_TRANSFER",
}


def apply_admin(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Optional[Json]:
    t = tx_type(env)
    if t not in ADMIN_TX_TYPES:
        return None

    p = payload(env)

    if t == "OWNER_SET":
        return roles.set_owner(state, env.signer, require(p, "owner"))
    if t == "ROLE_GRANT":
        return roles.grant_role(state, env.signer, require(p, "role"), require(p, "account"))
    if t == "ROLE_REVOKE":
        return roles.revoke_role(state, env.signer, require(p, "role"), require(p, "account"))
    if t == "CUSTODY_RECEIVE":
        amount = pick(p, "amount")
        amt = require_value(env, amount) if amount is not None else int(env.value)
        return transfers.custody_receive(state, require(p, "ledger"), currency(p), amt)
    if t == "CUSTODY_TRANSFER":
        return transfers.custody_transfer(
            state,
            env.signer,
            require(p, "from_ledger", "from"),
            require(p, "to_ledger", "to"),
            currency(p),
            require(p, "amount"),
        )

    return None


__all__ = ["ADMIN_TX_TYPES", "apply_admin"]
