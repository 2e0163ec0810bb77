# src/hookledger/runtime/apply/accounts.py
from __future__ import annotations

from typing import Any, Dict, Optional, Set

from hookledger.ledger import accounts
from hookledger.runtime.apply.common import payload, require, tx_type
from hookledger.runtime.tx import ApplyContext, TxEnvelope

Json = Dict[str, Any]

ACCOUNT_TX_TYPES: Set[str] = {"ACCOUNT_KEY_ADD", "ACCOUNT_KEY_REVOKE"}


def apply_accounts(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Optional[Json]:
    t = tx_type(env)
    if t not in ACCOUNT_TX_TYPES:
        return None

    p = payload(env)

    if t == "ACCOUNT_KEY_ADD":
        return accounts.add_key(state, env.signer, require(p, "pubkey"))
    if t == "ACCOUNT_KEY_REVOKE":
        return accounts.revoke_key(state, env.signer, require(p, "pubkey"))

    return None


__all__ = ["ACCOUNT_TX_TYPES", "apply_accounts"]
