# src/hookledger/ledger/accounts.py
from __future__ import annotations

"""Account key registry and replay counters for signed submissions.

Layout:
  state["accounts"]["<account>"] = {
    "keys": [{"pubkey": "<hex|b64>", "active": bool}, ...],
    "nonce": int,   last accepted signed nonce
  }

Keys only matter for envelopes that arrive from outside the process; in-process
callers are trusted for their signer.
"""

from typing import Any, Dict, List

from hookledger.ledger.errors import StateConflict
from hookledger.ledger.state import (
    _as_dict,
    _as_int,
    _as_list,
    _as_str,
    ensure_child,
    ensure_root,
    require_account,
    transactional,
)

Json = Dict[str, Any]


def _account(state: Json, account: str) -> Json:
    acct = ensure_child(ensure_root(state, "accounts"), account)
    if not isinstance(acct.get("keys"), list):
        acct["keys"] = []
    acct.setdefault("nonce", 0)
    return acct


def _account_view(state: Json, account: str) -> Json:
    return _as_dict(_as_dict(state.get("accounts")).get(account))


def active_keys(state: Json, account: str) -> List[str]:
    out: List[str] = []
    for rec in _as_list(_account_view(state, account).get("keys")):
        if not isinstance(rec, dict) or rec.get("active", True) is False:
            continue
        pk = _as_str(rec.get("pubkey"))
        if pk and pk not in out:
            out.append(pk)
    return out


def nonce_of(state: Json, account: str) -> int:
    return _as_int(_account_view(state, account).get("nonce"), 0)


def account_of(state: Json, account: str) -> Json:
    return {"account": account, "keys": active_keys(state, account), "nonce": nonce_of(state, account)}


@transactional
def add_key(state: Json, caller: Any, pubkey: Any) -> Json:
    """Register `pubkey` for the caller's own account. Re-adding a revoked key reactivates it."""
    account = require_account(caller, field="caller")
    pk = require_account(pubkey, field="pubkey")
    keys = _account(state, account)["keys"]

    for rec in keys:
        if isinstance(rec, dict) and _as_str(rec.get("pubkey")) == pk:
            deduped = rec.get("active", True) is not False
            rec["active"] = True
            return {"applied": "ACCOUNT_KEY_ADD", "account": account, "pubkey": pk, "deduped": deduped}

    keys.append({"pubkey": pk, "active": True})
    return {"applied": "ACCOUNT_KEY_ADD", "account": account, "pubkey": pk, "deduped": False}


@transactional
def revoke_key(state: Json, caller: Any, pubkey: Any) -> Json:
    account = require_account(caller, field="caller")
    pk = require_account(pubkey, field="pubkey")
    if pk not in active_keys(state, account):
        raise StateConflict("unknown_key", {"account": account, "pubkey": pk})

    for rec in _account(state, account)["keys"]:
        if isinstance(rec, dict) and _as_str(rec.get("pubkey")) == pk:
            rec["active"] = False
    return {"applied": "ACCOUNT_KEY_REVOKE", "account": account, "pubkey": pk, "remaining": len(active_keys(state, account))}


def bump_nonce(state: Json, account: str) -> int:
    acct = _account(state, account)
    acct["nonce"] = _as_int(acct.get("nonce"), 0) + 1
    return int(acct["nonce"])


__all__ = [
    "account_of",
    "active_keys",
    "add_key",
    "bump_nonce",
    "nonce_of",
    "revoke_key",
]
