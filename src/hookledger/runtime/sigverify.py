# src/hookledger/runtime/sigverify.py
from __future__ import annotations

"""Admission for envelopes that arrive from outside the process.

In-process callers (the settlement authority, fee routers) call
`LedgerExecutor.apply` directly and are trusted for `signer` and `value`.
Envelopes submitted over HTTP carry neither guarantee, so before they reach a
ledger they must:

  - attach no value (nothing outside the process can prove a transfer),
  - carry an Ed25519 signature from one of the signer's active keys,
  - use the next nonce for the signer.

An account with no keys can only submit ACCOUNT_KEY_ADD, signed by the key it
registers. Owners and role holders cannot key themselves this way; their first
key comes from config or an in-process call.
"""

from typing import Any, Dict, List

from hookledger.crypto.sig import canonical_tx_message, verify_ed25519_signature
from hookledger.ledger import accounts, roles
from hookledger.ledger.errors import Forbidden, StateConflict
from hookledger.ledger.state import _as_str
from hookledger.runtime.tx import TxEnvelope

Json = Dict[str, Any]

FIRST_KEY_TX_TYPE = "ACCOUNT_KEY_ADD"


def envelope_message(env: TxEnvelope) -> bytes:
    return canonical_tx_message(
        tx_type=env.tx_type,
        signer=env.signer,
        nonce=env.nonce,
        payload=env.payload,
        value=env.value,
    )


def _candidate_keys(state: Json, env: TxEnvelope) -> List[str]:
    keys = accounts.active_keys(state, env.signer)
    if keys:
        return keys
    if str(env.tx_type or "").strip().upper() != FIRST_KEY_TX_TYPE:
        return []
    pk = _as_str((env.payload or {}).get("pubkey"))
    return [pk] if pk else []


def verify_tx_signature(state: Json, env: Any) -> bool:
    """True when `env.sig` verifies against a key the signer may use. Pure."""
    tx = TxEnvelope.from_json(env)
    sig = str(tx.sig or "").strip()
    if not sig or not _as_str(tx.signer):
        return False

    msg = envelope_message(tx)
    for pk in _candidate_keys(state, tx):
        if verify_ed25519_signature(message=msg, sig=sig, pubkey=pk):
            return True
    return False


def admit_signed_tx(state: Json, env: Any) -> None:
    """Raise Forbidden/StateConflict unless `env` may be applied as an outside submission."""
    tx = TxEnvelope.from_json(env)
    signer = _as_str(tx.signer)
    t = str(tx.tx_type or "").strip().upper()

    if int(tx.value) != 0:
        raise Forbidden("value_requires_trusted_caller", {"signer": signer, "tx_type": t, "value": int(tx.value)})

    if t == "OWNER_SET" and not roles.owner_of(state):
        raise Forbidden("owner_bootstrap_reserved", {"signer": signer})

    if not str(tx.sig or "").strip():
        raise Forbidden("missing_signature", {"signer": signer, "tx_type": t})

    if not accounts.active_keys(state, signer):
        if t != FIRST_KEY_TX_TYPE:
            raise Forbidden("no_active_keys", {"signer": signer, "tx_type": t})
        if signer == roles.owner_of(state) or roles.roles_of(state, signer):
            raise Forbidden("privileged_account_unkeyed", {"signer": signer})

    if not verify_tx_signature(state, tx):
        raise Forbidden("bad_signature", {"signer": signer, "tx_type": t})

    expected = accounts.nonce_of(state, signer) + 1
    if int(tx.nonce) != expected:
        raise StateConflict("bad_nonce", {"signer": signer, "expected": expected, "got": int(tx.nonce)})


__all__ = ["admit_signed_tx", "envelope_message", "verify_tx_signature"]
