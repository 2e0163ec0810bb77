# tests/test_dispatch.py
from __future__ import annotations

import copy

import pytest

from hookledger.ledger import bonding, commitments, rewards
from hookledger.ledger.errors import LedgerError, PreconditionViolation
from hookledger.runtime import dispatch
from hookledger.runtime.dispatch import apply_tx
from hookledger.runtime.tx import ApplyContext, TxEnvelope


def _env(tx_type: str, payload: dict | None = None, signer: str = "owner", *, value: int = 0) -> TxEnvelope:
    return TxEnvelope(tx_type=tx_type, signer=signer, payload=payload or {}, value=value)


def _bootstrapped() -> dict:
    st: dict = {}
    apply_tx(st, _env("OWNER_SET", {"owner": "owner"}))
    return st


def test_reward_flow_through_envelopes() -> None:
    st = _bootstrapped()
    apply_tx(st, _env("POINTS_MINT", {"account": "A", "points": 10}))
    meta = apply_tx(st, _env("REWARD_DEPOSIT", {"amount": 50}, signer="hook", value=50))
    assert meta["applied"] == "REWARD_DEPOSIT"

    meta = apply_tx(st, _env("REWARD_WITHDRAW", signer="A"))
    assert meta["applied"] == "REWARD_WITHDRAW"
    assert meta["payout"] == 50
    assert rewards.points_of(st, "A") == 5


def test_attached_value_must_match_declared_amount() -> None:
    st = _bootstrapped()
    with pytest.raises(PreconditionViolation) as ei:
        apply_tx(st, _env("BOND_DEPOSIT", {"target": "p", "amount": 10}, signer="alice", value=9))
    assert ei.value.reason == "value_mismatch"

    meta = apply_tx(st, _env("BOND_DEPOSIT", {"target": "p", "amount": 10}, signer="alice", value=10))
    assert meta["account"] == "alice"
    assert bonding.principal_of(st, "p", "NATIVE", "alice") == 10


def test_commitment_create_uses_context_epoch() -> None:
    st = _bootstrapped()
    meta = apply_tx(
        st,
        _env("COMMITMENT_CREATE", {"max_spend_per_epoch": 10, "rush": 3}, signer="A", value=100),
        ApplyContext(epoch=42),
    )
    assert meta["commitment"]["created_epoch"] == 42

    apply_tx(st, _env("COMMITMENT_SETTLE_EPOCH", {"epoch": 42, "accounts": ["A"], "consumed": [10]}))
    assert commitments.commitment_of(st, "A")["balance"] == 90


def test_missing_and_unknown_tx_types() -> None:
    st: dict = {}
    with pytest.raises(LedgerError) as ei:
        apply_tx(st, _env(""))
    assert ei.value.reason == "missing_tx_type"

    with pytest.raises(LedgerError) as ei:
        apply_tx(st, _env("TREASURY_CREATE"))
    assert ei.value.reason == "tx_type_not_implemented"
    assert ei.value.code == "precondition_violation"


def test_payload_field_errors() -> None:
    st = _bootstrapped()
    with pytest.raises(PreconditionViolation) as ei:
        apply_tx(st, _env("POINTS_MINT", {"points": 1}))
    assert ei.value.reason == "missing_field"
    assert ei.value.details == {"field": "account"}

    with pytest.raises(PreconditionViolation) as ei:
        apply_tx(st, _env("POINTS_BATCH_MINT", {"accounts": "A", "points": [1]}))
    assert ei.value.reason == "invalid_field"


def test_failed_envelope_leaves_state_unchanged() -> None:
    st = _bootstrapped()
    apply_tx(st, _env("BOND_DEPOSIT", {"target": "p", "amount": 10}, signer="alice", value=10))
    before = copy.deepcopy(st)

    with pytest.raises(LedgerError):
        apply_tx(st, _env("BOND_CLAIM", {"targets": ["p"], "currencies": []}, signer="alice"))
    assert st == before


def test_unexpected_applier_errors_are_wrapped(monkeypatch: pytest.MonkeyPatch) -> None:
    def _boom(state, env, ctx):
        raise KeyError("nope")

    monkeypatch.setattr(dispatch, "_APPLIERS", (_boom,))
    with pytest.raises(LedgerError) as ei:
        apply_tx({}, _env("REWARD_WITHDRAW", signer="A"))
    assert ei.value.code == "domain_error"
    assert ei.value.reason == "KeyError"


def test_envelope_json_roundtrip_accepts_dicts() -> None:
    env = TxEnvelope.from_json({"tx_type": "REBATE_WITHDRAW", "signer": "a", "value": "0"})
    assert env.to_json() == {"tx_type": "REBATE_WITHDRAW", "signer": "a", "payload": {}, "value": 0, "nonce": 0, "sig": ""}
