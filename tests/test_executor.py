# tests/test_executor.py
from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import replace
from pathlib import Path

import pytest

from hookledger import metrics
from hookledger.config import default_ledger_config
from hookledger.crypto.sig import generate_keypair, sign_tx_envelope_dict
from hookledger.ledger import accounts, commitments, rebates, rewards, roles
from hookledger.ledger.constants import REWARDS
from hookledger.ledger.errors import LedgerError
from hookledger.runtime.executor import ExecutorError, LedgerExecutor
from hookledger.runtime.sqlite_store import SqliteLedgerStore


def _executor(db_path: str = "", *, now: float = 35.0, **overrides) -> LedgerExecutor:
    cfg = replace(default_ledger_config(), owner="owner", db_path=db_path, epoch_seconds=10, **overrides)
    return LedgerExecutor(config=cfg, clock=lambda: now)


def _tx(tx_type: str, payload: dict | None = None, signer: str = "owner", value: int = 0) -> dict:
    return {"tx_type": tx_type, "signer": signer, "payload": payload or {}, "value": value}


def test_boot_seeds_owner_and_params() -> None:
    ex = _executor(min_commitment=5, max_rush=9)
    st = ex.read_state()
    assert roles.owner_of(st) == "owner"
    assert st["params"]["min_commitment"] == 5
    assert st["params"]["max_rush"] == 9
    assert ex.current_epoch() == 3


def test_submit_reports_receipts_and_rejections() -> None:
    ex = _executor()
    out = ex.submit(_tx("POINTS_MINT", {"account": "A", "points": 10}))
    assert out["ok"] is True
    assert out["receipt"]["applied"] == "POINTS_MINT"

    before = ex.read_state()
    out = ex.submit(_tx("POINTS_MINT", {"account": "A", "points": 10}, signer="mallory"))
    assert out == {
        "ok": False,
        "error": {"code": "forbidden", "reason": "role_required", "details": {"role": "settlement", "caller": "mallory", "role_unset": True}},
    }
    assert ex.read_state() == before

    with pytest.raises(LedgerError):
        ex.apply(_tx("POINTS_MINT", {"account": "A", "points": 10}, signer="mallory"))


def test_commitment_epoch_comes_from_clock() -> None:
    ex = _executor(now=125.0)
    ex.apply(_tx("COMMITMENT_CREATE", {"rush": 1}, signer="A", value=10))
    rec = commitments.commitment_of(ex.read_state(), "A")
    assert rec["created_epoch"] == 12


def test_read_state_is_a_copy() -> None:
    ex = _executor()
    st = ex.read_state()
    st["roles"]["owner"] = "mallory"
    assert roles.owner_of(ex.read_state()) == "owner"


def test_state_survives_restart(tmp_path: Path) -> None:
    db = str(tmp_path / "ledger.db")
    ex = _executor(db)
    ex.apply(_tx("POINTS_MINT", {"account": "A", "points": 10}))
    ex.apply(_tx("REWARD_DEPOSIT", {"amount": 30}, signer="hook", value=30))

    ex2 = _executor(db)
    st = ex2.read_state()
    assert rewards.points_of(st, "A") == 10
    assert rewards.claimable_of(st, "A") == 30


def test_ledger_id_mismatch_refuses_to_start(tmp_path: Path) -> None:
    db = str(tmp_path / "ledger.db")
    _executor(db, ledger_id="ledger-a")
    with pytest.raises(ExecutorError):
        _executor(db, ledger_id="ledger-b")


def test_metrics_and_logs(caplog: pytest.LogCaptureFixture) -> None:
    metrics.reset()
    ex = _executor()
    caplog.set_level(logging.INFO, logger="hookledger.executor")

    ex.submit(_tx("POINTS_MINT", {"account": "A", "points": 1}))
    ex.submit(_tx("POINTS_MINT", {"account": "A", "points": 1}, signer="mallory"))

    counters = metrics.snapshot()["counters"]
    assert counters["tx_applied_total"] == 1
    assert counters["tx_rejected_total"] == 1
    assert counters["tx_rejected_forbidden_total"] == 1

    events = [json.loads(r.getMessage()) for r in caplog.records if r.name == "hookledger.executor"]
    kinds = [e["event"] for e in events]
    assert "tx_applied" in kinds
    rejected = [e for e in events if e["event"] == "tx_rejected"]
    assert rejected and rejected[0]["reason"] == "role_required"


def test_receiver_reentry_through_executor_is_rejected() -> None:
    ex = _executor()
    ex.apply(_tx("POINTS_MINT", {"account": "A", "points": 10}))
    ex.apply(_tx("REWARD_DEPOSIT", {"amount": 40}, signer="hook", value=40))

    nested: list[dict] = []

    def _hook(state, ledger, to, currency, amount) -> None:
        nested.append(ex.submit(_tx("REWARD_WITHDRAW", signer=to)))

    ex.register_receiver("A", _hook)
    out = ex.apply(_tx("REWARD_WITHDRAW", signer="A"))

    assert out["payout"] == 40
    assert nested[0]["ok"] is False
    assert nested[0]["error"]["reason"] == "reentrant_call"
    assert ex.read_state()["wallets"]["A"]["NATIVE"] == 40

    ex.unregister_receiver("A")


def test_nested_call_is_persisted_only_with_its_outer_call(tmp_path: Path) -> None:
    db = str(tmp_path / "ledger.db")
    ex = _executor(db)
    ex.apply(_tx("POINTS_MINT", {"account": "A", "points": 10}))
    ex.apply(_tx("REWARD_DEPOSIT", {"amount": 40}, signer="hook", value=40))
    ex.apply(_tx("CUSTODY_RECEIVE", {"ledger": "rebates", "amount": 5}, signer="hook", value=5))
    ex.apply(_tx("REBATE_PUSH", {"epoch": 1, "accounts": ["A"], "amounts": [5]}))

    def _hook(state, ledger, to, currency, amount) -> None:
        if ledger != REWARDS:
            return
        ex.apply(_tx("REBATE_WITHDRAW", signer=to))
        raise RuntimeError("receiver failed")

    ex.register_receiver("A", _hook)
    with pytest.raises(LedgerError) as ei:
        ex.apply(_tx("REWARD_WITHDRAW", signer="A"))
    assert ei.value.code == "domain_error"
    ex.unregister_receiver("A")

    assert rebates.credit_of(ex.read_state(), "A") == 5
    on_disk = SqliteLedgerStore(path=db).read()
    assert "guards" not in on_disk
    assert rebates.credit_of(on_disk, "A") == 5
    assert rewards.points_of(on_disk, "A") == 10

    restarted = _executor(db)
    out = restarted.apply(_tx("REWARD_WITHDRAW", signer="A"))
    assert out["payout"] == 40
    assert restarted.apply(_tx("REBATE_WITHDRAW", signer="A"))["payout"] == 5


def test_persist_failure_rolls_back_memory(tmp_path: Path) -> None:
    class _FlakyStore(SqliteLedgerStore):
        fail = False

        def write(self, state: dict) -> None:
            if self.fail:
                raise sqlite3.OperationalError("disk I/O error")
            super().write(state)

    store = _FlakyStore(path=str(tmp_path / "ledger.db"))
    cfg = replace(default_ledger_config(), owner="owner", db_path="", epoch_seconds=10)
    ex = LedgerExecutor(config=cfg, clock=lambda: 35.0, store=store)

    store.fail = True
    with pytest.raises(sqlite3.OperationalError):
        ex.apply(_tx("POINTS_MINT", {"account": "A", "points": 10}))
    assert rewards.points_of(ex.read_state(), "A") == 0
    assert rewards.points_of(store.read(), "A") == 0

    store.fail = False
    ex.apply(_tx("POINTS_MINT", {"account": "A", "points": 10}))
    assert rewards.points_of(store.read(), "A") == 10


def test_signed_apply_consumes_the_nonce() -> None:
    priv, pub = generate_keypair()
    ex = _executor(owner_pubkey=pub)
    tx = sign_tx_envelope_dict(tx={**_tx("POINTS_MINT", {"account": "A", "points": 1}), "nonce": 1}, privkey=priv)

    assert ex.submit(tx, signed=True)["ok"] is True
    assert accounts.nonce_of(ex.read_state(), "owner") == 1
    replay = ex.submit(tx, signed=True)
    assert replay["error"]["reason"] == "bad_nonce"

    # in-process calls stay unsigned and leave the nonce alone
    ex.apply(_tx("POINTS_MINT", {"account": "A", "points": 1}))
    assert accounts.nonce_of(ex.read_state(), "owner") == 1
    assert accounts.active_keys(ex.read_state(), "owner") == [pub]
