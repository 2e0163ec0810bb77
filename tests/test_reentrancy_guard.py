# tests/test_reentrancy_guard.py
from __future__ import annotations

import copy

import pytest

from hookledger.ledger import bonding, custody, rebates, rewards, roles, transfers
from hookledger.ledger.constants import NATIVE_CURRENCY, REBATES
from hookledger.ledger.errors import LedgerError, StateConflict

OWNER = "owner"


def _state() -> dict:
    st: dict = {}
    roles.set_owner(st, OWNER, OWNER)
    rewards.mint(st, OWNER, "A", 10)
    rewards.receive_deposit(st, 50)
    return st


def test_reentrant_reward_withdraw_fails_and_rolls_back() -> None:
    st = _state()

    def _hook(state, ledger, to, currency, amount) -> None:
        rewards.withdraw(state, to)

    before = copy.deepcopy(st)
    with pytest.raises(StateConflict) as ei:
        rewards.withdraw(st, "A", receiver=_hook)
    assert ei.value.reason == "reentrant_call"
    assert st == before


def test_receiver_that_swallows_reentry_does_not_leave_guard_set() -> None:
    st = _state()
    seen: list[str] = []

    def _hook(state, ledger, to, currency, amount) -> None:
        try:
            rewards.withdraw(state, to)
        except LedgerError as e:
            seen.append(e.reason)

    r = rewards.withdraw(st, "A", receiver=_hook)
    assert seen == ["reentrant_call"]
    assert r["payout"] == 50
    assert custody.wallet_of(st, "A", NATIVE_CURRENCY) == 50
    assert rewards.points_of(st, "A") == 5
    assert st["guards"]["rewards"] is False

    # ledger is usable again
    rewards.receive_deposit(st, 10)
    assert rewards.withdraw(st, "A")["payout"] == 10


def test_reentrant_bond_claim_fails() -> None:
    st: dict = {}
    roles.set_owner(st, OWNER, OWNER)
    bonding.deposit_principal(st, "p", "ETH", 10, "alice")
    bonding.record_fee(st, OWNER, "p", "ETH", 10)

    def _hook(state, ledger, to, currency, amount) -> None:
        bonding.claim_rewards(state, to, ["p"], ["ETH"])

    before = copy.deepcopy(st)
    with pytest.raises(StateConflict) as ei:
        bonding.claim_rewards(st, "alice", ["p"], ["ETH"], receiver=_hook)
    assert ei.value.reason == "reentrant_call"
    assert st == before


def test_reentrant_rebate_withdraw_fails() -> None:
    st: dict = {}
    roles.set_owner(st, OWNER, OWNER)
    rebates.push_credit(st, OWNER, 1, ["a"], [10])
    transfers.custody_receive(st, REBATES, NATIVE_CURRENCY, 10)

    def _hook(state, ledger, to, currency, amount) -> None:
        rebates.withdraw(state, to)

    with pytest.raises(StateConflict) as ei:
        rebates.withdraw(st, "a", receiver=_hook)
    assert ei.value.reason == "reentrant_call"
    assert rebates.credit_of(st, "a") == 10


def test_guard_is_per_ledger() -> None:
    st = _state()
    rebates.push_credit(st, OWNER, 1, ["A"], [7])
    transfers.custody_receive(st, REBATES, NATIVE_CURRENCY, 7)

    def _hook(state, ledger, to, currency, amount) -> None:
        rebates.withdraw(state, to)

    rewards.withdraw(st, "A", receiver=_hook)
    assert custody.wallet_of(st, "A", NATIVE_CURRENCY) == 57
