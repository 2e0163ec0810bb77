# src/hookledger/ledger/rewards.py
from __future__ import annotations

"""Points-weighted reward accumulator.

Layout:
  state["rewards"] = {
    "total_points": int,
    "accounts": {
      "<account>": {"points": int, "checkpoints": {cur: int}, "pending": {cur: int}},
    },
    "currencies": {
      "<cur>": {"acc": int, "deposited": int, "unallocated": int, "dust_scaled": int},
    },
  }

Entitlement is settled lazily: before an account's points change, and before
its pending balance is read for payout, `settle_checkpoint` moves
`points * (acc - checkpoint) // SCALE` into pending and advances the checkpoint.
Skipping that step would let new points claim deposits made before they
existed.
"""

from typing import Any, Dict, List, Optional, Sequence

from hookledger.ledger.constants import NATIVE_CURRENCY, REWARDS, ROLE_SETTLEMENT, SCALE
from hookledger.ledger.custody import ReceiveHook, guard, pay_out, receive
from hookledger.ledger.fixed_point import ScaledAccumulator
from hookledger.ledger.roles import require_role
from hookledger.ledger.state import (
    _as_int,
    ensure_child,
    ensure_root,
    require_account,
    require_amount,
    require_pairs,
    transactional,
)

Json = Dict[str, Any]


def _root(state: Json) -> Json:
    r = ensure_root(state, "rewards")
    r.setdefault("total_points", 0)
    ensure_child(r, "accounts")
    ensure_child(r, "currencies")
    return r


def _currency(state: Json, currency: str) -> Json:
    cur = ensure_child(_root(state)["currencies"], currency)
    cur.setdefault("acc", 0)
    cur.setdefault("deposited", 0)
    cur.setdefault("unallocated", 0)
    cur.setdefault("dust_scaled", 0)
    return cur


def _account(state: Json, account: str) -> Json:
    acct = ensure_child(_root(state)["accounts"], account)
    acct.setdefault("points", 0)
    ensure_child(acct, "checkpoints")
    ensure_child(acct, "pending")
    return acct


def _accumulator(state: Json, currency: str) -> ScaledAccumulator:
    return ScaledAccumulator(_as_int(_currency(state, currency).get("acc"), 0), SCALE)


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def total_points(state: Json) -> int:
    return _as_int(_root(state).get("total_points"), 0)


def points_of(state: Json, account: str) -> int:
    acct = _root(state)["accounts"].get(account)
    return _as_int(acct.get("points"), 0) if isinstance(acct, dict) else 0


def accumulator_of(state: Json, currency: str = NATIVE_CURRENCY) -> int:
    return _as_int(_currency(state, currency).get("acc"), 0)


def checkpoint_of(state: Json, account: str, currency: str = NATIVE_CURRENCY) -> int:
    acct = _root(state)["accounts"].get(account)
    if not isinstance(acct, dict):
        return 0
    return _as_int(ensure_child(acct, "checkpoints").get(currency), 0)


def pending_of(state: Json, account: str, currency: str = NATIVE_CURRENCY) -> int:
    """Settled-but-unwithdrawn entitlement (excludes unsettled accrual)."""
    acct = _root(state)["accounts"].get(account)
    if not isinstance(acct, dict):
        return 0
    return _as_int(ensure_child(acct, "pending").get(currency), 0)


def claimable_of(state: Json, account: str, currency: str = NATIVE_CURRENCY) -> int:
    """Pending plus what a settlement right now would add."""
    owed = _accumulator(state, currency).owed(points_of(state, account), checkpoint_of(state, account, currency))
    return pending_of(state, account, currency) + owed


def currencies(state: Json) -> List[str]:
    return sorted(_root(state)["currencies"].keys())


def liabilities(state: Json, currency: str) -> int:
    total = 0
    for account in list(_root(state)["accounts"].keys()):
        total += claimable_of(state, account, currency)
    return total


def currency_stats(state: Json, currency: str = NATIVE_CURRENCY) -> Json:
    cur = _currency(state, currency)
    dust_scaled = _as_int(cur.get("dust_scaled"), 0)
    return {
        "currency": currency,
        "acc": _as_int(cur.get("acc"), 0),
        "deposited": _as_int(cur.get("deposited"), 0),
        "unallocated": _as_int(cur.get("unallocated"), 0),
        "dust_scaled": dust_scaled,
        "dust": dust_scaled // SCALE,
    }


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def settle_checkpoint(state: Json, account: str) -> Json:
    """Move accrued entitlement into pending for every reward currency.

    A no-op (zero accumulator delta) leaves pending and checkpoints unchanged.
    """
    acct = _account(state, account)
    pts = _as_int(acct.get("points"), 0)
    checkpoints = acct["checkpoints"]
    pending = acct["pending"]

    settled: Dict[str, int] = {}
    for cur in currencies(state):
        acc = _accumulator(state, cur)
        ck = _as_int(checkpoints.get(cur), 0)
        owed = acc.owed(pts, ck)
        if owed:
            pending[cur] = _as_int(pending.get(cur), 0) + owed
            settled[cur] = owed
        if ck != acc.value:
            checkpoints[cur] = acc.value
    return settled


@transactional
def receive_deposit(state: Json, amount: Any, currency: str = NATIVE_CURRENCY) -> Json:
    a = require_amount(amount)
    cur = _currency(state, currency)
    receive(state, REWARDS, currency, a)
    cur["deposited"] = _as_int(cur.get("deposited"), 0) + a

    tp = total_points(state)
    if tp == 0 or a == 0:
        cur["unallocated"] = _as_int(cur.get("unallocated"), 0) + a
        return {"applied": "REWARD_DEPOSIT", "currency": currency, "amount": a, "allocated": False, "increment": 0}

    acc, inc, dust = _accumulator(state, currency).absorb(a, tp)
    cur["acc"] = acc.value
    cur["dust_scaled"] = _as_int(cur.get("dust_scaled"), 0) + dust
    return {"applied": "REWARD_DEPOSIT", "currency": currency, "amount": a, "allocated": True, "increment": inc}


def _mint_one(state: Json, account: str, amount: int) -> Json:
    settled = settle_checkpoint(state, account)
    acct = _account(state, account)
    acct["points"] = _as_int(acct.get("points"), 0) + amount
    root = _root(state)
    root["total_points"] = _as_int(root.get("total_points"), 0) + amount
    return {"account": account, "points": amount, "settled": settled}


@transactional
def mint(state: Json, caller: Any, account: Any, amount: Any) -> Json:
    require_role(state, ROLE_SETTLEMENT, caller)
    a = require_account(account)
    pts = require_amount(amount, field="points")
    out = _mint_one(state, a, pts)
    return {"applied": "POINTS_MINT", **out, "total_points": total_points(state)}


@transactional
def batch_mint(state: Json, caller: Any, accounts: Sequence[Any], amounts: Sequence[Any]) -> Json:
    require_role(state, ROLE_SETTLEMENT, caller)
    require_pairs(accounts, amounts)
    minted: List[Json] = []
    for i, (account, amount) in enumerate(zip(accounts, amounts)):
        a = require_account(account, field=f"accounts[{i}]")
        pts = require_amount(amount, field=f"amounts[{i}]")
        minted.append(_mint_one(state, a, pts))
    return {"applied": "POINTS_BATCH_MINT", "minted": minted, "total_points": total_points(state)}


@transactional
def withdraw(
    state: Json,
    caller: Any,
    currency: str = NATIVE_CURRENCY,
    *,
    receiver: Optional[ReceiveHook] = None,
) -> Json:
    """Pay out pending rewards and burn half of the caller's points.

    The burn is a decay policy: each realization halves the weight that keeps
    compounding. An account holding a single point keeps it.
    """
    account = require_account(caller, field="caller")
    with guard(state, REWARDS):
        settle_checkpoint(state, account)
        acct = _account(state, account)
        payout = _as_int(acct["pending"].get(currency), 0)
        burned = _as_int(acct.get("points"), 0) // 2

        def _effects() -> None:
            acct["pending"][currency] = 0
            acct["points"] = _as_int(acct.get("points"), 0) - burned
            root = _root(state)
            root["total_points"] = _as_int(root.get("total_points"), 0) - burned

        transfer = pay_out(
            state,
            REWARDS,
            to=account,
            currency=currency,
            amount=payout,
            effects=_effects,
            receiver=receiver,
        )

    return {
        "applied": "REWARD_WITHDRAW",
        "account": account,
        "currency": currency,
        "payout": payout,
        "burned": burned,
        "points": points_of(state, account),
        "transfer": transfer,
    }


__all__ = [
    "accumulator_of",
    "batch_mint",
    "checkpoint_of",
    "claimable_of",
    "currency_stats",
    "liabilities",
    "mint",
    "pending_of",
    "points_of",
    "receive_deposit",
    "settle_checkpoint",
    "total_points",
    "withdraw",
]
