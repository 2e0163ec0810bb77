# src/hookledger/ledger/bonding.py
from __future__ import annotations

"""Multi-target, multi-currency bonding ledger.

The reward accumulator pattern applied per (target, currency) key, plus
principal bookkeeping. Principal is never burned: bond once, earn forever.

Layout:
  state["bonding"] = {
    "pools": {
      "<target>|<currency>": {
        "target": str, "currency": str,
        "total_bonded": int, "rps": int,
        "unallocated": int, "dust_scaled": int, "fees_recorded": int,
      },
    },
    "positions": {
      "<target>|<currency>": {
        "<account>": {"principal": int, "checkpoint": int, "pending": int},
      },
    },
  }

Fees recorded while nothing is bonded wait in `unallocated` and are folded into
the next fee that finds a non-zero bond.
"""

from typing import Any, Dict, List, Optional, Sequence

from hookledger.ledger.constants import BONDING, PRECISION, ROLE_FEE_PUBLISHER, ROLE_WITHDRAWER
from hookledger.ledger.custody import ReceiveHook, guard, pay_out, receive
from hookledger.ledger.errors import StateConflict
from hookledger.ledger.fixed_point import ScaledAccumulator
from hookledger.ledger.roles import require_role
from hookledger.ledger.state import (
    _as_dict,
    _as_int,
    _as_str,
    ensure_child,
    ensure_root,
    require_account,
    require_amount,
    require_pairs,
    transactional,
)

Json = Dict[str, Any]


def pool_key(target: str, currency: str) -> str:
    return f"{target}|{currency}"


def _root(state: Json) -> Json:
    r = ensure_root(state, "bonding")
    ensure_child(r, "pools")
    ensure_child(r, "positions")
    return r


def _pool(state: Json, target: str, currency: str) -> Json:
    p = ensure_child(_root(state)["pools"], pool_key(target, currency))
    p.setdefault("target", target)
    p.setdefault("currency", currency)
    p.setdefault("total_bonded", 0)
    p.setdefault("rps", 0)
    p.setdefault("unallocated", 0)
    p.setdefault("dust_scaled", 0)
    p.setdefault("fees_recorded", 0)
    return p


def _position(state: Json, target: str, currency: str, account: str) -> Json:
    positions = ensure_child(_root(state)["positions"], pool_key(target, currency))
    pos = ensure_child(positions, account)
    pos.setdefault("principal", 0)
    pos.setdefault("checkpoint", 0)
    pos.setdefault("pending", 0)
    return pos


def _require_key(target: Any, currency: Any) -> tuple[str, str]:
    return require_account(target, field="target"), require_account(currency, field="currency")


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def _pool_view(state: Json, target: str, currency: str) -> Json:
    pools = _as_dict(_as_dict(state.get("bonding")).get("pools"))
    return _as_dict(pools.get(pool_key(target, currency)))


def _position_view(state: Json, target: str, currency: str, account: str) -> Json:
    positions = _as_dict(_as_dict(state.get("bonding")).get("positions"))
    return _as_dict(_as_dict(positions.get(pool_key(target, currency))).get(account))


def pool_of(state: Json, target: str, currency: str) -> Json:
    p = _pool_view(state, target, currency)
    out: Json = {"target": target, "currency": currency}
    for k in ("total_bonded", "rps", "unallocated", "dust_scaled", "fees_recorded"):
        out[k] = _as_int(p.get(k), 0)
    out["dust"] = out["dust_scaled"] // PRECISION
    return out


def principal_of(state: Json, target: str, currency: str, account: str) -> int:
    return _as_int(_position_view(state, target, currency, account).get("principal"), 0)


def claimable_of(state: Json, target: str, currency: str, account: str) -> int:
    pos = _position_view(state, target, currency, account)
    acc = ScaledAccumulator(_as_int(_pool_view(state, target, currency).get("rps"), 0), PRECISION)
    return _as_int(pos.get("pending"), 0) + acc.owed(_as_int(pos.get("principal"), 0), _as_int(pos.get("checkpoint"), 0))


def position_of(state: Json, target: str, currency: str, account: str) -> Json:
    pos = _position_view(state, target, currency, account)
    return {
        "target": target,
        "currency": currency,
        "account": account,
        "principal": _as_int(pos.get("principal"), 0),
        "checkpoint": _as_int(pos.get("checkpoint"), 0),
        "pending": _as_int(pos.get("pending"), 0),
        "claimable": claimable_of(state, target, currency, account),
    }


def liabilities(state: Json, currency: str) -> int:
    total = 0
    root = _as_dict(state.get("bonding"))
    positions = _as_dict(root.get("positions"))
    for key, p in list(_as_dict(root.get("pools")).items()):
        if not isinstance(p, dict) or _as_str(p.get("currency")) != currency:
            continue
        target = _as_str(p.get("target"))
        total += _as_int(p.get("unallocated"), 0)
        for account in list(_as_dict(positions.get(key)).keys()):
            total += principal_of(state, target, currency, account)
            total += claimable_of(state, target, currency, account)
    return total


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def _settle(state: Json, target: str, currency: str, account: str) -> int:
    pos = _position(state, target, currency, account)
    acc = ScaledAccumulator(_as_int(_pool(state, target, currency).get("rps"), 0), PRECISION)
    owed = acc.owed(_as_int(pos.get("principal"), 0), _as_int(pos.get("checkpoint"), 0))
    if owed:
        pos["pending"] = _as_int(pos.get("pending"), 0) + owed
    pos["checkpoint"] = acc.value
    return owed


@transactional
def deposit_principal(state: Json, target: Any, currency: Any, amount: Any, account: Any) -> Json:
    """Bond `amount` for `account`. New principal only earns future fees."""
    t, c = _require_key(target, currency)
    a = require_account(account)
    amt = require_amount(amount, positive=True)

    settled = _settle(state, t, c, a)
    pos = _position(state, t, c, a)
    pool = _pool(state, t, c)
    pos["principal"] = _as_int(pos.get("principal"), 0) + amt
    pool["total_bonded"] = _as_int(pool.get("total_bonded"), 0) + amt
    receive(state, BONDING, c, amt)

    return {
        "applied": "BOND_DEPOSIT",
        "target": t,
        "currency": c,
        "account": a,
        "amount": amt,
        "principal": pos["principal"],
        "settled": settled,
    }


@transactional
def record_fee(state: Json, caller: Any, target: Any, currency: Any, amount: Any) -> Json:
    require_role(state, ROLE_FEE_PUBLISHER, caller)
    t, c = _require_key(target, currency)
    amt = require_amount(amount)

    pool = _pool(state, t, c)
    receive(state, BONDING, c, amt)
    pool["fees_recorded"] = _as_int(pool.get("fees_recorded"), 0) + amt

    bonded = _as_int(pool.get("total_bonded"), 0)
    if bonded == 0:
        pool["unallocated"] = _as_int(pool.get("unallocated"), 0) + amt
        return {
            "applied": "BOND_FEE_RECORD",
            "target": t,
            "currency": c,
            "amount": amt,
            "allocated": False,
            "unallocated": pool["unallocated"],
        }

    distributable = amt + _as_int(pool.get("unallocated"), 0)
    acc, inc, dust = ScaledAccumulator(_as_int(pool.get("rps"), 0), PRECISION).absorb(distributable, bonded)
    pool["rps"] = acc.value
    pool["unallocated"] = 0
    pool["dust_scaled"] = _as_int(pool.get("dust_scaled"), 0) + dust
    return {
        "applied": "BOND_FEE_RECORD",
        "target": t,
        "currency": c,
        "amount": amt,
        "allocated": True,
        "distributed": distributable,
        "increment": inc,
    }


@transactional
def claim_rewards(
    state: Json,
    caller: Any,
    targets: Sequence[Any],
    currencies: Sequence[Any],
    *,
    receiver: Optional[ReceiveHook] = None,
) -> Json:
    """Pay the caller's rewards for each (target, currency) pair.

    Pairs with nothing pending are skipped without error.
    """
    account = require_account(caller, field="caller")
    require_pairs(targets, currencies, reason="length_mismatch", allow_empty=True)

    paid: List[Json] = []
    skipped: List[Json] = []
    with guard(state, BONDING):
        for target, currency in zip(targets, currencies):
            t, c = _require_key(target, currency)
            _settle(state, t, c, account)
            pos = _position(state, t, c, account)
            payout = _as_int(pos.get("pending"), 0)
            if payout == 0:
                skipped.append({"target": t, "currency": c})
                continue

            def _effects(pos: Json = pos) -> None:
                pos["pending"] = 0

            transfer = pay_out(state, BONDING, to=account, currency=c, amount=payout, effects=_effects, receiver=receiver)
            paid.append({"target": t, **transfer})

    return {"applied": "BOND_CLAIM", "account": account, "paid": paid, "skipped": skipped}


@transactional
def withdraw_principal(
    state: Json,
    caller: Any,
    target: Any,
    account: Any,
    currency: Any,
    amount: Any,
    to: Any,
    *,
    receiver: Optional[ReceiveHook] = None,
) -> Json:
    """Release bonded principal to `to`.

    Accrual is settled first, so withdrawing never forfeits unclaimed rewards.
    """
    require_role(state, ROLE_WITHDRAWER, caller)
    t, c = _require_key(target, currency)
    a = require_account(account)
    dest = require_account(to, field="to")
    amt = require_amount(amount, positive=True)

    with guard(state, BONDING):
        settled = _settle(state, t, c, a)
        pos = _position(state, t, c, a)
        principal = _as_int(pos.get("principal"), 0)
        if amt > principal:
            raise StateConflict(
                "insufficient_principal",
                {"target": t, "currency": c, "account": a, "principal": principal, "requested": amt},
            )

        def _effects() -> None:
            pool = _pool(state, t, c)
            pos["principal"] = principal - amt
            pool["total_bonded"] = _as_int(pool.get("total_bonded"), 0) - amt

        transfer = pay_out(state, BONDING, to=dest, currency=c, amount=amt, effects=_effects, receiver=receiver)

    return {
        "applied": "BOND_WITHDRAW",
        "target": t,
        "currency": c,
        "account": a,
        "amount": amt,
        "principal": principal - amt,
        "settled": settled,
        "transfer": transfer,
    }


__all__ = [
    "claim_rewards",
    "claimable_of",
    "deposit_principal",
    "liabilities",
    "pool_key",
    "pool_of",
    "position_of",
    "principal_of",
    "record_fee",
    "withdraw_principal",
]
