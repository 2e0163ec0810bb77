# src/hookledger/ledger/rebates.py
from __future__ import annotations

"""Per-epoch rebate crediting.

Layout:
  state["rebates"] = {
    "credits": {"<account>": int},
    "pushed_by_epoch": {"<epoch>": {"operator": str, "total": int, "accounts": int}},
  }

One push per epoch for the whole ledger, whoever the operator is. Credits are
additive across epochs.
"""

from typing import Any, Dict, List, Optional, Sequence

from hookledger.ledger.constants import NATIVE_CURRENCY, REBATES, ROLE_REBATE_OPERATOR
from hookledger.ledger.custody import ReceiveHook, guard, pay_out
from hookledger.ledger.epochs import claim_epoch
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
    r = ensure_root(state, "rebates")
    ensure_child(r, "credits")
    ensure_child(r, "pushed_by_epoch")
    return r


def credit_of(state: Json, account: str) -> int:
    return _as_int(_root(state)["credits"].get(account), 0)


def push_record(state: Json, epoch: int) -> Optional[Json]:
    rec = _root(state)["pushed_by_epoch"].get(str(int(epoch)))
    return dict(rec) if isinstance(rec, dict) else None


def liabilities(state: Json, currency: str = NATIVE_CURRENCY) -> int:
    if currency != NATIVE_CURRENCY:
        return 0
    return sum(_as_int(v, 0) for v in _root(state)["credits"].values())


@transactional
def push_credit(state: Json, caller: Any, epoch: Any, accounts: Sequence[Any], amounts: Sequence[Any]) -> Json:
    operator = require_role(state, ROLE_REBATE_OPERATOR, caller)
    require_pairs(accounts, amounts)
    e = claim_epoch(state, REBATES, epoch)

    credits = _root(state)["credits"]
    credited: List[Json] = []
    total = 0
    for i, (account, amount) in enumerate(zip(accounts, amounts)):
        a = require_account(account, field=f"accounts[{i}]")
        amt = require_amount(amount, field=f"amounts[{i}]")
        credits[a] = _as_int(credits.get(a), 0) + amt
        total += amt
        credited.append({"account": a, "amount": amt, "balance": credits[a]})

    _root(state)["pushed_by_epoch"][str(e)] = {"operator": operator, "total": total, "accounts": len(credited)}
    return {"applied": "REBATE_PUSH", "epoch": e, "total": total, "credited": credited}


@transactional
def withdraw(state: Json, caller: Any, *, receiver: Optional[ReceiveHook] = None) -> Json:
    account = require_account(caller, field="caller")
    with guard(state, REBATES):
        credits = _root(state)["credits"]
        payout = _as_int(credits.get(account), 0)

        def _effects() -> None:
            credits[account] = 0

        transfer = pay_out(
            state,
            REBATES,
            to=account,
            currency=NATIVE_CURRENCY,
            amount=payout,
            effects=_effects,
            receiver=receiver,
        )
    return {"applied": "REBATE_WITHDRAW", "account": account, "payout": payout, "transfer": transfer}


__all__ = ["credit_of", "liabilities", "push_credit", "push_record", "withdraw"]
