# src/hookledger/ledger/commitments.py
from __future__ import annotations

"""Per-account funding commitments.

One record per account, created once and never deleted; a drained commitment
keeps its record with `balance == 0`. `exists` distinguishes "never created"
from "drained".

Layout:
  state["commitments"] = {
    "by_account": {"<account>": {<record>}},
    "stats": {"committed_total": int, "consumed_total": int},
  }

Rate updates are staged: `update_rate` stores a pending rush factor and marks
the record as updated in the current epoch. Settlement promotes it only for an
epoch strictly after that update and at or after the requested effective epoch.
"""

from typing import Any, Dict, List, Optional, Sequence

from hookledger.ledger.constants import COMMITMENTS, NATIVE_CURRENCY, ROLE_SETTLEMENT
from hookledger.ledger.custody import receive
from hookledger.ledger.epochs import claim_epoch, require_epoch
from hookledger.ledger.errors import StateConflict
from hookledger.ledger.roles import require_role
from hookledger.ledger.state import (
    _as_int,
    ensure_child,
    ensure_root,
    max_rush,
    min_commitment,
    require_account,
    require_amount,
    require_pairs,
    transactional,
)

Json = Dict[str, Any]


def _root(state: Json) -> Json:
    r = ensure_root(state, "commitments")
    ensure_child(r, "by_account")
    stats = ensure_child(r, "stats")
    stats.setdefault("committed_total", 0)
    stats.setdefault("consumed_total", 0)
    return r


def _record(state: Json, account: str) -> Optional[Json]:
    rec = _root(state)["by_account"].get(account)
    if isinstance(rec, dict) and rec.get("exists"):
        return rec
    return None


def _require_record(state: Json, account: str) -> Json:
    rec = _record(state, account)
    if rec is None:
        raise StateConflict("no_commitment", {"account": account})
    return rec


def _require_rush(state: Json, rush: Any) -> int:
    r = require_amount(rush, field="rush")
    cap = max_rush(state)
    if r > cap:
        raise StateConflict("rush_out_of_range", {"rush": r, "max_rush": cap})
    return r


def _bump(state: Json, key: str, amount: int) -> None:
    stats = _root(state)["stats"]
    stats[key] = _as_int(stats.get(key), 0) + int(amount)


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def commitment_of(state: Json, account: str) -> Optional[Json]:
    rec = _record(state, account)
    return dict(rec) if rec is not None else None


def has_commitment(state: Json, account: str) -> bool:
    return _record(state, account) is not None


def active_commitments(state: Json) -> List[Json]:
    """Records with a non-zero balance, in account order."""
    out: List[Json] = []
    for account in sorted(_root(state)["by_account"].keys()):
        rec = _record(state, account)
        if rec is not None and _as_int(rec.get("balance"), 0) > 0:
            out.append({"account": account, **rec})
    return out


def liabilities(state: Json, currency: str = NATIVE_CURRENCY) -> int:
    if currency != NATIVE_CURRENCY:
        return 0
    return sum(_as_int(r.get("balance"), 0) for r in _root(state)["by_account"].values() if isinstance(r, dict))


def stats(state: Json) -> Json:
    return dict(_root(state)["stats"])


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


@transactional
def create_commitment(
    state: Json,
    caller: Any,
    *,
    value: Any,
    max_spend_per_epoch: Any,
    min_rate: Any,
    rush: Any,
    epoch: Any,
) -> Json:
    account = require_account(caller, field="caller")
    v = require_amount(value, field="value")
    cap = require_amount(max_spend_per_epoch, field="max_spend_per_epoch")
    rate = require_amount(min_rate, field="min_rate")
    e = require_epoch(epoch)

    if _record(state, account) is not None:
        raise StateConflict("already_committed", {"account": account})
    floor = min_commitment(state)
    if v < floor:
        raise StateConflict("below_minimum", {"value": v, "min_commitment": floor})
    r = _require_rush(state, rush)

    rec = {
        "exists": True,
        "balance": v,
        "deposited": v,
        "consumed": 0,
        "max_spend_per_epoch": cap,
        "min_rate": rate,
        "rush": r,
        "pending_rate": None,
        "pending_rate_effective_epoch": 0,
        "created_epoch": e,
        "last_updated_epoch": e,
    }
    _root(state)["by_account"][account] = rec
    receive(state, COMMITMENTS, NATIVE_CURRENCY, v)
    _bump(state, "committed_total", v)
    return {"applied": "COMMITMENT_CREATE", "account": account, "commitment": dict(rec)}


@transactional
def top_up(state: Json, caller: Any, *, value: Any) -> Json:
    account = require_account(caller, field="caller")
    v = require_amount(value, field="value")
    rec = _require_record(state, account)

    rec["balance"] = _as_int(rec.get("balance"), 0) + v
    rec["deposited"] = _as_int(rec.get("deposited"), 0) + v
    receive(state, COMMITMENTS, NATIVE_CURRENCY, v)
    _bump(state, "committed_total", v)
    return {"applied": "COMMITMENT_TOP_UP", "account": account, "amount": v, "balance": rec["balance"]}


@transactional
def update_rate(state: Json, caller: Any, *, new_rush: Any, effective_epoch: Any, epoch: Any) -> Json:
    """Stage a new rush factor. The active rate is untouched until settlement."""
    account = require_account(caller, field="caller")
    rec = _require_record(state, account)
    r = _require_rush(state, new_rush)
    eff = require_epoch(effective_epoch)
    now = require_epoch(epoch)

    rec["pending_rate"] = r
    rec["pending_rate_effective_epoch"] = eff
    rec["last_updated_epoch"] = now
    return {
        "applied": "COMMITMENT_RATE_UPDATE",
        "account": account,
        "pending_rate": r,
        "effective_epoch": eff,
        "updated_epoch": now,
    }


def _promote_pending_rate(rec: Json, epoch: int) -> bool:
    pending = rec.get("pending_rate")
    if pending is None:
        return False
    if epoch < _as_int(rec.get("pending_rate_effective_epoch"), 0):
        return False
    if not _as_int(rec.get("last_updated_epoch"), 0) < epoch:
        return False
    rec["rush"] = _as_int(pending, 0)
    rec["pending_rate"] = None
    rec["pending_rate_effective_epoch"] = 0
    rec["last_updated_epoch"] = epoch
    return True


@transactional
def settle_epoch(
    state: Json,
    caller: Any,
    epoch: Any,
    accounts: Sequence[Any],
    consumed_amounts: Sequence[Any],
) -> Json:
    """Apply one epoch's consumption. At most once per epoch.

    Only accounting moves here; relocating the consumed value out of this
    ledger's custody is a separate administrative transfer.
    """
    require_role(state, ROLE_SETTLEMENT, caller)
    require_pairs(accounts, consumed_amounts)
    e = claim_epoch(state, COMMITMENTS, epoch)

    results: List[Json] = []
    consumed_total = 0
    for i, (account, amount) in enumerate(zip(accounts, consumed_amounts)):
        a = require_account(account, field=f"accounts[{i}]")
        consumed = require_amount(amount, field=f"consumed_amounts[{i}]")
        rec = _record(state, a)

        promoted = _promote_pending_rate(rec, e) if rec is not None else False

        if consumed > 0:
            balance = _as_int(rec.get("balance"), 0) if rec is not None else 0
            if rec is None or balance < consumed:
                raise StateConflict(
                    "insufficient_commitment",
                    {"account": a, "epoch": e, "balance": balance, "consumed": consumed},
                )
            rec["balance"] = balance - consumed
            rec["consumed"] = _as_int(rec.get("consumed"), 0) + consumed
            consumed_total += consumed

        results.append(
            {
                "account": a,
                "consumed": consumed,
                "promoted": promoted,
                "balance": _as_int(rec.get("balance"), 0) if rec is not None else 0,
            }
        )

    _bump(state, "consumed_total", consumed_total)
    return {"applied": "COMMITMENT_SETTLE_EPOCH", "epoch": e, "consumed_total": consumed_total, "results": results}


__all__ = [
    "active_commitments",
    "commitment_of",
    "create_commitment",
    "has_commitment",
    "liabilities",
    "settle_epoch",
    "stats",
    "top_up",
    "update_rate",
]
