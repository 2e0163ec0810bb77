from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from hookledger.api.errors import ApiError
from hookledger.api.routes_public_parts.common import _snapshot
from hookledger.ledger import accounts, bonding, commitments, custody, epochs, rebates, rewards, roles, transfers
from hookledger.ledger.constants import COMMITMENTS, LEDGERS, NATIVE_CURRENCY, ROLES
from hookledger.ledger.errors import LedgerError

router = APIRouter()

Json = Dict[str, Any]


def _currency(v: Optional[str]) -> str:
    s = str(v or "").strip()
    return s or NATIVE_CURRENCY


# ---- rewards ----


@router.get("/rewards/currencies/{currency}")
def rewards_currency(request: Request, currency: str) -> Json:
    st = _snapshot(request)
    return {"ok": True, "total_points": rewards.total_points(st), "currency": rewards.currency_stats(st, currency)}


@router.get("/rewards/{account}")
def rewards_account(request: Request, account: str, currency: Optional[str] = None) -> Json:
    st = _snapshot(request)
    cur = _currency(currency)
    return {
        "ok": True,
        "account": account,
        "currency": cur,
        "points": rewards.points_of(st, account),
        "checkpoint": str(rewards.checkpoint_of(st, account, cur)),
        "pending": rewards.pending_of(st, account, cur),
        "claimable": rewards.claimable_of(st, account, cur),
        "accumulator": str(rewards.accumulator_of(st, cur)),
    }


# ---- bonding ----


@router.get("/bonds/{target}/{currency}")
def bond_pool(request: Request, target: str, currency: str) -> Json:
    st = _snapshot(request)
    return {"ok": True, "pool": bonding.pool_of(st, target, currency)}


@router.get("/bonds/{target}/{currency}/{account}")
def bond_position(request: Request, target: str, currency: str, account: str) -> Json:
    st = _snapshot(request)
    return {"ok": True, "position": bonding.position_of(st, target, currency, account)}


# ---- commitments ----


@router.get("/commitments")
def commitments_overview(request: Request) -> Json:
    st = _snapshot(request)
    return {
        "ok": True,
        "stats": commitments.stats(st),
        "active": commitments.active_commitments(st),
        "processed_epochs": epochs.processed_epochs(st, COMMITMENTS),
    }


@router.get("/commitments/{account}")
def commitment_account(request: Request, account: str) -> Json:
    st = _snapshot(request)
    rec = commitments.commitment_of(st, account)
    if rec is None:
        raise ApiError.not_found("no_commitment", "account has no commitment", {"account": account})
    return {"ok": True, "account": account, "commitment": rec}


# ---- rebates ----


@router.get("/rebates/epochs/{epoch}")
def rebate_epoch(request: Request, epoch: int) -> Json:
    st = _snapshot(request)
    rec = rebates.push_record(st, epoch)
    return {"ok": True, "epoch": int(epoch), "processed": rec is not None, "push": rec}


@router.get("/rebates/{account}")
def rebate_account(request: Request, account: str) -> Json:
    st = _snapshot(request)
    return {"ok": True, "account": account, "credit": rebates.credit_of(st, account)}


# ---- custody ----


@router.get("/custody/{ledger}")
def custody_view(request: Request, ledger: str) -> Json:
    st = _snapshot(request)
    lg = str(ledger or "").strip().lower()
    try:
        balances = custody.custody_snapshot(st, lg)
    except LedgerError as e:
        raise ApiError.not_found(e.reason, "unknown ledger", {"ledger": ledger, "ledgers": list(LEDGERS)}) from None
    currencies = sorted(set(balances) | {NATIVE_CURRENCY})
    return {
        "ok": True,
        "ledger": lg,
        "custody": balances,
        "solvency": {c: transfers.solvency(st, lg, c) for c in currencies},
    }


@router.get("/wallets/{account}")
def wallet_view(request: Request, account: str, currency: Optional[str] = None) -> Json:
    st = _snapshot(request)
    cur = _currency(currency)
    return {"ok": True, "account": account, "currency": cur, "balance": custody.wallet_of(st, account, cur)}


# ---- roles ----


@router.get("/roles")
def roles_view(request: Request) -> Json:
    st = _snapshot(request)
    return {
        "ok": True,
        "owner": roles.owner_of(st),
        "registry": {r: roles.role_holders(st, r) for r in ROLES},
    }


# ---- accounts ----


@router.get("/accounts/{account}")
def account_view(request: Request, account: str) -> Json:
    """Active keys and the last accepted nonce; sign the next tx with nonce + 1."""
    st = _snapshot(request)
    acct = accounts.account_of(st, account)
    return {"ok": True, **acct, "roles": roles.roles_of(st, account), "is_owner": roles.owner_of(st) == account}
