# src/hookledger/ledger/transfers.py
from __future__ import annotations

"""Administrative custody movement between ledgers.

Moving value from one ledger to another is two independent operations: a debit
on the source and a plain receive on the destination. Neither ledger's
accounting changes. The only rule enforced here is local to the source: after
the debit, its custody must still cover everything it has promised.
"""

from typing import Any, Callable, Dict

from hookledger.ledger import bonding, commitments, rebates, rewards
from hookledger.ledger.constants import BONDING, COMMITMENTS, REBATES, REWARDS, ROLE_ADMIN
from hookledger.ledger.custody import custody_of, debit, receive
from hookledger.ledger.errors import CustodyShortfall, PreconditionViolation
from hookledger.ledger.roles import require_role
from hookledger.ledger.state import require_account, require_amount, transactional

Json = Dict[str, Any]

_LIABILITIES: Dict[str, Callable[[Json, str], int]] = {
    REWARDS: rewards.liabilities,
    BONDING: bonding.liabilities,
    COMMITMENTS: commitments.liabilities,
    REBATES: rebates.liabilities,
}


def liabilities(state: Json, ledger: str, currency: str) -> int:
    fn = _LIABILITIES.get(ledger)
    if fn is None:
        raise PreconditionViolation("unknown_ledger", {"ledger": ledger})
    return int(fn(state, currency))


def unallocated(state: Json, ledger: str, currency: str) -> int:
    """Custody not backing any promise. Negative means under-collateralized."""
    return custody_of(state, ledger, currency) - liabilities(state, ledger, currency)


def solvency(state: Json, ledger: str, currency: str) -> Json:
    held = custody_of(state, ledger, currency)
    owed = liabilities(state, ledger, currency)
    return {"ledger": ledger, "currency": currency, "custody": held, "liabilities": owed, "unallocated": held - owed}


@transactional
def custody_receive(state: Json, ledger: Any, currency: Any, amount: Any) -> Json:
    lg = require_account(ledger, field="ledger").lower()
    c = require_account(currency, field="currency")
    amt = require_amount(amount, positive=True)
    held = receive(state, lg, c, amt)
    return {"applied": "CUSTODY_RECEIVE", "ledger": lg, "currency": c, "amount": amt, "custody": held}


@transactional
def custody_transfer(state: Json, caller: Any, from_ledger: Any, to_ledger: Any, currency: Any, amount: Any) -> Json:
    require_role(state, ROLE_ADMIN, caller)
    src = require_account(from_ledger, field="from_ledger").lower()
    dst = require_account(to_ledger, field="to_ledger").lower()
    c = require_account(currency, field="currency")
    amt = require_amount(amount, positive=True)
    if src == dst:
        raise PreconditionViolation("same_ledger", {"ledger": src})

    debit(state, src, c, amt)
    remaining = unallocated(state, src, c)
    if remaining < 0:
        raise CustodyShortfall(
            "insufficient_custody",
            {"ledger": src, "currency": c, "requested": amt, "shortfall": -remaining},
        )
    receive(state, dst, c, amt)
    return {"applied": "CUSTODY_TRANSFER", "from": src, "to": dst, "currency": c, "amount": amt}


__all__ = ["custody_receive", "custody_transfer", "liabilities", "solvency", "unallocated"]
