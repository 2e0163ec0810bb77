# src/hookledger/ledger/custody.py
from __future__ import annotations

"""Per-ledger currency custody and the shared payout path.

Layout:
  state["custody"][ledger][currency] = int   value the ledger actually holds
  state["wallets"][account][currency] = int  value paid out to accounts
  state["guards"][ledger] = bool             set while a withdrawal is running

Every withdrawal in every ledger goes through `guard` + `pay_out`, which fixes
the order: reentry check, zero check, custody check, accounting effects, debit,
credit, then the recipient callback.
"""

from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

from hookledger.ledger.constants import LEDGERS
from hookledger.ledger.errors import CustodyShortfall, PreconditionViolation, StateConflict
from hookledger.ledger.state import _as_int, ensure_child, ensure_root, require_amount

Json = Dict[str, Any]

# (state, ledger, to, currency, amount) -> None. Runs after the ledger's books
# are final, so it may call back into any ledger.
ReceiveHook = Callable[[Json, str, str, str, int], None]


def _norm_ledger(ledger: str) -> str:
    lg = str(ledger or "").strip().lower()
    if lg not in LEDGERS:
        raise PreconditionViolation("unknown_ledger", {"ledger": ledger})
    return lg


def _balances(state: Json, ledger: str) -> Json:
    return ensure_child(ensure_root(state, "custody"), _norm_ledger(ledger))


def custody_of(state: Json, ledger: str, currency: str) -> int:
    return _as_int(_balances(state, ledger).get(currency), 0)


def custody_snapshot(state: Json, ledger: str) -> Dict[str, int]:
    return {str(k): _as_int(v, 0) for k, v in _balances(state, ledger).items()}


def wallet_of(state: Json, account: str, currency: str) -> int:
    wallets = ensure_root(state, "wallets")
    return _as_int(ensure_child(wallets, account).get(currency), 0)


def receive(state: Json, ledger: str, currency: str, amount: Any) -> int:
    """Plain inbound transfer: custody grows, no accounting changes."""
    a = require_amount(amount)
    bal = _balances(state, ledger)
    bal[currency] = _as_int(bal.get(currency), 0) + a
    return int(bal[currency])


def debit(state: Json, ledger: str, currency: str, amount: int) -> int:
    bal = _balances(state, ledger)
    held = _as_int(bal.get(currency), 0)
    if held < int(amount):
        raise CustodyShortfall(
            "insufficient_custody",
            {"ledger": ledger, "currency": currency, "held": held, "requested": int(amount)},
        )
    bal[currency] = held - int(amount)
    return int(bal[currency])


def _credit_wallet(state: Json, account: str, currency: str, amount: int) -> None:
    w = ensure_child(ensure_root(state, "wallets"), account)
    w[currency] = _as_int(w.get(currency), 0) + int(amount)


@contextmanager
def guard(state: Json, ledger: str) -> Iterator[None]:
    """Mutual exclusion against nested withdrawals on the same ledger."""
    lg = _norm_ledger(ledger)
    guards = ensure_root(state, "guards")
    if guards.get(lg):
        raise StateConflict("reentrant_call", {"ledger": lg})
    guards[lg] = True
    try:
        yield
    finally:
        # a nested atomic() restore may have swapped the roots out
        ensure_root(state, "guards")[lg] = False


def pay_out(
    state: Json,
    ledger: str,
    *,
    to: str,
    currency: str,
    amount: int,
    effects: Optional[Callable[[], None]] = None,
    receiver: Optional[ReceiveHook] = None,
) -> Json:
    """Settle a payout: validate, apply `effects`, then move value out."""
    lg = _norm_ledger(ledger)
    a = int(amount)
    if a <= 0:
        raise StateConflict("zero_payout", {"ledger": lg, "account": to, "currency": currency})

    held = custody_of(state, lg, currency)
    if held < a:
        raise CustodyShortfall(
            "insufficient_custody",
            {"ledger": lg, "currency": currency, "held": held, "requested": a},
        )

    if effects is not None:
        effects()

    debit(state, lg, currency, a)
    _credit_wallet(state, to, currency, a)

    if receiver is not None:
        receiver(state, lg, to, currency, a)

    return {"ledger": lg, "to": to, "currency": currency, "amount": a}


__all__ = [
    "ReceiveHook",
    "custody_of",
    "custody_snapshot",
    "debit",
    "guard",
    "pay_out",
    "receive",
    "wallet_of",
]
