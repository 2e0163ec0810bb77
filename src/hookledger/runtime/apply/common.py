# src/hookledger/runtime/apply/common.py
from __future__ import annotations

from typing import Any, Dict, List

from hookledger.ledger.constants import NATIVE_CURRENCY
from hookledger.ledger.errors import PreconditionViolation
from hookledger.runtime.tx import TxEnvelope

Json = Dict[str, Any]


def tx_type(env: TxEnvelope) -> str:
    return str(env.tx_type or "").strip().upper()


def payload(env: TxEnvelope) -> Json:
    return env.payload if isinstance(env.payload, dict) else {}


def pick(d: Json, *keys: str) -> Any:
    for k in keys:
        if k in d and d.get(k) is not None:
            return d.get(k)
    return None


def require(d: Json, *keys: str) -> Any:
    v = pick(d, *keys)
    if v is None:
        raise PreconditionViolation("missing_field", {"field": keys[0]})
    return v


def as_list(d: Json, *keys: str) -> List[Any]:
    v = pick(d, *keys)
    if v is None:
        return []
    if not isinstance(v, list):
        raise PreconditionViolation("invalid_field", {"field": keys[0], "type": type(v).__name__})
    return v


def currency(d: Json) -> str:
    c = pick(d, "currency")
    return str(c).strip() if c is not None and str(c).strip() else NATIVE_CURRENCY


def require_value(env: TxEnvelope, amount: Any) -> int:
    """Attached value must match the declared amount exactly."""
    try:
        a = int(amount)
    except Exception:
        raise PreconditionViolation("invalid_amount", {"field": "amount", "value": repr(amount)}) from None
    if int(env.value) != a:
        raise PreconditionViolation("value_mismatch", {"value": int(env.value), "amount": a})
    return a
