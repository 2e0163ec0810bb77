# src/hookledger/ledger/state.py
from __future__ import annotations

import copy
import functools
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Sequence, TypeVar

from hookledger.ledger.constants import DEFAULT_MAX_RUSH, DEFAULT_MIN_COMMITMENT
from hookledger.ledger.errors import PreconditionViolation

Json = Dict[str, Any]

F = TypeVar("F", bound=Callable[..., Any])


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _as_list(x: Any) -> List[Any]:
    return x if isinstance(x, list) else []


def _as_int(x: Any, default: int = 0) -> int:
    try:
        return int(x)
    except Exception:
        return int(default)


def _as_str(x: Any) -> str:
    return str(x).strip() if isinstance(x, (str, int)) and not isinstance(x, bool) else ""


def ensure_root(state: Json, key: str) -> Json:
    cur = state.get(key)
    if not isinstance(cur, dict):
        cur = {}
        state[key] = cur
    return cur


def ensure_child(parent: Json, key: str) -> Json:
    cur = parent.get(key)
    if not isinstance(cur, dict):
        cur = {}
        parent[key] = cur
    return cur


def params(state: Json) -> Json:
    return ensure_root(state, "params")


def min_commitment(state: Json) -> int:
    return _as_int(_as_dict(state.get("params")).get("min_commitment"), DEFAULT_MIN_COMMITMENT)


def max_rush(state: Json) -> int:
    return _as_int(_as_dict(state.get("params")).get("max_rush"), DEFAULT_MAX_RUSH)


def require_account(account: Any, *, field: str = "account") -> str:
    a = _as_str(account)
    if not a:
        raise PreconditionViolation("missing_field", {"field": field})
    return a


def require_amount(amount: Any, *, field: str = "amount", positive: bool = False) -> int:
    if isinstance(amount, bool):
        raise PreconditionViolation("invalid_amount", {"field": field, "value": amount})
    try:
        a = int(amount)
    except Exception:
        raise PreconditionViolation("invalid_amount", {"field": field, "value": repr(amount)}) from None
    if a < 0 or (positive and a == 0):
        raise PreconditionViolation("invalid_amount", {"field": field, "value": a})
    return a


def require_pairs(
    left: Sequence[Any],
    right: Sequence[Any],
    *,
    reason: str = "arity_mismatch",
    allow_empty: bool = False,
) -> None:
    """Shape check for parallel arrays."""
    if not isinstance(left, (list, tuple)) or not isinstance(right, (list, tuple)):
        raise PreconditionViolation(reason, {"left": type(left).__name__, "right": type(right).__name__})
    if len(left) != len(right):
        raise PreconditionViolation(reason, {"left": len(left), "right": len(right)})
    if not left and not allow_empty:
        raise PreconditionViolation(reason, {"left": 0, "right": 0})


@contextmanager
def atomic(state: Json) -> Iterator[Json]:
    """Restore `state` to its entry snapshot if the body raises."""
    snapshot = copy.deepcopy(dict(state))
    try:
        yield state
    except BaseException:
        state.clear()
        state.update(snapshot)
        raise


def transactional(fn: F) -> F:
    """Run a `fn(state, ...)` transition under `atomic(state)`."""

    @functools.wraps(fn)
    def _wrapped(state: Json, *args: Any, **kwargs: Any) -> Any:
        with atomic(state):
            return fn(state, *args, **kwargs)

    return _wrapped  # type: ignore[return-value]


__all__ = [
    "Json",
    "atomic",
    "ensure_child",
    "ensure_root",
    "max_rush",
    "min_commitment",
    "params",
    "require_account",
    "require_amount",
    "require_pairs",
    "transactional",
]
