# src/hookledger/ledger/roles.py
from __future__ import annotations

"""Central role registry with owner fallback.

Layout:
  state["roles"] = {
    "owner": "<account>",
    "registry": {"<role>": ["<account>", ...]},
  }

A role with no holders is "unset": the owner is then authorized in its place.
Once a role has holders, only they are authorized for it.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from hookledger.ledger.constants import ROLE_ADMIN, ROLES
from hookledger.ledger.errors import Forbidden, PreconditionViolation
from hookledger.ledger.state import _as_list, _as_str, ensure_child, ensure_root, require_account, transactional

Json = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class AuthzVerdict:
    ok: bool
    reason: str
    details: Dict[str, Any]

    @staticmethod
    def allow(reason: str = "ok", details: Optional[Dict[str, Any]] = None) -> "AuthzVerdict":
        return AuthzVerdict(True, reason, details or {})

    @staticmethod
    def deny(reason: str, details: Optional[Dict[str, Any]] = None) -> "AuthzVerdict":
        return AuthzVerdict(False, reason, details or {})


def _uniq_strs(xs: Any) -> List[str]:
    out: List[str] = []
    seen: set[str] = set()
    for it in _as_list(xs):
        s = _as_str(it)
        if s and s not in seen:
            seen.add(s)
            out.append(s)
    return out


def _norm_role(role: Any) -> str:
    r = _as_str(role).lower().replace("-", "_")
    if r not in ROLES:
        raise PreconditionViolation("unknown_role", {"role": role})
    return r


def owner_of(state: Json) -> str:
    return _as_str(ensure_root(state, "roles").get("owner"))


def role_holders(state: Json, role: str) -> List[str]:
    registry = ensure_child(ensure_root(state, "roles"), "registry")
    return _uniq_strs(registry.get(role))


def roles_of(state: Json, account: Any) -> List[str]:
    a = _as_str(account)
    return [r for r in ROLES if a and a in role_holders(state, r)]


def resolve_authorized(state: Json, role: str, caller: Any) -> AuthzVerdict:
    """Single authorization decision: registry role first, owner when unset."""
    c = _as_str(caller)
    if not c:
        return AuthzVerdict.deny("missing_caller", {"role": role})

    holders = role_holders(state, role)
    if holders:
        if c in holders:
            return AuthzVerdict.allow("role_holder", {"role": role})
        return AuthzVerdict.deny("role_required", {"role": role, "caller": c})

    owner = owner_of(state)
    if owner and c == owner:
        return AuthzVerdict.allow("owner_fallback", {"role": role})
    return AuthzVerdict.deny("role_required", {"role": role, "caller": c, "role_unset": True})


def require_role(state: Json, role: str, caller: Any) -> str:
    verdict = resolve_authorized(state, role, caller)
    if not verdict.ok:
        raise Forbidden("role_required", verdict.details)
    return _as_str(caller)


def require_owner(state: Json, caller: Any) -> str:
    c = _as_str(caller)
    owner = owner_of(state)
    if not owner or c != owner:
        raise Forbidden("owner_required", {"caller": c})
    return c


@transactional
def set_owner(state: Json, caller: Any, new_owner: Any) -> Json:
    """Transfer ownership. Bootstrap (no owner yet) is open to anyone."""
    new = require_account(new_owner, field="owner")
    roles = ensure_root(state, "roles")
    prev = owner_of(state)
    if prev:
        require_owner(state, caller)
    roles["owner"] = new
    return {"applied": "OWNER_SET", "owner": new, "previous": prev}


@transactional
def grant_role(state: Json, caller: Any, role: Any, account: Any) -> Json:
    r = _norm_role(role)
    a = require_account(account)
    require_role(state, ROLE_ADMIN, caller)

    registry = ensure_child(ensure_root(state, "roles"), "registry")
    holders = role_holders(state, r)
    deduped = a in holders
    if not deduped:
        holders.append(a)
    registry[r] = holders
    return {"applied": "ROLE_GRANT", "role": r, "account": a, "deduped": deduped}


@transactional
def revoke_role(state: Json, caller: Any, role: Any, account: Any) -> Json:
    r = _norm_role(role)
    a = require_account(account)
    require_role(state, ROLE_ADMIN, caller)

    registry = ensure_child(ensure_root(state, "roles"), "registry")
    holders = role_holders(state, r)
    registry[r] = [h for h in holders if h != a]
    return {"applied": "ROLE_REVOKE", "role": r, "account": a, "deduped": a not in holders}


__all__ = [
    "AuthzVerdict",
    "grant_role",
    "owner_of",
    "require_owner",
    "require_role",
    "resolve_authorized",
    "revoke_role",
    "role_holders",
    "roles_of",
    "set_owner",
]
