# tests/test_roles_authz.py
from __future__ import annotations

import pytest

from hookledger.ledger import rewards, roles
from hookledger.ledger.errors import Forbidden, PreconditionViolation


def test_no_owner_means_privileged_calls_are_denied() -> None:
    st: dict = {}
    with pytest.raises(Forbidden) as ei:
        rewards.mint(st, "anyone", "A", 1)
    assert ei.value.reason == "role_required"
    assert ei.value.details["role_unset"] is True


def test_owner_bootstrap_and_transfer() -> None:
    st: dict = {}
    r = roles.set_owner(st, "alice", "alice")
    assert r == {"applied": "OWNER_SET", "owner": "alice", "previous": ""}

    with pytest.raises(Forbidden) as ei:
        roles.set_owner(st, "mallory", "mallory")
    assert ei.value.reason == "owner_required"

    roles.set_owner(st, "alice", "bob")
    assert roles.owner_of(st) == "bob"


def test_registry_holders_replace_owner_fallback() -> None:
    st: dict = {}
    roles.set_owner(st, "owner", "owner")

    v = roles.resolve_authorized(st, "settlement", "owner")
    assert v.ok and v.reason == "owner_fallback"

    roles.grant_role(st, "owner", "settlement", "s1")
    assert roles.resolve_authorized(st, "settlement", "s1").reason == "role_holder"
    assert not roles.resolve_authorized(st, "settlement", "owner").ok

    roles.revoke_role(st, "owner", "settlement", "s1")
    assert roles.role_holders(st, "settlement") == []
    assert roles.resolve_authorized(st, "settlement", "owner").ok


def test_admin_role_governs_grants() -> None:
    st: dict = {}
    roles.set_owner(st, "owner", "owner")

    with pytest.raises(Forbidden):
        roles.grant_role(st, "mallory", "settlement", "mallory")

    roles.grant_role(st, "owner", "admin", "adm")
    with pytest.raises(Forbidden):
        roles.grant_role(st, "owner", "settlement", "s1")

    r = roles.grant_role(st, "adm", "settlement", "s1")
    assert r["deduped"] is False
    r = roles.grant_role(st, "adm", "settlement", "s1")
    assert r["deduped"] is True
    assert roles.role_holders(st, "settlement") == ["s1"]


def test_unknown_role_and_blank_caller() -> None:
    st: dict = {}
    roles.set_owner(st, "owner", "owner")
    with pytest.raises(PreconditionViolation) as ei:
        roles.grant_role(st, "owner", "superuser", "x")
    assert ei.value.reason == "unknown_role"

    v = roles.resolve_authorized(st, "admin", "")
    assert not v.ok and v.reason == "missing_caller"


def test_role_names_are_normalized() -> None:
    st: dict = {}
    roles.set_owner(st, "owner", "owner")
    r = roles.grant_role(st, "owner", "Fee-Publisher", "pub")
    assert r["role"] == "fee_publisher"
    assert roles.role_holders(st, "fee_publisher") == ["pub"]
