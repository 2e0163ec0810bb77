# tests/test_commitments.py
from __future__ import annotations

import pytest

from hookledger.ledger import commitments, custody, epochs, roles
from hookledger.ledger.constants import COMMITMENTS, NATIVE_CURRENCY
from hookledger.ledger.errors import Forbidden, PreconditionViolation, StateConflict

OWNER = "owner"


def _state() -> dict:
    st: dict = {}
    roles.set_owner(st, OWNER, OWNER)
    return st


def _create(st: dict, account: str = "A", *, value: int = 100, rush: int = 5, epoch: int = 3, cap: int = 0) -> dict:
    return commitments.create_commitment(
        st,
        account,
        value=value,
        max_spend_per_epoch=cap,
        min_rate=0,
        rush=rush,
        epoch=epoch,
    )


def test_settle_noop_then_insufficient_commitment() -> None:
    st = _state()
    commitments.create_commitment(st, "A", value=1, max_spend_per_epoch=100, min_rate=0, rush=5, epoch=3)

    r = commitments.settle_epoch(st, OWNER, 3, ["A"], [0])
    assert r["results"] == [{"account": "A", "consumed": 0, "promoted": False, "balance": 1}]

    with pytest.raises(StateConflict) as ei:
        commitments.settle_epoch(st, OWNER, 4, ["A"], [40])
    assert ei.value.reason == "insufficient_commitment"

    # the failed call did not burn epoch 4
    assert not epochs.is_epoch_processed(st, COMMITMENTS, 4)
    commitments.settle_epoch(st, OWNER, 4, ["A"], [1])
    assert commitments.commitment_of(st, "A")["balance"] == 0


def test_create_records_and_takes_custody() -> None:
    st = _state()
    r = _create(st, value=100, rush=5, epoch=3, cap=25)
    rec = r["commitment"]
    assert rec["exists"] is True
    assert rec["balance"] == 100
    assert rec["max_spend_per_epoch"] == 25
    assert rec["created_epoch"] == 3
    assert rec["pending_rate"] is None
    assert custody.custody_of(st, COMMITMENTS, NATIVE_CURRENCY) == 100
    assert commitments.liabilities(st) == 100
    assert commitments.stats(st)["committed_total"] == 100


def test_create_rejections() -> None:
    st = _state()
    _create(st)
    with pytest.raises(StateConflict) as ei:
        _create(st)
    assert ei.value.reason == "already_committed"

    with pytest.raises(StateConflict) as ei:
        _create(st, "B", rush=101)
    assert ei.value.reason == "rush_out_of_range"

    st["params"] = {"min_commitment": 10}
    with pytest.raises(StateConflict) as ei:
        _create(st, "C", value=9)
    assert ei.value.reason == "below_minimum"


def test_drained_commitment_is_still_committed() -> None:
    st = _state()
    _create(st, value=10)
    commitments.settle_epoch(st, OWNER, 3, ["A"], [10])

    assert commitments.has_commitment(st, "A")
    assert commitments.active_commitments(st) == []
    with pytest.raises(StateConflict):
        _create(st, value=10)

    commitments.top_up(st, "A", value=5)
    assert commitments.commitment_of(st, "A")["balance"] == 5


def test_top_up_requires_existing_commitment() -> None:
    st = _state()
    with pytest.raises(StateConflict) as ei:
        commitments.top_up(st, "A", value=5)
    assert ei.value.reason == "no_commitment"

    _create(st, value=10)
    r = commitments.top_up(st, "A", value=5)
    assert r["balance"] == 15
    assert commitments.commitment_of(st, "A")["deposited"] == 15
    assert custody.custody_of(st, COMMITMENTS, NATIVE_CURRENCY) == 15


def test_pending_rate_waits_for_effective_epoch() -> None:
    st = _state()
    _create(st, rush=5, epoch=3)
    commitments.update_rate(st, "A", new_rush=9, effective_epoch=5, epoch=3)

    rec = commitments.commitment_of(st, "A")
    assert rec["rush"] == 5
    assert rec["pending_rate"] == 9
    assert rec["last_updated_epoch"] == 3

    r = commitments.settle_epoch(st, OWNER, 4, ["A"], [0])
    assert r["results"][0]["promoted"] is False
    assert commitments.commitment_of(st, "A")["rush"] == 5

    r = commitments.settle_epoch(st, OWNER, 5, ["A"], [0])
    assert r["results"][0]["promoted"] is True
    rec = commitments.commitment_of(st, "A")
    assert rec["rush"] == 9
    assert rec["pending_rate"] is None
    assert rec["last_updated_epoch"] == 5


def test_pending_rate_not_promoted_in_the_epoch_it_was_set() -> None:
    st = _state()
    _create(st, rush=5, epoch=1)
    commitments.update_rate(st, "A", new_rush=7, effective_epoch=2, epoch=2)

    r = commitments.settle_epoch(st, OWNER, 2, ["A"], [0])
    assert r["results"][0]["promoted"] is False

    r = commitments.settle_epoch(st, OWNER, 3, ["A"], [0])
    assert r["results"][0]["promoted"] is True
    assert commitments.commitment_of(st, "A")["rush"] == 7


def test_update_rate_validates() -> None:
    st = _state()
    with pytest.raises(StateConflict) as ei:
        commitments.update_rate(st, "A", new_rush=1, effective_epoch=1, epoch=1)
    assert ei.value.reason == "no_commitment"

    _create(st)
    with pytest.raises(StateConflict) as ei:
        commitments.update_rate(st, "A", new_rush=1000, effective_epoch=1, epoch=1)
    assert ei.value.reason == "rush_out_of_range"


def test_epoch_settles_at_most_once() -> None:
    st = _state()
    _create(st)
    commitments.settle_epoch(st, OWNER, 3, ["A"], [10])
    with pytest.raises(StateConflict) as ei:
        commitments.settle_epoch(st, OWNER, 3, ["A"], [10])
    assert ei.value.reason == "epoch_already_processed"
    assert commitments.commitment_of(st, "A")["balance"] == 90
    assert epochs.processed_epochs(st, COMMITMENTS) == [3]


def test_settle_consumption_and_stats() -> None:
    st = _state()
    _create(st, "A", value=100)
    _create(st, "B", value=50)

    r = commitments.settle_epoch(st, OWNER, 3, ["A", "B"], [30, 50])
    assert r["consumed_total"] == 80
    assert commitments.commitment_of(st, "A")["consumed"] == 30
    assert commitments.stats(st) == {"committed_total": 150, "consumed_total": 80}
    assert commitments.liabilities(st) == 70
    # consumption does not move custody by itself
    assert custody.custody_of(st, COMMITMENTS, NATIVE_CURRENCY) == 150


def test_settle_unknown_account() -> None:
    st = _state()
    r = commitments.settle_epoch(st, OWNER, 1, ["ghost"], [0])
    assert r["results"][0]["balance"] == 0

    with pytest.raises(StateConflict) as ei:
        commitments.settle_epoch(st, OWNER, 2, ["ghost"], [1])
    assert ei.value.reason == "insufficient_commitment"


def test_settle_shape_and_role() -> None:
    st = _state()
    with pytest.raises(PreconditionViolation) as ei:
        commitments.settle_epoch(st, OWNER, 1, ["A"], [1, 2])
    assert ei.value.reason == "arity_mismatch"

    with pytest.raises(PreconditionViolation):
        commitments.settle_epoch(st, OWNER, 1, [], [])

    with pytest.raises(Forbidden):
        commitments.settle_epoch(st, "A", 1, ["A"], [0])

    with pytest.raises(PreconditionViolation) as ei:
        commitments.settle_epoch(st, OWNER, -1, ["A"], [0])
    assert ei.value.reason == "invalid_epoch"
