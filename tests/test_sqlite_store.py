# tests/test_sqlite_store.py
from __future__ import annotations

from pathlib import Path

from hookledger.runtime.sqlite_store import SqliteLedgerStore


def test_empty_store_reads_empty_state(tmp_path: Path) -> None:
    db = SqliteLedgerStore(path=str(tmp_path / "nested" / "ledger.db"))
    db.init_schema()
    assert db.exists() is False
    assert db.read() == {}


def test_write_read_keeps_big_integers(tmp_path: Path) -> None:
    db = SqliteLedgerStore(path=str(tmp_path / "ledger.db"))
    db.init_schema()
    st = {"rewards": {"currencies": {"NATIVE": {"acc": 7 * 10**36 + 1}}}, "commitments": {"x": None}}
    db.write(st)
    assert db.exists() is True
    assert db.read() == st


def test_writes_replace_the_single_row(tmp_path: Path) -> None:
    db = SqliteLedgerStore(path=str(tmp_path / "ledger.db"))
    db.init_schema()
    db.write({"v": 1})
    db.write({"v": 2})

    with db.connection() as con:
        rows = con.execute("SELECT state_json, updated_seq FROM ledger_state;").fetchall()
        jm = con.execute("PRAGMA journal_mode;").fetchone()[0]
    assert len(rows) == 1
    assert int(rows[0]["updated_seq"]) == 2
    assert str(jm).lower() == "wal"
    assert db.read() == {"v": 2}
