# src/hookledger/runtime/sqlite_store.py
from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator

Json = Dict[str, Any]


def _canon_json(obj: Any) -> str:
    """Canonical JSON encoding. Unknown types fail instead of being coerced."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class SqliteLedgerStore:
    """Single-row ledger snapshot in a SQLite file.

    Never shares connections across calls, so it is safe from any thread.
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str) -> None:
        self.path = str(path)

    def _connect(self) -> sqlite3.Connection:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        con = sqlite3.connect(self.path, timeout=30.0, isolation_level=None, check_same_thread=False)
        con.row_factory = sqlite3.Row
        con.execute("PRAGMA journal_mode=WAL;")
        con.execute("PRAGMA synchronous=FULL;")
        return con

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    def init_schema(self) -> None:
        with self.connection() as con:
            con.execute(
                "CREATE TABLE IF NOT EXISTS ledger_state ("
                "id INTEGER PRIMARY KEY CHECK (id = 1), "
                "schema_version INTEGER NOT NULL, "
                "state_json TEXT NOT NULL, "
                "updated_seq INTEGER NOT NULL);"
            )

    def exists(self) -> bool:
        with self.connection() as con:
            row = con.execute("SELECT 1 FROM ledger_state WHERE id=1;").fetchone()
            return row is not None

    def read(self) -> Json:
        with self.connection() as con:
            row = con.execute("SELECT state_json FROM ledger_state WHERE id=1;").fetchone()
        if row is None:
            return {}
        st = json.loads(str(row["state_json"]))
        if not isinstance(st, dict):
            raise ValueError("persisted ledger state is not a JSON object")
        return st

    def write(self, state: Json) -> None:
        blob = _canon_json(state)
        with self.connection() as con:
            con.execute("BEGIN IMMEDIATE;")
            try:
                con.execute(
                    "INSERT INTO ledger_state(id, schema_version, state_json, updated_seq) VALUES (1, ?, ?, 1) "
                    "ON CONFLICT(id) DO UPDATE SET state_json=excluded.state_json, "
                    "schema_version=excluded.schema_version, updated_seq=ledger_state.updated_seq + 1;",
                    (self.SCHEMA_VERSION, blob),
                )
                con.execute("COMMIT;")
            except Exception:
                con.execute("ROLLBACK;")
                raise


__all__ = ["SqliteLedgerStore"]
