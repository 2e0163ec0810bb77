# src/hookledger/runtime/executor.py
from __future__ import annotations

import copy
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from hookledger.config import LedgerConfig, load_ledger_config
from hookledger.ledger import accounts, roles
from hookledger.ledger.custody import ReceiveHook
from hookledger.ledger.errors import LedgerError
from hookledger.log import log_event
from hookledger.metrics import inc_counter, set_gauge
from hookledger.runtime.dispatch import apply_tx
from hookledger.runtime.sigverify import admit_signed_tx
from hookledger.runtime.sqlite_store import SqliteLedgerStore
from hookledger.runtime.tx import ApplyContext, TxEnvelope

Json = Dict[str, Any]

logger = logging.getLogger("hookledger.executor")


class ExecutorError(RuntimeError):
    pass


class LedgerExecutor:
    """Serial executor for ledger transactions.

    One call at a time: `apply` holds a re-entrant lock for the whole
    transition, so the admission order is the only ordering there is. A
    receiver callback running on the same thread may submit nested calls;
    those are persisted with the outermost call, never on their own.
    """

    def __init__(
        self,
        *,
        config: LedgerConfig,
        clock: Callable[[], float] = time.time,
        store: Optional[SqliteLedgerStore] = None,
    ) -> None:
        self.config = config
        self._clock = clock
        self._lock = threading.RLock()
        self._receivers: Dict[str, ReceiveHook] = {}
        self._seq = 0
        self._depth = 0

        if store is None and str(config.db_path or "").strip():
            store = SqliteLedgerStore(path=config.db_path)
        self._store = store

        if self._store is not None:
            self._store.init_schema()
            self.state: Json = self._store.read() if self._store.exists() else self._initial_state()
            # guards only mean something while a withdrawal is running
            self.state.pop("guards", None)
        else:
            self.state = self._initial_state()

        st_ledger_id = str(self.state.get("ledger_id") or "").strip()
        if st_ledger_id and st_ledger_id != config.ledger_id:
            raise ExecutorError(
                f"ledger_id mismatch: db={st_ledger_id!r} executor={config.ledger_id!r}. Refuse to start."
            )

        self._sync_params()
        self._persist()

    def _initial_state(self) -> Json:
        return {"ledger_id": self.config.ledger_id, "params": {}}

    def _sync_params(self) -> None:
        self.state["ledger_id"] = self.config.ledger_id
        params = self.state.setdefault("params", {})
        params["min_commitment"] = int(self.config.min_commitment)
        params["max_rush"] = int(self.config.max_rush)
        params["epoch_seconds"] = int(self.config.epoch_seconds)

        owner = str(self.config.owner or "").strip()
        if owner and not roles.owner_of(self.state):
            roles.set_owner(self.state, owner, owner)
            log_event(logger, "owner_bootstrapped", owner=owner)

        owner_pk = str(self.config.owner_pubkey or "").strip()
        if owner and owner_pk and not accounts.active_keys(self.state, owner):
            accounts.add_key(self.state, owner, owner_pk)
            log_event(logger, "owner_key_registered", owner=owner)

    def _persist(self) -> None:
        if self._store is not None:
            self._store.write({k: v for k, v in self.state.items() if k != "guards"})

    # ---- clock / context ----

    def current_epoch(self) -> int:
        return int(self._clock()) // int(self.config.epoch_seconds)

    def _context(self) -> ApplyContext:
        return ApplyContext(epoch=self.current_epoch(), receivers=dict(self._receivers))

    # ---- programmable receivers ----

    def register_receiver(self, account: str, hook: ReceiveHook) -> None:
        self._receivers[str(account).strip()] = hook

    def unregister_receiver(self, account: str) -> None:
        self._receivers.pop(str(account).strip(), None)

    # ---- reads ----

    def read_state(self) -> Json:
        with self._lock:
            return copy.deepcopy(self.state)

    # ---- writes ----

    def apply(self, env: Any, *, signed: bool = False) -> Json:
        """Apply one envelope. Raises LedgerError; state is unchanged on failure.

        `signed=True` admits the envelope as an outside submission first
        (signature, nonce, no attached value) and consumes the signer's nonce
        with the transition.

        Only the outermost call persists. A call nested from a receiver
        commits or rolls back together with the call that triggered it.
        """
        tx = TxEnvelope.from_json(env)
        with self._lock:
            outer = self._depth == 0
            seq0 = self._seq
            snapshot = copy.deepcopy(self.state) if outer and self._store is not None else None
            ctx = self._context()

            self._depth += 1
            try:
                if signed:
                    admit_signed_tx(self.state, tx)
                receipt = apply_tx(self.state, tx, ctx)
                if signed:
                    accounts.bump_nonce(self.state, tx.signer)
            except LedgerError as e:
                if outer:
                    self._seq = seq0
                inc_counter("tx_rejected_total")
                inc_counter(f"tx_rejected_{e.code}_total")
                log_event(
                    logger,
                    "tx_rejected",
                    level=logging.WARNING,
                    tx_type=tx.tx_type,
                    signer=tx.signer,
                    epoch=ctx.epoch,
                    nested=not outer,
                    code=e.code,
                    reason=e.reason,
                    details=e.details,
                )
                raise
            finally:
                self._depth -= 1

            self._seq += 1
            if outer and snapshot is not None:
                try:
                    self._persist()
                except Exception as e:
                    self.state = snapshot
                    self._seq = seq0
                    inc_counter("persist_failed_total")
                    log_event(logger, "persist_failed", level=logging.ERROR, tx_type=tx.tx_type, error=str(e))
                    raise

            inc_counter("tx_applied_total")
            set_gauge("last_applied_seq", self._seq)
            log_event(
                logger,
                "tx_applied",
                tx_type=tx.tx_type,
                signer=tx.signer,
                epoch=ctx.epoch,
                seq=self._seq,
                nested=not outer,
                applied=receipt.get("applied"),
            )
            return receipt

    def submit(self, env: Any, *, signed: bool = False) -> Json:
        """Like `apply`, but reports ledger failures as a rejected receipt."""
        try:
            return {"ok": True, "receipt": self.apply(env, signed=signed)}
        except LedgerError as e:
            return {"ok": False, "error": e.to_json()}

    @classmethod
    def from_env(cls) -> "LedgerExecutor":
        return cls(config=load_ledger_config())


__all__ = ["ExecutorError", "LedgerExecutor"]
