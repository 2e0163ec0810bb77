# src/hookledger/runtime/tx.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from hookledger.ledger.custody import ReceiveHook

Json = Dict[str, Any]


@dataclass(frozen=True)
class TxEnvelope:
    """One call against the ledgers.

    `signer` is the caller identity; `value` is the amount attached to the
    call, in the currency the payload names (native when it names none).
    In-process callers are trusted for both. `sig` is only checked for
    envelopes admitted from outside (see runtime.sigverify).
    """

    tx_type: str
    signer: str
    payload: Dict[str, Any] = field(default_factory=dict)
    value: int = 0
    nonce: int = 0
    sig: str = ""

    @staticmethod
    def from_json(j: Any) -> "TxEnvelope":
        if isinstance(j, TxEnvelope):
            return j
        if not isinstance(j, dict):
            j = dict(j)  # type: ignore[arg-type]
        return TxEnvelope(
            tx_type=str(j.get("tx_type", "")),
            signer=str(j.get("signer", "")),
            payload=dict(j.get("payload", {}) or {}),
            value=int(j.get("value", 0) or 0),
            nonce=int(j.get("nonce", 0) or 0),
            sig=str(j.get("sig") or ""),
        )

    def to_json(self) -> Json:
        return {
            "tx_type": self.tx_type,
            "signer": self.signer,
            "payload": self.payload,
            "value": self.value,
            "nonce": self.nonce,
            "sig": self.sig,
        }


@dataclass(frozen=True)
class ApplyContext:
    """Ambient facts the envelope does not carry."""

    epoch: int = 0
    receivers: Mapping[str, ReceiveHook] = field(default_factory=dict)

    def receiver_for(self, account: str) -> Optional[ReceiveHook]:
        return self.receivers.get(str(account or "").strip())
