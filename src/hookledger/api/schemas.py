from __future__ import annotations

"""Pydantic request schemas for the public API.

These exist only for HTTP input validation; the ledger re-validates every
field it consumes.
"""

from typing import Any, Dict

from pydantic import BaseModel, Field


class TxSubmitRequest(BaseModel):
    tx_type: str = Field(..., min_length=1, description="Transaction type, e.g. REWARD_WITHDRAW")
    signer: str = Field(..., min_length=1, description="Caller account")
    payload: Dict[str, Any] = Field(default_factory=dict)
    value: int = Field(default=0, ge=0, description="Must be 0 over HTTP; value-bearing calls are in-process only")
    nonce: int = Field(default=0, ge=0, description="Next nonce for the signer (last accepted + 1)")
    sig: str = Field(default="", description="Ed25519 signature over the canonical envelope, hex or base64")

    model_config = {"extra": "forbid"}
