from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Request

from hookledger.api.errors import ApiError
from hookledger.api.routes_public_parts.common import _executor
from hookledger.api.schemas import TxSubmitRequest
from hookledger.ledger.errors import LedgerError
from hookledger.log import log_event

router = APIRouter()

logger = logging.getLogger("hookledger.api")

Json = Dict[str, Any]


@router.post("/tx")
def tx_submit(request: Request, body: TxSubmitRequest) -> Json:
    """Admit a signed envelope, apply it synchronously and return its receipt.

    The envelope must be signed by an active key of `signer` with the next
    nonce and attach no value. Ledger failures map to HTTP status by failure class:
    precondition_violation 400, forbidden 403, state_conflict 409,
    custody_shortfall 422.
    """
    ex = _executor(request)
    try:
        receipt = ex.apply(body.model_dump(), signed=True)
    except LedgerError as e:
        log_event(logger, "api_tx_rejected", level=logging.INFO, tx_type=body.tx_type, code=e.code, reason=e.reason)
        raise ApiError.from_ledger_error(e) from None
    return {"ok": True, "receipt": receipt}
