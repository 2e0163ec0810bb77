from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health(request: Request) -> Dict[str, Any]:
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        return {"ok": True, "ready": False}
    return {
        "ok": True,
        "ready": True,
        "ledger_id": ex.config.ledger_id,
        "epoch": ex.current_epoch(),
    }
