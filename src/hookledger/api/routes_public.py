from __future__ import annotations

from fastapi import APIRouter

from hookledger.api.routes_public_parts.health import router as health_router
from hookledger.api.routes_public_parts.ledgers import router as ledgers_router
from hookledger.api.routes_public_parts.metrics import router as metrics_router
from hookledger.api.routes_public_parts.tx import router as tx_router

public_router = APIRouter()

public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(ledgers_router, prefix="/v1", tags=["ledgers"])
public_router.include_router(tx_router, prefix="/v1", tags=["tx"])

# Ops
public_router.include_router(metrics_router, prefix="/v1", tags=["metrics"])
