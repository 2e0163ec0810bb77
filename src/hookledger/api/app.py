from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI

from hookledger.api.errors import ApiError, api_error_handler
from hookledger.api.routes_public import public_router
from hookledger.config import load_ledger_config
from hookledger.log import configure_structured_logging, log_event
from hookledger.runtime.executor import LedgerExecutor

logger = logging.getLogger("hookledger.api")


def build_executor() -> LedgerExecutor:
    """Build the executor for the API runtime.

    Kept as a module-level function so tests can monkeypatch
    `hookledger.api.app.build_executor`.
    """
    cfg = load_ledger_config()
    configure_structured_logging(cfg.log_level)
    ex = LedgerExecutor(config=cfg)
    log_event(logger, "executor_ready", ledger_id=cfg.ledger_id, mode=cfg.mode, db_path=cfg.db_path)
    return ex


def create_app(*, executor: Optional[LedgerExecutor] = None, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    executor:
      - explicit executor wins (tests, embedding)
    boot_runtime:
      - True (default): load config from the environment and build an executor
      - False: no executor; ledger routes answer 500 not_ready
    """
    if executor is None and boot_runtime:
        executor = build_executor()

    mode = executor.config.mode if executor is not None else "dev"

    # Disable docs in production.
    if mode == "prod":
        app = FastAPI(title="hookledger API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="hookledger API")

    app.state.executor = executor

    app.add_exception_handler(ApiError, api_error_handler)
    app.include_router(public_router)

    return app
