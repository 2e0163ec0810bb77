# src/hookledger/config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from hookledger.ledger.constants import DEFAULT_MAX_RUSH, DEFAULT_MIN_COMMITMENT

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


@dataclass(frozen=True)
class LedgerConfig:
    ledger_id: str
    mode: str  # "dev" | "testnet" | "prod"

    # Account that administers roles until the registry is populated.
    owner: str

    # Ed25519 key registered for the owner at boot, so it can sign submissions.
    owner_pubkey: str

    # SQLite snapshot file. Empty string keeps state in memory only.
    db_path: str

    epoch_seconds: int
    min_commitment: int
    max_rush: int

    api_host: str
    api_port: int

    log_level: str


_ALLOWED_MODES = {"dev", "testnet", "prod"}


def validate_ledger_config(cfg: LedgerConfig) -> None:
    """Fail-fast validation for operator config."""

    if not isinstance(cfg.ledger_id, str) or not cfg.ledger_id.strip():
        raise ValueError("ledger_id must be a non-empty string")

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    if mode == "prod" and not str(cfg.owner or "").strip():
        # Without an owner every privileged call is denied.
        raise ValueError("owner must be set in prod mode")

    if str(cfg.owner_pubkey or "").strip() and not str(cfg.owner or "").strip():
        raise ValueError("owner_pubkey requires owner")

    if int(cfg.epoch_seconds) <= 0:
        raise ValueError(f"epoch_seconds must be > 0; got: {cfg.epoch_seconds}")

    if int(cfg.min_commitment) < 0:
        raise ValueError(f"min_commitment must be >= 0; got: {cfg.min_commitment}")

    if int(cfg.max_rush) < 0:
        raise ValueError(f"max_rush must be >= 0; got: {cfg.max_rush}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")


def default_ledger_config() -> LedgerConfig:
    return LedgerConfig(
        ledger_id="hookledger-dev",
        mode="dev",
        owner="",
        owner_pubkey="",
        db_path="./data/hookledger.db",
        epoch_seconds=600,
        min_commitment=DEFAULT_MIN_COMMITMENT,
        max_rush=DEFAULT_MAX_RUSH,
        api_host="127.0.0.1",
        api_port=8080,
        log_level="INFO",
    )


def ledger_config_from_dict(raw: Json) -> LedgerConfig:
    d = default_ledger_config()
    cfg = LedgerConfig(
        ledger_id=_as_str(raw.get("ledger_id"), d.ledger_id),
        mode=_as_str(raw.get("mode"), d.mode).strip().lower(),
        owner=_as_str(raw.get("owner"), d.owner).strip(),
        owner_pubkey=_as_str(raw.get("owner_pubkey"), d.owner_pubkey).strip(),
        db_path=str(raw.get("db_path", d.db_path) or ""),
        epoch_seconds=_as_int(raw.get("epoch_seconds"), d.epoch_seconds),
        min_commitment=_as_int(raw.get("min_commitment"), d.min_commitment),
        max_rush=_as_int(raw.get("max_rush"), d.max_rush),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level).upper(),
    )
    validate_ledger_config(cfg)
    return cfg


def read_ledger_config_file(path: str) -> LedgerConfig:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("ledger config must be a JSON object")
    return ledger_config_from_dict(raw)


def _env_overrides() -> Json:
    out: Json = {}
    for key, name in (
        ("ledger_id", "HOOKLEDGER_LEDGER_ID"),
        ("mode", "HOOKLEDGER_MODE"),
        ("owner", "HOOKLEDGER_OWNER"),
        ("owner_pubkey", "HOOKLEDGER_OWNER_PUBKEY"),
        ("db_path", "HOOKLEDGER_DB_PATH"),
        ("epoch_seconds", "HOOKLEDGER_EPOCH_SECONDS"),
        ("min_commitment", "HOOKLEDGER_MIN_COMMITMENT"),
        ("max_rush", "HOOKLEDGER_MAX_RUSH"),
        ("api_host", "HOOKLEDGER_API_HOST"),
        ("api_port", "HOOKLEDGER_API_PORT"),
        ("log_level", "HOOKLEDGER_LOG_LEVEL"),
    ):
        v = os.environ.get(name)
        if v is not None:
            out[key] = v
    return out


def load_ledger_config(*, config_path: Optional[str] = None) -> LedgerConfig:
    """File (explicit path or HOOKLEDGER_CONFIG_PATH) first, then env overrides."""
    p = config_path or os.environ.get("HOOKLEDGER_CONFIG_PATH")
    raw: Json = {}
    if p:
        loaded = json.loads(Path(p).read_text(encoding="utf-8"))
        if not isinstance(loaded, dict):
            raise ValueError("ledger config must be a JSON object")
        raw.update(loaded)
    raw.update(_env_overrides())
    return ledger_config_from_dict(raw)


def apply_ledger_config_to_env(cfg: LedgerConfig) -> None:
    validate_ledger_config(cfg)
    os.environ["HOOKLEDGER_LEDGER_ID"] = cfg.ledger_id
    os.environ["HOOKLEDGER_MODE"] = (cfg.mode or "prod").strip().lower()
    os.environ["HOOKLEDGER_OWNER"] = cfg.owner
    os.environ["HOOKLEDGER_OWNER_PUBKEY"] = cfg.owner_pubkey
    os.environ["HOOKLEDGER_DB_PATH"] = cfg.db_path
    os.environ["HOOKLEDGER_EPOCH_SECONDS"] = str(int(cfg.epoch_seconds))
    os.environ["HOOKLEDGER_MIN_COMMITMENT"] = str(int(cfg.min_commitment))
    os.environ["HOOKLEDGER_MAX_RUSH"] = str(int(cfg.max_rush))
    os.environ["HOOKLEDGER_LOG_LEVEL"] = cfg.log_level
