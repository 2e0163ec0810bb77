# tests/test_env.py
from __future__ import annotations

import os
from pathlib import Path

import pytest

from hookledger import env as env_mod


def test_dotenv_loaded_once_and_env_wins(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / ".env"
    p.write_text("HOOKLEDGER_TEST_A=from-file\nHOOKLEDGER_TEST_B=from-file\n", encoding="utf-8")

    monkeypatch.setattr(env_mod, "_LOADED", False)
    monkeypatch.setenv("HOOKLEDGER_TEST_B", "from-env")
    # register for teardown; load_dotenv writes os.environ directly
    monkeypatch.setenv("HOOKLEDGER_TEST_A", "")
    monkeypatch.delenv("HOOKLEDGER_TEST_A")

    assert env_mod.load_dotenv_if_present(str(p)) is True
    assert os.environ["HOOKLEDGER_TEST_A"] == "from-file"
    assert os.environ["HOOKLEDGER_TEST_B"] == "from-env"

    assert env_mod.load_dotenv_if_present(str(p)) is False


def test_missing_dotenv_is_fine(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(env_mod, "_LOADED", False)
    monkeypatch.setenv("HOOKLEDGER_DOTENV_PATH", str(tmp_path / "absent.env"))
    assert env_mod.load_dotenv_if_present() is False
