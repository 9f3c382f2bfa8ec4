# tests/test_bootstrap.py

from __future__ import annotations

import logging

import pytest

from todolingo.cli.bootstrap import create_initial_state, shutdown_state
from todolingo.config import Settings
from todolingo.core import auth, todos
from todolingo.errors import StorageError
from todolingo.logging_setup import _ApiKeyRedactionFilter, redact_api_keys

from .fakes import FakeCompletionGateway


def test_settings_from_env(monkeypatch, tmp_path) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("TODOLINGO_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("TODOLINGO_GATEWAY_MODE", "Proxy")
    monkeypatch.setenv("TODOLINGO_STORAGE_QUOTA_BYTES", "0")
    monkeypatch.setenv("TODOLINGO_SERVER_PORT", "not-a-port")
    monkeypatch.setenv("TODOLINGO_OPENAI_API_KEY", "")

    s = Settings.from_env()

    assert s.storage_path == tmp_path / "local_storage.json"
    assert s.gateway_mode == "proxy"
    assert s.storage_quota_bytes is None
    assert s.server_port == 8787
    assert s.openai_api_key is None


def test_unknown_gateway_mode_falls_back_to_direct(monkeypatch) -> None:
    monkeypatch.setenv("TODOLINGO_GATEWAY_MODE", "carrier-pigeon")
    assert Settings.from_env().gateway_mode == "direct"


@pytest.mark.asyncio
async def test_state_survives_restart(settings) -> None:
    gateway = FakeCompletionGateway()
    state = create_initial_state(settings=settings, gateway=gateway)
    assert state.demo_mode
    auth.register(state, "alice", "secret1")
    auth.set_api_key(state, "sk-saved")
    todos.add_task(state, "Buy milk")
    await shutdown_state(state)
    assert gateway.closed

    settings.openai_api_key = "sk-from-env"
    again = create_initial_state(settings=settings, gateway=FakeCompletionGateway())

    assert again.current_user is not None and again.current_user.username == "alice"
    assert again.api_key == "sk-saved"
    assert [t.title for t in todos.list_tasks(again)] == ["Buy milk"]


def test_env_key_seeds_demo_off(settings) -> None:
    settings.openai_api_key = "sk-from-env"
    state = create_initial_state(settings=settings, gateway=FakeCompletionGateway())
    assert state.api_key == "sk-from-env"
    assert not state.demo_mode


def test_corrupt_store_file_raises(settings) -> None:
    settings.storage_path.write_text("[1, 2", "utf-8")
    with pytest.raises(StorageError):
        create_initial_state(settings=settings, gateway=FakeCompletionGateway())


def test_log_records_never_carry_full_keys() -> None:
    record = logging.LogRecord("todolingo.test", logging.INFO, __file__, 1, "key=%s", ("sk-abcdef123456",), None)

    assert _ApiKeyRedactionFilter().filter(record)
    assert record.getMessage() == "key=sk-...3456"
    assert redact_api_keys("no key here") == "no key here"
