# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from todolingo.core.state import AppState
from todolingo.llm.offline import OfflineCompletionGateway
from todolingo.storage.kv import MemoryStorage
from todolingo.storage.store import PersistenceStore

from .fakes import FakeCompletionGateway


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="todolingo-test",
        log_level="DEBUG",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        storage_path=tmp_path / "local_storage.json",
        storage_quota_bytes=None,
        # OpenAI / gateway
        openai_api_key=None,
        openai_base_url=None,
        openai_model="gpt-4o-mini",
        gateway_mode="direct",
        proxy_url="http://proxy.test",
        request_timeout_seconds=None,
        server_host="127.0.0.1",
        server_port=8787,
    )


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def store(storage: MemoryStorage) -> PersistenceStore:
    return PersistenceStore(storage)


@pytest.fixture()
def gateway() -> FakeCompletionGateway:
    return FakeCompletionGateway()


@pytest.fixture()
def state(settings: SimpleNamespace, store: PersistenceStore, gateway: FakeCompletionGateway) -> AppState:
    """
    AppState wired with deterministic fakes.

    No API key is set, so active_gateway() is the offline demo gateway until a
    test sets state.api_key.
    """
    return AppState(
        settings=settings,
        store=store,
        gateway=gateway,
        demo_gateway=OfflineCompletionGateway(),
    )


@pytest.fixture()
def logged_in(state: AppState) -> AppState:
    from todolingo.core import auth

    auth.register(state, "alice", "secret1")
    return state
