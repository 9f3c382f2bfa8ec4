# src/todolingo/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (storage/gateways),
- restores the previous session and the saved API key,
- tears everything down again on exit.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.auth import restore_session
from ..core.ports import CompletionGateway
from ..core.state import AppState
from ..llm.gateway import build_gateway
from ..llm.offline import OfflineCompletionGateway
from ..storage.kv import JsonFileStorage
from ..storage.store import PersistenceStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.storage_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, gateway: CompletionGateway | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    storage = JsonFileStorage(
        settings.storage_path,
        quota_bytes=getattr(settings, "storage_quota_bytes", None),
    )
    store = PersistenceStore(storage)

    state = AppState(
        settings=settings,
        store=store,
        gateway=gateway if gateway is not None else build_gateway(settings),
        demo_gateway=OfflineCompletionGateway(),
    )

    # A key saved with /key wins over the env seed.
    state.api_key = store.get_api_key() or getattr(settings, "openai_api_key", None) or None
    if state.demo_mode:
        logger.info("No OpenAI API key configured: translation/subtasks run in demo mode.")

    restore_session(state)
    return state


async def shutdown_state(state: AppState) -> None:
    """Best-effort teardown (no exceptions should escape)."""
    for gw in (state.gateway, state.demo_gateway):
        try:
            await gw.aclose()
        except Exception:
            logger.debug("Gateway close failed.", exc_info=True)
