# src/todolingo/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..storage.models import CurrentUser
from ..storage.store import PersistenceStore
from .ports import CompletionGateway


@dataclass
class AppState:
    """
    Explicit application state, passed to every service and command.

    Built once by cli.bootstrap.create_initial_state(); current_user is set on
    login/register and cleared on logout.
    """

    # Store Settings on the state for easy access in other modules later.
    settings: object

    store: PersistenceStore
    gateway: CompletionGateway
    demo_gateway: CompletionGateway

    current_user: CurrentUser | None = None
    api_key: str | None = None

    @property
    def demo_mode(self) -> bool:
        return not self.api_key

    def active_gateway(self) -> CompletionGateway:
        return self.demo_gateway if self.demo_mode else self.gateway
