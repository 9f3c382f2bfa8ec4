# src/todolingo/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage backends and completion transports swappable and makes
testing easier.
"""

from typing import Iterator, Protocol

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


class KeyValueStorage(Protocol):
    """String key-value store with local-storage semantics."""

    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> None: ...
    def remove_item(self, key: str) -> None: ...
    def keys(self) -> Iterator[str]: ...


class CompletionGateway(Protocol):
    """
    Translation and subtask generation backed by a hosted language model.

    Implementations raise GatewayError subclasses (see todolingo.errors).
    """

    async def translate(self, text: str, target_language: str, api_key: str) -> str: ...

    async def generate_subtasks(
            self,
            title: str,
            description: str,
            api_key: str,
            target_language: str = "English",
    ) -> list[str]: ...

    async def aclose(self) -> None: ...
