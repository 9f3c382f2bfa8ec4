# src/todolingo/llm/offline.py

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

_SPANISH = {"spanish", "español"}
_FRENCH = {"french", "français"}


def _demo_subtasks(title: str, language: str) -> list[str]:
    lang = (language or "").strip().lower()
    if lang in _SPANISH:
        return [
            f'Investigar e informarse sobre "{title}"',
            f'Crear un plan o esquema para "{title}"',
            "Comenzar a trabajar en los componentes principales",
            "Revisar y probar el trabajo",
            f'Completar y finalizar "{title}"',
        ]
    if lang in _FRENCH:
        return [
            f'Rechercher et s\'informer sur "{title}"',
            f'Créer un plan ou un schéma pour "{title}"',
            "Commencer à travailler sur les composants principaux",
            "Réviser et tester le travail",
            f'Terminer et finaliser "{title}"',
        ]
    return [
        f'Research and gather information about "{title}"',
        f'Create a plan or outline for "{title}"',
        "Begin working on the main components",
        "Review and test the work",
        f'Complete and finalize "{title}"',
    ]


class OfflineCompletionGateway:
    """
    Offline deterministic gateway used for demos when no API key is configured.

    Behavior:
    - translate -> "[Demo: <language>] <text>"
    - generate_subtasks -> 5 templated subtasks in English, Spanish or French
    - the api_key argument is ignored, no network calls
    """

    async def translate(self, text: str, target_language: str, api_key: str = "") -> str:
        return f"[Demo: {target_language}] {text}"

    async def generate_subtasks(
        self,
        title: str,
        description: str = "",
        api_key: str = "",
        target_language: str = "English",
    ) -> list[str]:
        items = _demo_subtasks(title, target_language)
        logger.debug("Demo subtasks in %s: %d items", target_language, len(items))
        return items

    async def aclose(self) -> None:
        return
