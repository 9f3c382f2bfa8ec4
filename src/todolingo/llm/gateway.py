# src/todolingo/llm/gateway.py

"""
Completion gateway: translation and subtask generation over OpenAI chat completions.

Two strategies, chosen once at startup by build_gateway():
- direct:  OpenAI SDK straight to the hosted API (local/dev default),
- proxy:   POST to the todolingo proxy service; if the proxy answers with a
           non-success status or the request fails, fall back once to direct.

Status -> error mapping lives only in map_status_error(); the proxied path
never maps errors itself, it just falls back.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI

from ..core.ports import ChatMessage, CompletionGateway
from ..errors import (
    GatewayError,
    GatewayFailure,
    InvalidApiKey,
    QuotaExceeded,
    RateLimited,
)
from . import prompts
from .parser import MAX_JSON_SUBTASKS, parse_subtasks

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "sk-"

ClientFactory = Callable[[str], AsyncOpenAI]


def validate_api_key(api_key: str | None) -> bool:
    return bool(api_key and api_key.strip() and api_key.startswith(API_KEY_PREFIX))


def map_status_error(status: int | None, message: str = "") -> GatewayError:
    if status == 401:
        return InvalidApiKey(message)
    if status == 429:
        return RateLimited(message)
    if status == 402:
        return QuotaExceeded(message)
    return GatewayFailure(message or f"OpenAI API error (status={status})")


class DirectCompletionGateway:
    """Calls the hosted completion API through the OpenAI SDK."""

    def __init__(
        self,
        *,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        timeout: float | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._model = model
        self._base_url = base_url
        self._timeout = timeout
        self._client_factory = client_factory or self._default_client
        self._clients: dict[str, AsyncOpenAI] = {}

    @property
    def model(self) -> str:
        return self._model

    def _default_client(self, api_key: str) -> AsyncOpenAI:
        kwargs: dict[str, Any] = {"api_key": api_key, "max_retries": 0}
        if self._base_url:
            kwargs["base_url"] = self._base_url
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        return AsyncOpenAI(**kwargs)

    def _client(self, api_key: str) -> AsyncOpenAI:
        client = self._clients.get(api_key)
        if client is None:
            client = self._client_factory(api_key)
            self._clients[api_key] = client
        return client

    async def _complete(
        self,
        api_key: str,
        messages: list[ChatMessage],
        *,
        max_tokens: int,
        temperature: float,
    ) -> str:
        if not api_key or not api_key.strip():
            raise InvalidApiKey("OpenAI API key is not set.")

        try:
            response = await self._client(api_key).chat.completions.create(
                model=self._model,
                messages=messages,  # type: ignore[arg-type]
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.APIStatusError as e:
            logger.info("OpenAI: status=%s model=%s", e.status_code, self._model)
            raise map_status_error(e.status_code, f"OpenAI API error: {e.message}") from e
        except openai.APIConnectionError as e:
            logger.info("OpenAI: network/timeout error model=%s (%s)", self._model, e.__class__.__name__)
            raise GatewayFailure("OpenAI network/timeout error. Try again later.") from e

        try:
            content = response.choices[0].message.content
        except (IndexError, AttributeError):
            content = None
        text = (content or "").strip()
        if not text:
            raise GatewayFailure("No response received from OpenAI")
        return text

    async def translate(self, text: str, target_language: str, api_key: str) -> str:
        return await self._complete(
            api_key,
            prompts.translation_messages(text, target_language),
            max_tokens=prompts.TRANSLATION_MAX_TOKENS,
            temperature=prompts.TRANSLATION_TEMPERATURE,
        )

    async def generate_subtasks(
        self,
        title: str,
        description: str,
        api_key: str,
        target_language: str = "English",
    ) -> list[str]:
        raw = await self._complete(
            api_key,
            prompts.subtasks_messages(title, description or "", target_language),
            max_tokens=prompts.SUBTASKS_MAX_TOKENS,
            temperature=prompts.SUBTASKS_TEMPERATURE,
        )
        return parse_subtasks(raw)

    async def aclose(self) -> None:
        clients, self._clients = self._clients, {}
        for client in clients.values():
            await client.close()


class ProxiedCompletionGateway:
    """
    Calls the todolingo proxy service, falling back to `direct` once on any
    proxy failure (non-2xx, transport error, unreadable body).
    """

    def __init__(
        self,
        proxy_url: str,
        direct: DirectCompletionGateway,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self._base = proxy_url.rstrip("/")
        self._direct = direct
        self._http = http_client or httpx.AsyncClient(timeout=timeout if timeout is not None else httpx.Timeout(30.0))

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any] | None:
        url = f"{self._base}{path}"
        try:
            resp = await self._http.post(url, json=payload)
        except httpx.HTTPError as e:
            logger.info("Proxy %s failed (%s), falling back to direct", path, e.__class__.__name__)
            return None

        if not resp.is_success:
            logger.info("Proxy %s returned %s: %s; falling back to direct", path, resp.status_code, resp.text[:500])
            return None

        try:
            data = resp.json()
        except ValueError:
            logger.info("Proxy %s returned a non-JSON body; falling back to direct", path)
            return None
        return data if isinstance(data, dict) else None

    async def translate(self, text: str, target_language: str, api_key: str) -> str:
        data = await self._post(
            "/translate",
            {"text": text, "targetLanguage": target_language, "openaiKey": api_key},
        )
        translated = data.get("translatedText") if data else None
        if isinstance(translated, str) and translated.strip():
            return translated.strip()
        return await self._direct.translate(text, target_language, api_key)

    async def generate_subtasks(
        self,
        title: str,
        description: str,
        api_key: str,
        target_language: str = "English",
    ) -> list[str]:
        data = await self._post(
            "/generate-subtasks",
            {
                "todoTitle": title,
                "todoDescription": description or "",
                "openaiKey": api_key,
                "targetLanguage": target_language,
            },
        )
        raw = data.get("subtasks") if data else None
        if isinstance(raw, list):
            items = [s.strip() for s in raw if isinstance(s, str) and s.strip()]
            if items:
                return items[:MAX_JSON_SUBTASKS]
        return await self._direct.generate_subtasks(title, description, api_key, target_language)

    async def aclose(self) -> None:
        await self._http.aclose()
        await self._direct.aclose()


def build_gateway(settings) -> CompletionGateway:
    """Pick the gateway strategy once, from settings.gateway_mode."""
    direct = DirectCompletionGateway(
        model=str(getattr(settings, "openai_model", "gpt-4o-mini")),
        base_url=getattr(settings, "openai_base_url", None),
        timeout=getattr(settings, "request_timeout_seconds", None),
    )
    mode = str(getattr(settings, "gateway_mode", "direct"))
    if mode == "proxy":
        proxy_url = str(getattr(settings, "proxy_url", ""))
        logger.info("Completion gateway: proxy=%s (direct fallback)", proxy_url)
        return ProxiedCompletionGateway(
            proxy_url,
            direct,
            timeout=getattr(settings, "request_timeout_seconds", None),
        )
    logger.info("Completion gateway: direct model=%s", direct.model)
    return direct
