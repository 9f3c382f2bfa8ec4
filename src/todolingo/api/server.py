# src/todolingo/api/server.py

"""
HTTP intermediary for the completion API.

Clients that cannot (or should not) talk to OpenAI directly POST here with
their own key; the service forwards to the hosted API through the direct
gateway and maps upstream failures to status codes:
  400 missing fields / malformed key, 401 bad key, 429 rate limit,
  402 quota, 405 wrong method, 500 anything else.
Every response carries permissive CORS headers; OPTIONS is answered with 200.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from ..config import get_settings
from ..core.ports import CompletionGateway
from ..errors import GatewayError
from ..llm.gateway import DirectCompletionGateway, validate_api_key

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS,PATCH,DELETE,POST,PUT",
    "Access-Control-Allow-Headers": (
        "X-CSRF-Token, X-Requested-With, Accept, Accept-Version, Content-Length, "
        "Content-MD5, Content-Type, Date, X-Api-Version"
    ),
}

OTHER_METHODS = ["GET", "PUT", "PATCH", "DELETE"]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _read_body(request: Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _str_field(body: dict[str, Any], name: str, default: str = "") -> str:
    value = body.get(name, default)
    return value if isinstance(value, str) else default


def _gateway_error_response(err: GatewayError, fallback: str) -> JSONResponse:
    if err.status_code in (401, 402, 429):
        return _error(err.status_code, err.public_message)
    return _error(500, fallback)


def create_app(settings=None, *, gateway: CompletionGateway | None = None) -> FastAPI:
    if settings is None:
        settings = get_settings()

    if gateway is None:
        gateway = DirectCompletionGateway(
            model=str(getattr(settings, "openai_model", "gpt-4o-mini")),
            base_url=getattr(settings, "openai_base_url", None),
            timeout=getattr(settings, "request_timeout_seconds", None),
        )
    upstream: CompletionGateway = gateway

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        await upstream.aclose()

    app = FastAPI(title="todolingo proxy", lifespan=lifespan)

    @app.middleware("http")
    async def cors(request: Request, call_next):
        if request.method == "OPTIONS":
            response: Response = Response(status_code=200)
        else:
            response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.post("/translate")
    async def translate(request: Request) -> JSONResponse:
        body = await _read_body(request)
        if body is None:
            return _error(400, "Request body must be a JSON object")

        text = _str_field(body, "text")
        target_language = _str_field(body, "targetLanguage")
        api_key = _str_field(body, "openaiKey")
        if not text or not target_language or not api_key:
            return _error(400, "Missing required fields: text, targetLanguage, and openaiKey are required")
        if not validate_api_key(api_key):
            return _error(400, "Invalid OpenAI API key format")

        try:
            translated = await upstream.translate(text, target_language, api_key)
        except GatewayError as e:
            logger.info("Translation failed: %s: %s", e.__class__.__name__, e)
            return _gateway_error_response(e, "Translation failed. Please try again.")

        return JSONResponse(status_code=200, content={"translatedText": translated})

    @app.post("/generate-subtasks")
    async def generate_subtasks(request: Request) -> JSONResponse:
        body = await _read_body(request)
        if body is None:
            return _error(400, "Request body must be a JSON object")

        title = _str_field(body, "todoTitle")
        description = _str_field(body, "todoDescription")
        api_key = _str_field(body, "openaiKey")
        target_language = _str_field(body, "targetLanguage") or "English"
        if not title or not api_key:
            return _error(400, "Missing required fields: todoTitle and openaiKey are required")
        if not validate_api_key(api_key):
            return _error(400, "Invalid OpenAI API key format")

        try:
            subtasks = await upstream.generate_subtasks(title, description, api_key, target_language)
        except GatewayError as e:
            logger.info("Subtask generation failed: %s: %s", e.__class__.__name__, e)
            return _gateway_error_response(e, "Subtask generation failed. Please try again.")

        return JSONResponse(status_code=200, content={"subtasks": subtasks})

    @app.api_route("/translate", methods=OTHER_METHODS, include_in_schema=False)
    @app.api_route("/generate-subtasks", methods=OTHER_METHODS, include_in_schema=False)
    async def method_not_allowed() -> JSONResponse:
        return _error(405, "Method not allowed")

    return app
