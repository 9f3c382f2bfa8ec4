# src/todolingo/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- The OpenAI key from env only seeds the stored key; users can replace it with /key.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

ENV_PREFIX = "TODOLINGO"

GATEWAY_MODES = ("direct", "proxy")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float | None) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data ----
    data_dir: Path
    storage_path: Path
    storage_quota_bytes: Optional[int]

    # ---- Completion gateway ----
    openai_api_key: Optional[str]
    openai_base_url: Optional[str]
    openai_model: str
    gateway_mode: str
    proxy_url: str
    request_timeout_seconds: Optional[float]

    # ---- Proxy service ----
    server_host: str
    server_port: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "todolingo") or "todolingo"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/todolingo"))
        storage_path = _env_path(_k("STORAGE_PATH"), data_dir / "local_storage.json")
        quota = _env_int(_k("STORAGE_QUOTA_BYTES"), 0)
        storage_quota_bytes = quota if quota > 0 else None

        openai_api_key = _first_env(_k("OPENAI_API_KEY"), "OPENAI_API_KEY", default=None)
        openai_base_url = _first_env(_k("OPENAI_BASE_URL"), default=None)
        openai_model = _env(_k("OPENAI_MODEL"), "gpt-4o-mini") or "gpt-4o-mini"

        gateway_mode = _env(_k("GATEWAY_MODE"), "direct").strip().lower()
        if gateway_mode not in GATEWAY_MODES:
            gateway_mode = "direct"
        proxy_url = _env(_k("PROXY_URL"), "http://127.0.0.1:8787")

        request_timeout_seconds = _env_float(_k("REQUEST_TIMEOUT_SECONDS"), None)

        server_host = _env(_k("SERVER_HOST"), "127.0.0.1")
        server_port = _env_int(_k("SERVER_PORT"), 8787)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            storage_path=storage_path,
            storage_quota_bytes=storage_quota_bytes,
            openai_api_key=openai_api_key,
            openai_base_url=openai_base_url,
            openai_model=openai_model,
            gateway_mode=gateway_mode,
            proxy_url=proxy_url,
            request_timeout_seconds=request_timeout_seconds,
            server_host=server_host,
            server_port=server_port,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
