# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Keep the OpenAI key in .env (local, gitignored)
or save it from the console with /key.
"""

ENV_VARS = {
    # App / logging
    "TODOLINGO_APP_NAME": "App display name (default: todolingo).",
    "TODOLINGO_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths (gitignored)
    "TODOLINGO_DATA_DIR": "Local data directory (default: .local/todolingo).",
    "TODOLINGO_STORAGE_PATH": "Key-value store JSON file (default: <data_dir>/local_storage.json).",
    "TODOLINGO_STORAGE_QUOTA_BYTES": "Optional store size limit in bytes (0 = unlimited).",
    # OpenAI
    "TODOLINGO_OPENAI_API_KEY": "Initial OpenAI key (falls back to OPENAI_API_KEY; empty => demo mode).",
    "TODOLINGO_OPENAI_BASE_URL": "Optional OpenAI-compatible base URL.",
    "TODOLINGO_OPENAI_MODEL": "Chat model (default: gpt-4o-mini).",
    "TODOLINGO_REQUEST_TIMEOUT_SECONDS": "Optional per-request timeout.",
    # Gateway
    "TODOLINGO_GATEWAY_MODE": "direct | proxy (default: direct).",
    "TODOLINGO_PROXY_URL": "Proxy service base URL (default: http://127.0.0.1:8787).",
    # Proxy service
    "TODOLINGO_SERVER_HOST": "todolingo-server bind host (default: 127.0.0.1).",
    "TODOLINGO_SERVER_PORT": "todolingo-server bind port (default: 8787).",
}
