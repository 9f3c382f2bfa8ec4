# src/todolingo/logging_setup.py

from __future__ import annotations

import logging
import re
import sys
from pathlib import Path

_API_KEY_RE = re.compile(r"sk-[A-Za-z0-9_\-]{4,}")


def redact_api_keys(text: str) -> str:
    """Replace anything that looks like an OpenAI key with sk-...<last 4>."""
    return _API_KEY_RE.sub(lambda m: "sk-..." + m.group(0)[-4:], text)


class _ApiKeyRedactionFilter(logging.Filter):
    """Log messages must never carry a full API key."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if "sk-" in message:
            record.msg = redact_api_keys(message)
            record.args = None
        return True


class _ConsoleNoiseFilter(logging.Filter):
    """
    Make interactive console usable:
    - allow todolingo logs at the configured level
    - suppress Python warnings (captured as 'py.warnings') unless ERROR+
    - keep uvicorn at INFO+ (the proxy server output)
    - suppress other third-party noise (httpx, openai) unless ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("todolingo."):
            return True

        if name == "py.warnings":
            return record.levelno >= logging.ERROR

        # uvicorn access/error logs are the server's console output.
        if name.startswith("uvicorn"):
            return record.levelno >= logging.INFO

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/todolingo",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    log_name: str = "todolingo.log",
) -> None:
    """
    Configure logging with:
    - Console handler: readable + filtered for interactive use
    - File handler: full logs for debugging
    - Both handlers mask OpenAI API keys

    Call this ONCE, very early (before first logger.info).
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / log_name

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    ch.addFilter(_ApiKeyRedactionFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    fh.addFilter(_ApiKeyRedactionFilter())
    root.addHandler(fh)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
