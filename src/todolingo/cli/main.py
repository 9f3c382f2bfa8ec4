# src/todolingo/cli/main.py

"""
CLI entrypoints.

- todolingo:        initializes logging, builds AppState, runs the console REPL.
- todolingo-server: runs the translation/subtask proxy service (FastAPI + uvicorn).
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state, shutdown_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..errors import StorageError
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _configure_logging(settings, log_name: str) -> int:
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    log_dir = getattr(settings, "data_dir", ".local/todolingo")
    setup_logging(log_dir=log_dir, console_level=console_level, log_name=log_name)
    return console_level


async def _run(settings) -> None:
    state = create_initial_state(settings=settings)
    try:
        await run_console_loop(state)
    finally:
        await shutdown_state(state)


def main() -> None:
    settings = get_settings()
    _configure_logging(settings, "todolingo.log")

    logger.info("Starting %s...", getattr(settings, "app_name", "todolingo"))

    try:
        asyncio.run(_run(settings))
    except StorageError as e:
        logger.error("Cannot open local storage: %s", e)
        raise SystemExit(1) from e
    except KeyboardInterrupt:
        pass
    logger.info("Bye.")


def server_main() -> None:
    import uvicorn

    from ..api.server import create_app

    settings = get_settings()
    console_level = _configure_logging(settings, "todolingo-server.log")

    logger.info("Starting proxy service on %s:%s", settings.server_host, settings.server_port)
    uvicorn.run(
        create_app(settings),
        host=settings.server_host,
        port=settings.server_port,
        log_config=None,
        log_level=logging.getLevelName(console_level).lower(),
    )


if __name__ == "__main__":
    main()
