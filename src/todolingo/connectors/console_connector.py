# src/todolingo/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..errors import TodoLingoError, friendly_error_message

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def _prompt(state: AppState) -> str:
    user = state.current_user.username if state.current_user else "guest"
    return f"{user}> "


async def run_console_loop(state: AppState) -> None:
    """
    Interactive REPL. Runs on the caller's event loop; input() is read in a
    worker thread so gateway calls never block on the terminal.
    """
    logger.info("Console connector started (demo=%s).", state.demo_mode)
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")
    if state.current_user is None:
        _print_ts("Not logged in. Use /register <username> <password> or /login <username> <password>.")

    def emit(text: str) -> None:
        # Immediate user-visible feedback for long operations (gateway calls).
        _print_ts(text)

    while True:
        try:
            user_input = (await asyncio.to_thread(input, _prompt(state))).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            # Bare text is shorthand for /add.
            user_input = "/add " + user_input

        try:
            reply = await command_registry.handle(state, user_input, emit=emit)
        except TodoLingoError as e:
            logger.info("Command failed: %s: %s", e.__class__.__name__, e)
            reply = friendly_error_message(e)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            _print_ts(reply)

    logger.info("Console connector finished.")
