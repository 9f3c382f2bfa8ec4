# src/todolingo/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Union, cast

from ..core import auth, todos
from ..core.state import AppState
from ..errors import TaskNotFound, ValidationError
from ..storage.models import Task, TaskFilter

CommandEmitter = Callable[[str], None]
CommandResult = Union[str, Awaitable[str]]
CommandHandler2 = Callable[[AppState, list[str]], CommandResult]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], CommandResult]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Handlers may be sync or async; async ones are awaited here.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            # Unbalanced quotes: fall back to plain whitespace splitting.
            parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            result = cast(CommandHandler3, handler)(state, args, emit)
        else:
            result = cast(CommandHandler2, handler)(state, args)

        if inspect.isawaitable(result):
            return await result
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _split_pipe(args: list[str]) -> list[str]:
    """'/add Buy milk | two liters' -> ['Buy milk', 'two liters']."""
    return [p.strip() for p in " ".join(args).split("|")]


def _resolve_task(state: AppState, ref: str) -> Task:
    """A task reference is its 1-based position in /list or its full id."""
    tasks = todos.list_tasks(state)
    if ref.isdigit():
        idx = int(ref)
        if 1 <= idx <= len(tasks):
            return tasks[idx - 1]
        raise TaskNotFound(ref)
    for t in tasks:
        if t.id == ref:
            return t
    raise TaskNotFound(ref)


def _need(args: list[str], n: int, usage: str) -> None:
    if len(args) < n:
        raise ValidationError(f"Usage: {usage}")


def _format_task(task: Task, index: int | None = None, *, verbose: bool = False) -> str:
    mark = "x" if task.completed else " "
    prefix = f"{index}. " if index is not None else ""
    line = f"{prefix}[{mark}] {task.title}"
    if task.subtasks:
        line += f"  ({task.completed_subtasks()}/{len(task.subtasks)})"
    if task.current_language != task.original_language:
        line += f"  <{task.current_language}>"
    if not verbose:
        return line

    lines = [line]
    if task.description:
        lines.append(f"    {task.description}")
    for s in task.sorted_subtasks():
        lines.append(f"    - [{'x' if s.completed else ' '}] {s.title}")
    if task.translations:
        langs = ", ".join(sorted(task.translations))
        lines.append(f"    translations: {langs} (original: {task.original_language})")
    lines.append(f"    id: {task.id}  created: {task.created_at}  updated: {task.updated_at}")
    return "\n".join(lines)


def _mask_key(key: str) -> str:
    return key[:3] + "..." + key[-4:] if len(key) > 10 else "sk-..."


# ---- general ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    user = state.current_user.username if state.current_user else "(not logged in)"
    mode = "DEMO (no API key)" if state.demo_mode else "OpenAI"
    gateway_mode = str(getattr(state.settings, "gateway_mode", "direct"))
    lines = [
        "Status:",
        f"  User: {user}",
        f"  AI mode: {mode}",
        f"  Gateway: {gateway_mode}",
    ]
    if state.current_user:
        c = todos.counts(state)
        lines.append(f"  Tasks: {c['total']} ({c['active']} active, {c['completed']} completed)")
    return "\n".join(lines)


# ---- account ----


def cmd_register(state: AppState, args: list[str]) -> str:
    _need(args, 2, "/register <username> <password>")
    user = auth.register(state, args[0], args[1])
    return f"Registered and logged in as {user.username}."


def cmd_login(state: AppState, args: list[str]) -> str:
    _need(args, 2, "/login <username> <password>")
    user = auth.login(state, args[0], args[1])
    return f"Logged in as {user.username}."


def cmd_logout(state: AppState, args: list[str]) -> str:
    if state.current_user is None:
        return "Not logged in."
    auth.logout(state)
    return "Logged out."


def cmd_whoami(state: AppState, args: list[str]) -> str:
    if state.current_user is None:
        return "Not logged in."
    return f"{state.current_user.username} (id={state.current_user.id})"


def cmd_key(state: AppState, args: list[str]) -> str:
    """
    /key            -> show whether a key is set
    /key sk-...     -> save key
    /key clear      -> remove key (demo mode)
    """
    if not args:
        if state.api_key:
            return f"OpenAI API key set: {_mask_key(state.api_key)}"
        return "No OpenAI API key set. Translation and subtasks run in demo mode."
    if args[0].lower() in ("clear", "off", "none"):
        auth.set_api_key(state, None)
        return "API key removed. Demo mode active."
    auth.set_api_key(state, args[0])
    return "API key saved."


# ---- tasks ----


def cmd_add(state: AppState, args: list[str]) -> str:
    _need(args, 1, "/add <title> [| description]")
    parts = _split_pipe(args)
    title = parts[0]
    description = " | ".join(parts[1:]) if len(parts) > 1 else None
    task = todos.add_task(state, title, description)
    return f"Added: {task.title}"


def cmd_list(state: AppState, args: list[str]) -> str:
    task_filter = TaskFilter.parse(args[0] if args else None)
    all_tasks = todos.list_tasks(state)
    c = todos.counts(state)
    header = f"Tasks ({c['active']} active, {c['completed']} completed):"
    shown = [
        _format_task(t, i)
        for i, t in enumerate(all_tasks, start=1)
        if task_filter is TaskFilter.ALL or t.completed == (task_filter is TaskFilter.COMPLETED)
    ]
    if not shown:
        return f"{header}\n  (none)"
    return "\n".join([header, *shown])


def cmd_show(state: AppState, args: list[str]) -> str:
    _need(args, 1, "/show <n>")
    return _format_task(_resolve_task(state, args[0]), verbose=True)


def cmd_done(state: AppState, args: list[str]) -> str:
    _need(args, 1, "/done <n>")
    task = todos.toggle_complete(state, _resolve_task(state, args[0]).id)
    return _format_task(task)


def cmd_edit(state: AppState, args: list[str]) -> str:
    _need(args, 2, "/edit <n> <title> [| description]")
    task = _resolve_task(state, args[0])
    parts = _split_pipe(args[1:])
    description = " | ".join(parts[1:]) if len(parts) > 1 else None
    return _format_task(todos.edit_task(state, task.id, parts[0], description), verbose=True)


def cmd_delete(state: AppState, args: list[str]) -> str:
    _need(args, 1, "/delete <n>")
    task = _resolve_task(state, args[0])
    todos.delete_task(state, task.id)
    return f"Deleted: {task.title}"


# ---- subtasks ----


async def cmd_subtasks(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    _need(args, 1, "/subtasks <n>")
    task = _resolve_task(state, args[0])
    if emit:
        emit("Generating subtasks (demo mode)..." if state.demo_mode else "Generating subtasks...")
    updated, titles = await todos.generate_subtasks(state, task.id)
    language = todos.subtask_language(task.current_language)
    suffix = " (set an OpenAI API key with /key for AI-powered subtasks)" if state.demo_mode else ""
    return f"Generated {len(titles)} subtasks in {language}{suffix}.\n" + _format_task(updated, verbose=True)


def cmd_subtask_add(state: AppState, args: list[str]) -> str:
    _need(args, 2, "/subtask-add <n> <title> [| title ...]")
    task = _resolve_task(state, args[0])
    updated = todos.add_subtasks(state, task.id, _split_pipe(args[1:]))
    return _format_task(updated, verbose=True)


def cmd_subtask_done(state: AppState, args: list[str]) -> str:
    _need(args, 2, "/subtask-done <n> <m>")
    task = _resolve_task(state, args[0])
    ordered = task.sorted_subtasks()
    if not args[1].isdigit() or not 1 <= int(args[1]) <= len(ordered):
        raise TaskNotFound(args[1])
    updated = todos.toggle_subtask_complete(state, task.id, ordered[int(args[1]) - 1].id)
    return _format_task(updated, verbose=True)


def cmd_clear_subtasks(state: AppState, args: list[str]) -> str:
    _need(args, 1, "/clear-subtasks <n>")
    task = todos.clear_subtasks(state, _resolve_task(state, args[0]).id)
    return f"Cleared subtasks: {task.title}"


# ---- translations ----


async def cmd_translate(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    _need(args, 2, "/translate <n> <language>")
    task = _resolve_task(state, args[0])
    language = " ".join(args[1:])
    if emit:
        emit(f"Translating to {language}...")
    updated = await todos.translate_task(state, task.id, language)
    return _format_task(updated, verbose=True)


def cmd_switch(state: AppState, args: list[str]) -> str:
    _need(args, 2, "/switch <n> <language>")
    task = _resolve_task(state, args[0])
    return _format_task(todos.switch_to_language(state, task.id, " ".join(args[1:])), verbose=True)


def cmd_original(state: AppState, args: list[str]) -> str:
    _need(args, 1, "/original <n>")
    task = _resolve_task(state, args[0])
    return _format_task(todos.switch_to_original(state, task.id), verbose=True)


# ---- data ----


def cmd_export(state: AppState, args: list[str]) -> str:
    user = auth.require_user(state)
    payload = state.store.export_user_data(user.id)
    if not args:
        return payload
    path = Path(args[0]).expanduser()
    try:
        path.write_text(payload, "utf-8")
    except OSError as e:
        raise ValidationError(f"Cannot write {path}: {e}") from e
    return f"Exported tasks to {path}"


def cmd_import(state: AppState, args: list[str]) -> str:
    _need(args, 1, "/import <path>")
    user = auth.require_user(state)
    path = Path(args[0]).expanduser()
    try:
        raw = path.read_text("utf-8")
    except OSError as e:
        raise ValidationError(f"Cannot read {path}: {e}") from e
    n = state.store.import_user_data(user.id, raw)
    return f"Imported {n} tasks from {path}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show user, AI mode and task counts.")
registry.register("register", cmd_register, help_text="Create an account: /register <username> <password>.")
registry.register("login", cmd_login, help_text="Log in: /login <username> <password>.")
registry.register("logout", cmd_logout, help_text="Log out.")
registry.register("whoami", cmd_whoami, help_text="Show the logged-in user.")
registry.register("key", cmd_key, help_text="OpenAI API key: /key | /key sk-... | /key clear.")
registry.register("add", cmd_add, help_text="Add a task: /add <title> [| description].")
registry.register("list", cmd_list, help_text="List tasks: /list [all|active|completed].", aliases=["ls"])
registry.register("show", cmd_show, help_text="Show task details: /show <n>.")
registry.register("done", cmd_done, help_text="Toggle completion: /done <n>.")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <n> <title> [| description].")
registry.register("delete", cmd_delete, help_text="Delete a task and its subtasks: /delete <n>.", aliases=["rm"])
registry.register("subtasks", cmd_subtasks, help_text="Generate subtasks (AI or demo): /subtasks <n>.")
registry.register("subtask-add", cmd_subtask_add, help_text="Add subtasks: /subtask-add <n> <title> [| title ...].")
registry.register("subtask-done", cmd_subtask_done, help_text="Toggle a subtask: /subtask-done <n> <m>.")
registry.register("clear-subtasks", cmd_clear_subtasks, help_text="Remove all subtasks: /clear-subtasks <n>.")
registry.register("translate", cmd_translate, help_text="Translate and switch: /translate <n> <language>.")
registry.register("switch", cmd_switch, help_text="Switch to a stored translation: /switch <n> <language>.")
registry.register("original", cmd_original, help_text="Switch back to the original text: /original <n>.")
registry.register("export", cmd_export, help_text="Export tasks as JSON: /export [path].")
registry.register("import", cmd_import, help_text="Replace tasks from an export: /import <path>.")
