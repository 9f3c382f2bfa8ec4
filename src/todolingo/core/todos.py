# src/todolingo/core/todos.py

"""
Task aggregate operations.

Every operation works on the logged-in user's collection and writes through to
the PersistenceStore before returning the updated Task. Failures are raised,
never swallowed:
- no active session      -> NotAuthenticated
- unknown task/subtask   -> TaskNotFound
- missing translation    -> TranslationNotFound
- gateway problems       -> GatewayError (nothing is persisted)
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from ..errors import TaskNotFound, TranslationNotFound, ValidationError
from ..storage.models import Subtask, Task, TaskFilter
from ..storage.store import new_id
from .auth import require_user
from .state import AppState

logger = logging.getLogger(__name__)

MAX_SUBTASKS_PER_BATCH = 7


# ---- queries ----


def list_tasks(state: AppState, task_filter: TaskFilter = TaskFilter.ALL) -> list[Task]:
    user = require_user(state)
    tasks = state.store.get_tasks(user.id)
    if task_filter is TaskFilter.ACTIVE:
        return [t for t in tasks if not t.completed]
    if task_filter is TaskFilter.COMPLETED:
        return [t for t in tasks if t.completed]
    return tasks


def counts(state: AppState) -> dict[str, int]:
    tasks = list_tasks(state)
    done = sum(1 for t in tasks if t.completed)
    return {"total": len(tasks), "active": len(tasks) - done, "completed": done}


def get_task(state: AppState, task_id: str) -> Task:
    user = require_user(state)
    return state.store.get_task(user.id, task_id)


# ---- basic CRUD ----


def add_task(state: AppState, title: str, description: str | None = None) -> Task:
    user = require_user(state)
    title = (title or "").strip()
    if not title:
        raise ValidationError("Please enter a task title")
    task = state.store.add_task(user.id, title=title, description=(description or "").strip())
    logger.info("Task created id=%s", task.id)
    return task


def update_task(state: AppState, task_id: str, **changes: Any) -> Task:
    user = require_user(state)
    return state.store.update_task(user.id, task_id, **changes)


def edit_task(state: AppState, task_id: str, title: str, description: str | None = None) -> Task:
    """
    Change the text of the variant currently shown. In the original language
    this also moves original_title/original_description, so /original keeps the
    edit; with a translation selected only that translation changes.
    """
    title = (title or "").strip()
    if not title:
        raise ValidationError("Please enter a task title")
    changes: dict[str, Any] = {"title": title}
    if description is not None:
        changes["description"] = description.strip()
    task = update_task(state, task_id, **changes)
    logger.info("Task edited id=%s language=%s", task_id, task.current_language)
    return task


def delete_task(state: AppState, task_id: str) -> None:
    user = require_user(state)
    state.store.delete_task(user.id, task_id)
    logger.info("Task deleted id=%s", task_id)


def toggle_complete(state: AppState, task_id: str) -> Task:
    task = get_task(state, task_id)
    return update_task(state, task_id, completed=not task.completed)


# ---- subtasks ----


def add_subtasks(state: AppState, task_id: str, titles: list[str]) -> Task:
    """Append subtasks after the existing ones; never replaces."""
    clean = [t.strip() for t in titles if t and t.strip()]
    if not clean:
        raise ValidationError("No subtask titles given")
    if len(clean) > MAX_SUBTASKS_PER_BATCH:
        raise ValidationError(f"At most {MAX_SUBTASKS_PER_BATCH} subtasks can be added at once")

    task = get_task(state, task_id)
    base = max((s.order_index for s in task.subtasks), default=-1) + 1
    new = [
        Subtask(id=new_id("subtask", i), title=title, completed=False, order_index=base + i)
        for i, title in enumerate(clean)
    ]
    return update_task(state, task_id, subtasks=(*task.subtasks, *new))


def toggle_subtask_complete(state: AppState, task_id: str, subtask_id: str) -> Task:
    task = get_task(state, task_id)
    if not any(s.id == subtask_id for s in task.subtasks):
        raise TaskNotFound(subtask_id)
    subtasks = tuple(
        replace(s, completed=not s.completed)
        if s.id == subtask_id
        else s
        for s in task.subtasks
    )
    return update_task(state, task_id, subtasks=subtasks)


def clear_subtasks(state: AppState, task_id: str) -> Task:
    get_task(state, task_id)
    return update_task(state, task_id, subtasks=())


# ---- translations ----


def add_translation(
    state: AppState,
    task_id: str,
    language: str,
    title: str,
    description: str | None = None,
) -> Task:
    language = (language or "").strip().lower()
    if not language:
        raise ValidationError("Please enter a target language")
    user = require_user(state)
    return state.store.save_translation(user.id, task_id, language, title, description)


def switch_to_language(state: AppState, task_id: str, language: str) -> Task:
    key = (language or "").strip().lower()
    task = get_task(state, task_id)
    translation = task.translations.get(key)
    if translation is None:
        raise TranslationNotFound(task_id, key, sorted(task.translations))
    return update_task(
        state,
        task_id,
        title=translation.title,
        description=translation.description or "",
        current_language=key,
    )


def switch_to_original(state: AppState, task_id: str) -> Task:
    task = get_task(state, task_id)
    return update_task(
        state,
        task_id,
        title=task.original_title,
        description=task.original_description or "",
        current_language=task.original_language,
    )


# ---- AI-assisted ----


def subtask_language(current_language: str) -> str:
    """Map a task's currentLanguage key to the language name used in prompts."""
    lang = (current_language or "").strip().lower()
    if lang in ("spanish", "español"):
        return "Spanish"
    if lang in ("french", "français"):
        return "French"
    if lang in ("", "en", "english"):
        return "English"
    return lang[:1].upper() + lang[1:]


async def translate_task(state: AppState, task_id: str, language: str) -> Task:
    """
    Translate the task's current title (and description, if any), store the
    translation under the lower-cased language and switch to it.
    """
    target = (language or "").strip()
    if not target:
        raise ValidationError("Please enter a target language")

    task = get_task(state, task_id)
    gateway = state.active_gateway()
    api_key = state.api_key or ""

    title = await gateway.translate(task.title, target, api_key)
    description: str | None = None
    if task.description and task.description.strip():
        description = await gateway.translate(task.description, target, api_key)

    logger.info("Translated task id=%s to %s (demo=%s)", task_id, target, state.demo_mode)
    add_translation(state, task_id, target, title, description)
    return switch_to_language(state, task_id, target)


async def generate_subtasks(state: AppState, task_id: str) -> tuple[Task, list[str]]:
    """Generate subtasks in the task's current language and append them."""
    task = get_task(state, task_id)
    target = subtask_language(task.current_language)

    titles = await state.active_gateway().generate_subtasks(
        task.title,
        task.description or "",
        state.api_key or "",
        target,
    )
    logger.info(
        "Generated %d subtasks for task id=%s in %s (demo=%s)",
        len(titles),
        task_id,
        target,
        state.demo_mode,
    )
    return add_subtasks(state, task_id, titles[:MAX_SUBTASKS_PER_BATCH]), titles
