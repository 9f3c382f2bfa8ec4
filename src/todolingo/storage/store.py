# src/todolingo/storage/store.py

from __future__ import annotations

import dataclasses
import hashlib
import json
import logging
import secrets
import string
import time
from typing import Any

from ..core.ports import KeyValueStorage
from ..errors import DuplicateUsername, StorageError, TaskNotFound, TranslationNotFound, ValidationError
from .migrations import upgrade_task_records
from .models import CurrentUser, Task, Translation, User, utc_now_iso

logger = logging.getLogger(__name__)

USERS_KEY = "todo_users"
CURRENT_USER_KEY = "current_user"
TODO_PREFIX = "todo_items_"
API_KEY_KEY = "openai_api_key"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_id(prefix: str, *parts: object) -> str:
    """prefix_<epoch-ms>[_part...]_<9 random chars>."""
    rand = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    middle = "".join(f"_{p}" for p in parts)
    return f"{prefix}_{int(time.time() * 1000)}{middle}_{rand}"


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def _mirror_selected_text(task: Task) -> Task:
    """
    Write title/description back into the variant current_language selects:
    the original* fields when showing the original, else that translation.
    """
    if task.current_language == task.original_language:
        return dataclasses.replace(
            task,
            original_title=task.title,
            original_description=task.description,
        )

    selected = task.translations[task.current_language]
    description = selected.description
    if (description or "") != task.description:
        description = task.description
    if selected.title == task.title and description == selected.description:
        return task
    translations = dict(task.translations)
    translations[task.current_language] = Translation(title=task.title, description=description)
    return dataclasses.replace(task, translations=translations)


class PersistenceStore:
    """
    Users, the session marker and per-user task collections on top of a string
    key-value store.

    Every mutation is a read-modify-write of the whole collection (last writer
    wins). StorageError from the backend propagates untouched; the backend
    guarantees the previously persisted value survives a failed write.
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage

    # ---- low-level helpers ----

    def _read_json(self, key: str, default: Any) -> Any:
        raw = self._storage.get_item(key)
        if raw is None or raw == "":
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            raise StorageError(f"Corrupt value under {key!r}: {e}") from e

    def _write_json(self, key: str, value: Any) -> None:
        self._storage.set_item(key, json.dumps(value, ensure_ascii=False))

    @staticmethod
    def _todo_key(user_id: str) -> str:
        return f"{TODO_PREFIX}{user_id}"

    # ---- users ----

    def _get_users(self) -> list[User]:
        data = self._read_json(USERS_KEY, [])
        if not isinstance(data, list):
            raise StorageError(f"Corrupt value under {USERS_KEY!r}: expected a list")
        return [User.from_dict(u) for u in data if isinstance(u, dict)]

    def create_user(self, username: str, password: str) -> User:
        users = self._get_users()
        if any(u.username == username for u in users):
            raise DuplicateUsername(username)

        user = User(
            id=new_id("user"),
            username=username,
            password_hash=hash_password(password),
            created_at=utc_now_iso(),
        )
        self._write_json(USERS_KEY, [u.to_dict() for u in [*users, user]])
        logger.info("User created id=%s username=%s", user.id, username)
        return user

    def authenticate(self, username: str, password: str) -> User | None:
        digest = hash_password(password)
        for u in self._get_users():
            if u.username == username and secrets.compare_digest(u.password_hash, digest):
                return u
        return None

    # ---- session ----

    def get_current_user(self) -> CurrentUser | None:
        data = self._read_json(CURRENT_USER_KEY, None)
        if not isinstance(data, dict):
            return None
        try:
            return CurrentUser.from_dict(data)
        except KeyError:
            logger.warning("Ignoring malformed session record: %r", data)
            return None

    def set_current_user(self, user: CurrentUser | None) -> None:
        if user is None:
            self._storage.remove_item(CURRENT_USER_KEY)
        else:
            self._write_json(CURRENT_USER_KEY, user.to_dict())

    # ---- settings ----

    def get_api_key(self) -> str | None:
        return self._storage.get_item(API_KEY_KEY) or None

    def set_api_key(self, key: str | None) -> None:
        if key:
            self._storage.set_item(API_KEY_KEY, key)
        else:
            self._storage.remove_item(API_KEY_KEY)

    # ---- tasks ----

    def get_tasks(self, user_id: str) -> list[Task]:
        key = self._todo_key(user_id)
        data = self._read_json(key, [])
        if not isinstance(data, list):
            raise StorageError(f"Corrupt value under {key!r}: expected a list")

        records, changed = upgrade_task_records(data)
        if changed:
            try:
                self._write_json(key, records)
                logger.info("Upgraded stored tasks user=%s count=%d", user_id, len(records))
            except StorageError:
                # Reads must not fail because the upgrade could not be persisted.
                logger.warning("Could not persist upgraded tasks user=%s", user_id, exc_info=True)
        return [Task.from_dict(r) for r in records]

    def save_tasks(self, user_id: str, tasks: list[Task]) -> None:
        self._write_json(self._todo_key(user_id), [t.to_dict() for t in tasks])

    def get_task(self, user_id: str, task_id: str) -> Task:
        for t in self.get_tasks(user_id):
            if t.id == task_id:
                return t
        raise TaskNotFound(task_id)

    def add_task(
        self,
        user_id: str,
        *,
        title: str,
        description: str = "",
        original_language: str = "en",
    ) -> Task:
        if not title or not title.strip():
            raise ValidationError("Please enter a task title")

        tasks = self.get_tasks(user_id)
        now = utc_now_iso()
        task = Task(
            id=new_id("todo"),
            user_id=user_id,
            title=title,
            description=description,
            completed=False,
            original_language=original_language,
            original_title=title,
            original_description=description,
            current_language=original_language,
            created_at=now,
            updated_at=now,
        )
        self.save_tasks(user_id, [*tasks, task])
        logger.debug("Task added id=%s user=%s", task.id, user_id)
        return task

    def update_task(self, user_id: str, task_id: str, **changes: Any) -> Task:
        """
        Apply a partial patch and refresh updated_at.

        current_language is lower-cased and must name the original language or
        a stored translation (TranslationNotFound otherwise). A patched
        title/description is written through to the selected variant, so an edit
        in the original language also moves original_title/original_description.
        """
        forbidden = set(changes) & Task.IMMUTABLE_FIELDS
        if forbidden:
            raise ValidationError(f"Cannot change immutable fields: {', '.join(sorted(forbidden))}")
        unknown = set(changes) - {f.name for f in dataclasses.fields(Task)} - {"updated_at"}
        if unknown:
            raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")

        tasks = self.get_tasks(user_id)
        for i, t in enumerate(tasks):
            if t.id != task_id:
                continue
            patch = dict(changes)
            patch["updated_at"] = max(utc_now_iso(), t.created_at)
            if "subtasks" in patch:
                patch["subtasks"] = tuple(patch["subtasks"])
            if "current_language" in patch:
                patch["current_language"] = str(patch["current_language"] or "").strip().lower()
            updated = dataclasses.replace(t, **patch)

            lang = updated.current_language
            if lang != updated.original_language and lang not in updated.translations:
                raise TranslationNotFound(task_id, lang, sorted(updated.translations))
            if "title" in changes or "description" in changes:
                updated = _mirror_selected_text(updated)

            tasks[i] = updated
            self.save_tasks(user_id, tasks)
            logger.debug("Task updated id=%s fields=%s", task_id, sorted(changes))
            return tasks[i]
        raise TaskNotFound(task_id)

    def delete_task(self, user_id: str, task_id: str) -> None:
        tasks = self.get_tasks(user_id)
        remaining = [t for t in tasks if t.id != task_id]
        if len(remaining) == len(tasks):
            raise TaskNotFound(task_id)
        self.save_tasks(user_id, remaining)
        logger.debug("Task deleted id=%s user=%s", task_id, user_id)

    def save_translation(
        self,
        user_id: str,
        task_id: str,
        language: str,
        title: str,
        description: str | None = None,
    ) -> Task:
        task = self.get_task(user_id, task_id)
        translations = dict(task.translations)
        translations[language.lower()] = Translation(title=title, description=description)
        return self.update_task(user_id, task_id, translations=translations)

    def get_translation(self, user_id: str, task_id: str, language: str) -> Translation | None:
        return self.get_task(user_id, task_id).translations.get(language.lower())

    # ---- bulk ----

    def clear_all_data(self) -> None:
        owned = [
            k
            for k in self._storage.keys()
            if k.startswith(TODO_PREFIX) or k in (USERS_KEY, CURRENT_USER_KEY)
        ]
        for k in owned:
            self._storage.remove_item(k)
        logger.info("Cleared %d stored keys", len(owned))

    def export_user_data(self, user_id: str) -> str:
        current = self.get_current_user()
        return json.dumps(
            {
                "user": current.to_dict() if current else None,
                "todos": [t.to_dict() for t in self.get_tasks(user_id)],
                "exportedAt": utc_now_iso(),
            },
            ensure_ascii=False,
            indent=2,
        )

    def import_user_data(self, user_id: str, json_data: str) -> int:
        """Replace the user's tasks with the ones in an export. Returns the task count."""
        try:
            data = json.loads(json_data)
        except ValueError as e:
            raise ValidationError(f"Import data is not valid JSON: {e}") from e

        todos = data.get("todos") if isinstance(data, dict) else None
        if not isinstance(todos, list):
            raise ValidationError("Import data has no 'todos' list")

        records, _ = upgrade_task_records(todos)
        for r in records:
            r["userId"] = user_id
        self._write_json(self._todo_key(user_id), records)
        logger.info("Imported %d tasks for user=%s", len(records), user_id)
        return len(records)
