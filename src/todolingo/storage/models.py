# src/todolingo/storage/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-05-01T10:00:00.000Z."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TaskFilter(StrEnum):
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, raw: str | None) -> TaskFilter:
        if not raw:
            return cls.ALL
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.ALL


@dataclass(frozen=True, slots=True)
class User:
    id: str
    username: str
    password_hash: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "password": self.password_hash,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        return cls(
            id=str(data["id"]),
            username=str(data["username"]),
            password_hash=str(data.get("password") or ""),
            created_at=str(data.get("createdAt") or ""),
        )


@dataclass(frozen=True, slots=True)
class CurrentUser:
    id: str
    username: str
    is_logged_in: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "username": self.username, "isLoggedIn": self.is_logged_in}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CurrentUser:
        return cls(
            id=str(data["id"]),
            username=str(data["username"]),
            is_logged_in=bool(data.get("isLoggedIn", True)),
        )


@dataclass(frozen=True, slots=True)
class Translation:
    title: str
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"title": self.title}
        if self.description is not None:
            out["description"] = self.description
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Translation:
        desc = data.get("description")
        return cls(title=str(data.get("title") or ""), description=None if desc is None else str(desc))


@dataclass(frozen=True, slots=True)
class Subtask:
    id: str
    title: str
    completed: bool
    order_index: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "completed": self.completed,
            "orderIndex": self.order_index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Subtask:
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            completed=bool(data.get("completed", False)),
            order_index=int(data.get("orderIndex") or 0),
        )


@dataclass(frozen=True, slots=True)
class Task:
    """
    Task aggregate root.

    Records are immutable; mutations go through dataclasses.replace() and the
    store refreshes updated_at on every write.
    """

    id: str
    user_id: str
    title: str
    description: str
    completed: bool
    original_language: str
    original_title: str
    original_description: str
    current_language: str
    created_at: str
    updated_at: str
    translations: dict[str, Translation] = field(default_factory=dict)
    subtasks: tuple[Subtask, ...] = ()

    # Fields that only the store may set.
    IMMUTABLE_FIELDS = frozenset(
        {"id", "user_id", "created_at", "original_title", "original_language", "original_description"}
    )

    def sorted_subtasks(self) -> list[Subtask]:
        # orderIndex is unique per task, sort is stable for legacy duplicates.
        return sorted(self.subtasks, key=lambda s: s.order_index)

    def completed_subtasks(self) -> int:
        return sum(1 for s in self.subtasks if s.completed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "originalLanguage": self.original_language,
            "originalTitle": self.original_title,
            "originalDescription": self.original_description,
            "currentLanguage": self.current_language,
            "translations": {lang: t.to_dict() for lang, t in self.translations.items()},
            "subtasks": [s.to_dict() for s in self.subtasks],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """Build a Task from an already-upgraded record (see migrations.upgrade_task_record)."""
        translations_raw = data.get("translations") or {}
        subtasks_raw = data.get("subtasks") or []
        return cls(
            id=str(data["id"]),
            user_id=str(data.get("userId") or ""),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            completed=bool(data.get("completed", False)),
            original_language=str(data.get("originalLanguage") or "en"),
            original_title=str(data.get("originalTitle") or ""),
            original_description=str(data.get("originalDescription") or ""),
            current_language=str(data.get("currentLanguage") or "en"),
            created_at=str(data.get("createdAt") or ""),
            updated_at=str(data.get("updatedAt") or ""),
            translations={
                str(lang): Translation.from_dict(t)
                for lang, t in translations_raw.items()
                if isinstance(t, dict)
            },
            subtasks=tuple(Subtask.from_dict(s) for s in subtasks_raw if isinstance(s, dict)),
        )
