# src/todolingo/storage/migrations.py

"""
Task record upgrades.

Older clients stored tasks without the original* fields and kept each
translation as a bare string. upgrade_task_record() lifts any such record to
the current shape. It is pure and idempotent: upgrading an already current
record returns an equal dict, so the store can run it on every load and only
write back when something actually changed.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"


def _normalize_translations(raw: Any) -> dict[str, dict[str, Any]]:
    if not isinstance(raw, dict):
        return {}
    out: dict[str, dict[str, Any]] = {}
    for lang, value in raw.items():
        key = str(lang).lower()
        if isinstance(value, str):
            out[key] = {"title": value}
        elif isinstance(value, dict):
            entry: dict[str, Any] = {"title": str(value.get("title") or "")}
            if value.get("description") is not None:
                entry["description"] = str(value["description"])
            out[key] = entry
    return out


def _normalize_subtasks(raw: Any, task_id: Any) -> list[dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    out: list[dict[str, Any]] = []
    for position, value in enumerate(raw):
        if not isinstance(value, dict) or not value.get("id"):
            logger.warning("Task %s: dropping malformed subtask %r", task_id, value)
            continue
        entry = dict(value)
        order = entry.get("orderIndex")
        if isinstance(order, bool) or not isinstance(order, int):
            try:
                entry["orderIndex"] = int(order)
            except (TypeError, ValueError):
                entry["orderIndex"] = position
        out.append(entry)
    return out


def upgrade_task_record(raw: dict[str, Any]) -> dict[str, Any]:
    rec = copy.deepcopy(raw)

    rec.setdefault("description", "")
    if rec["description"] is None:
        rec["description"] = ""
    rec.setdefault("completed", False)
    rec["subtasks"] = _normalize_subtasks(rec.get("subtasks"), rec.get("id"))
    if not rec.get("originalLanguage"):
        rec["originalLanguage"] = DEFAULT_LANGUAGE

    if not rec.get("originalTitle"):
        # Legacy record: the current text is the original text.
        rec["originalTitle"] = rec.get("title") or ""
        rec["originalDescription"] = rec.get("description") or ""
        rec["currentLanguage"] = rec["originalLanguage"]
    elif rec.get("originalDescription") is None:
        rec["originalDescription"] = ""

    rec["translations"] = _normalize_translations(rec.get("translations"))

    current = rec.get("currentLanguage") or rec["originalLanguage"]
    if current != rec["originalLanguage"]:
        current = str(current).lower()
    if current != rec["originalLanguage"] and current not in rec["translations"]:
        # Dangling language pointer: fall back to the original text.
        logger.info(
            "Task %s points at missing translation %r; restoring original", rec.get("id"), current
        )
        current = rec["originalLanguage"]
        rec["title"] = rec["originalTitle"]
        rec["description"] = rec["originalDescription"]
    rec["currentLanguage"] = current

    rec.setdefault("updatedAt", rec.get("createdAt") or "")
    rec.setdefault("createdAt", rec["updatedAt"])
    return rec


def upgrade_task_records(records: list[Any]) -> tuple[list[dict[str, Any]], bool]:
    """Upgrade a whole collection. Returns (records, changed)."""
    out: list[dict[str, Any]] = []
    changed = False
    for raw in records:
        if not isinstance(raw, dict) or "id" not in raw:
            logger.warning("Dropping malformed task record: %r", raw)
            changed = True
            continue
        upgraded = upgrade_task_record(raw)
        if upgraded != raw:
            changed = True
        out.append(upgraded)
    return out, changed
