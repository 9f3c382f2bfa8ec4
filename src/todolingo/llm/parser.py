# src/todolingo/llm/parser.py

"""
Subtask extraction from model output.

The model is asked for a JSON array of strings but does not always comply,
so parsing is two-tier:
1. JSON array of strings (max 7 items),
2. line heuristics over conversational/markdown output (max 6 items).
"""

from __future__ import annotations

import json
import logging
import re

from ..errors import UnparsableResponse

logger = logging.getLogger(__name__)

MAX_JSON_SUBTASKS = 7
MAX_HEURISTIC_SUBTASKS = 6
MIN_HEURISTIC_LINE_LEN = 4

_BULLET_RE = re.compile(r"^[\-\*\d\.]+\s*")
_WRAPPING_QUOTES_RE = re.compile(r'^"|"$')


def _from_json(raw: str) -> list[str]:
    try:
        data = json.loads(raw)
    except ValueError:
        return []
    if not isinstance(data, list):
        return []
    items = [item.strip() for item in data if isinstance(item, str) and item.strip()]
    return items[:MAX_JSON_SUBTASKS]


def _from_lines(raw: str) -> list[str]:
    out: list[str] = []
    for line in raw.split("\n"):
        line = line.strip()
        if not line or line.startswith("{") or line.startswith("}"):
            continue
        line = _BULLET_RE.sub("", line, count=1)
        line = _WRAPPING_QUOTES_RE.sub("", line)
        if len(line) < MIN_HEURISTIC_LINE_LEN:
            continue
        out.append(line)
    return out[:MAX_HEURISTIC_SUBTASKS]


def parse_subtasks(raw: str) -> list[str]:
    """Return 1..7 subtask titles or raise UnparsableResponse."""
    text = (raw or "").strip()

    items = _from_json(text)
    if items:
        return items

    logger.debug("Subtask JSON parse failed, trying line extraction. Raw=%r", text[:2000])
    items = _from_lines(text)
    if items:
        return items

    raise UnparsableResponse("Could not parse subtasks from response.")
