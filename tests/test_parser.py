# tests/test_parser.py

from __future__ import annotations

import pytest

from todolingo.errors import UnparsableResponse
from todolingo.llm.parser import parse_subtasks


def test_json_array_is_used_as_is() -> None:
    assert parse_subtasks('["Buy flour", "Preheat oven", "Bake"]') == ["Buy flour", "Preheat oven", "Bake"]


def test_json_array_is_capped_at_seven() -> None:
    raw = "[" + ", ".join(f'"Step {i}"' for i in range(10)) + "]"
    assert parse_subtasks(raw) == [f"Step {i}" for i in range(7)]


def test_json_skips_blank_and_non_string_items() -> None:
    assert parse_subtasks('["  Step A  ", "", 3, null, "Step B"]') == ["Step A", "Step B"]


def test_markdown_list_falls_back_to_lines() -> None:
    raw = """Here is your plan:
1. Research destinations
2. Book flights
- "Pack bags"
* Go
"""
    assert parse_subtasks(raw) == [
        "Here is your plan:",
        "Research destinations",
        "Book flights",
        "Pack bags",
    ]


def test_line_fallback_skips_braces_and_caps_at_six() -> None:
    raw = "{\n" + "\n".join(f"- Task number {i}" for i in range(9)) + "\n}"
    assert parse_subtasks(raw) == [f"Task number {i}" for i in range(6)]


def test_json_object_falls_back_to_lines() -> None:
    raw = '{"subtasks": ["a", "b"]}'
    # A single-line object starts with "{" and is skipped entirely.
    with pytest.raises(UnparsableResponse):
        parse_subtasks(raw)


@pytest.mark.parametrize("raw", ["", "   ", "- a\n- bb\n1."])
def test_nothing_usable_raises(raw) -> None:
    with pytest.raises(UnparsableResponse):
        parse_subtasks(raw)


def test_numbered_and_dashed_lines() -> None:
    assert parse_subtasks("1. Do X\n2. Do Y\n- Do Z") == ["Do X", "Do Y", "Do Z"]


def test_empty_object_is_unparsable() -> None:
    with pytest.raises(UnparsableResponse):
        parse_subtasks("{}")
