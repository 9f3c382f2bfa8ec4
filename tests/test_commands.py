# tests/test_commands.py

from __future__ import annotations

import json

import pytest

from todolingo.cli.commands import CommandRegistry, registry
from todolingo.errors import NotAuthenticated, TaskNotFound, ValidationError


@pytest.mark.asyncio
async def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    async def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bb"])

    assert await reg.handle(state, "/a x y") == "h2:x,y"
    assert await reg.handle(state, "/BB z", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_command_registry_keeps_quoted_args_together(state) -> None:
    reg = CommandRegistry()
    reg.register("echo", lambda state, args: "|".join(args), "echo")

    assert await reg.handle(state, '/echo "two words" three') == "two words|three"
    # Unbalanced quote falls back to whitespace splitting.
    assert await reg.handle(state, '/echo "oops here') == '"oops|here'


@pytest.mark.asyncio
async def test_help_lists_registered_commands(state) -> None:
    text = await registry.handle(state, "/help") or ""
    for name in ("/register", "/add", "/translate", "/subtasks", "/export"):
        assert name in text


@pytest.mark.asyncio
async def test_task_commands_require_login(state) -> None:
    with pytest.raises(NotAuthenticated):
        await registry.handle(state, "/add Buy milk")


@pytest.mark.asyncio
async def test_console_flow_add_list_done_delete(state) -> None:
    assert "Registered" in (await registry.handle(state, "/register alice secret1") or "")
    assert await registry.handle(state, "/add Buy milk | two liters") == "Added: Buy milk"
    await registry.handle(state, "/add Walk dog")

    listing = await registry.handle(state, "/list") or ""
    assert "1. [ ] Buy milk" in listing
    assert "2. [ ] Walk dog" in listing

    assert "[x] Buy milk" in (await registry.handle(state, "/done 1") or "")
    assert "Walk dog" not in (await registry.handle(state, "/list completed") or "")
    assert "Buy milk" not in (await registry.handle(state, "/list active") or "")

    shown = await registry.handle(state, "/show 1") or ""
    assert "two liters" in shown

    assert await registry.handle(state, "/delete 1") == "Deleted: Buy milk"
    assert "Buy milk" not in (await registry.handle(state, "/list") or "")


@pytest.mark.asyncio
async def test_unknown_task_reference(logged_in) -> None:
    with pytest.raises(TaskNotFound):
        await registry.handle(logged_in, "/done 3")


@pytest.mark.asyncio
async def test_usage_errors(logged_in) -> None:
    with pytest.raises(ValidationError, match="Usage"):
        await registry.handle(logged_in, "/translate 1")


@pytest.mark.asyncio
async def test_subtasks_command_emits_progress_in_demo_mode(logged_in) -> None:
    await registry.handle(logged_in, "/add Plan trip")
    notes: list[str] = []

    reply = await registry.handle(logged_in, "/subtasks 1", emit=notes.append) or ""

    assert notes == ["Generating subtasks (demo mode)..."]
    assert "Generated 5 subtasks in English" in reply
    assert "/key" in reply


@pytest.mark.asyncio
async def test_translate_switch_original_commands(logged_in) -> None:
    await registry.handle(logged_in, "/add Buy milk")

    translated = await registry.handle(logged_in, "/translate 1 Spanish") or ""
    assert "[Demo: Spanish] Buy milk" in translated

    original = await registry.handle(logged_in, "/original 1") or ""
    assert original.splitlines()[0].endswith("Buy milk")

    switched = await registry.handle(logged_in, "/switch 1 spanish") or ""
    assert "<spanish>" in switched


@pytest.mark.asyncio
async def test_key_command_masks_and_clears(state) -> None:
    assert "No OpenAI API key" in (await registry.handle(state, "/key") or "")

    with pytest.raises(ValidationError):
        await registry.handle(state, "/key not-a-key")

    await registry.handle(state, "/key sk-test-1234567890")
    assert state.api_key == "sk-test-1234567890"
    assert state.store.get_api_key() == "sk-test-1234567890"
    shown = await registry.handle(state, "/key") or ""
    assert "sk-...7890" in shown
    assert "1234567890" not in shown

    await registry.handle(state, "/key clear")
    assert state.api_key is None
    assert state.demo_mode


@pytest.mark.asyncio
async def test_export_and_import_roundtrip_through_files(logged_in, tmp_path) -> None:
    await registry.handle(logged_in, "/add Buy milk")
    path = tmp_path / "export.json"

    assert "Exported" in (await registry.handle(logged_in, f"/export {path}") or "")
    payload = json.loads(path.read_text("utf-8"))
    assert [t["title"] for t in payload["todos"]] == ["Buy milk"]

    await registry.handle(logged_in, "/delete 1")
    assert await registry.handle(logged_in, f"/import {path}") == f"Imported 1 tasks from {path}"
    assert "Buy milk" in (await registry.handle(logged_in, "/list") or "")


@pytest.mark.asyncio
async def test_edit_is_kept_after_translate_and_original(logged_in) -> None:
    await registry.handle(logged_in, "/add Buy milk")
    await registry.handle(logged_in, "/edit 1 Buy oat milk")
    await registry.handle(logged_in, "/translate 1 Spanish")

    original = await registry.handle(logged_in, "/original 1") or ""

    assert original.splitlines()[0].endswith("Buy oat milk")
