# tests/test_store.py

from __future__ import annotations

import json
import re

import pytest

from todolingo.errors import DuplicateUsername, StorageError, TaskNotFound, TranslationNotFound, ValidationError
from todolingo.storage.kv import JsonFileStorage, MemoryStorage
from todolingo.storage.models import CurrentUser
from todolingo.storage.store import (
    API_KEY_KEY,
    CURRENT_USER_KEY,
    TODO_PREFIX,
    USERS_KEY,
    PersistenceStore,
    hash_password,
    new_id,
)


def test_new_id_format() -> None:
    assert re.fullmatch(r"todo_\d{13}_[a-z0-9]{9}", new_id("todo"))
    assert re.fullmatch(r"subtask_\d{13}_2_[a-z0-9]{9}", new_id("subtask", 2))


def test_create_user_persists_digest_not_password(store, storage) -> None:
    user = store.create_user("alice", "secret1")

    raw = json.loads(storage.get_item(USERS_KEY))
    assert raw[0]["username"] == "alice"
    assert raw[0]["password"] == hash_password("secret1")
    assert "secret1" not in storage.get_item(USERS_KEY)
    assert user.id.startswith("user_")


def test_duplicate_username_is_rejected(store, storage) -> None:
    first = store.create_user("alice", "secret1")
    with pytest.raises(DuplicateUsername):
        store.create_user("alice", "other-password")

    assert store.authenticate("alice", "secret1") == first
    assert store.authenticate("alice", "other-password") is None
    (record,) = json.loads(storage.get_item(USERS_KEY))
    assert record["id"] == first.id
    assert record["password"] == hash_password("secret1")


def test_authenticate(store) -> None:
    user = store.create_user("alice", "secret1")
    assert store.authenticate("alice", "secret1") == user
    assert store.authenticate("alice", "wrong!!") is None
    assert store.authenticate("bob", "secret1") is None


def test_session_marker_roundtrip(store, storage) -> None:
    assert store.get_current_user() is None
    store.set_current_user(CurrentUser(id="user_1", username="alice"))
    assert json.loads(storage.get_item(CURRENT_USER_KEY)) == {
        "id": "user_1",
        "username": "alice",
        "isLoggedIn": True,
    }
    store.set_current_user(None)
    assert storage.get_item(CURRENT_USER_KEY) is None


def test_add_update_delete_task(store) -> None:
    task = store.add_task("u1", title="Buy milk", description="two liters")
    assert task.original_title == "Buy milk"
    assert task.current_language == "en"
    assert task.created_at == task.updated_at

    updated = store.update_task("u1", task.id, completed=True)
    assert updated.completed
    assert updated.updated_at >= task.updated_at
    assert store.get_task("u1", task.id).completed

    store.delete_task("u1", task.id)
    assert store.get_tasks("u1") == []
    with pytest.raises(TaskNotFound):
        store.delete_task("u1", task.id)


def test_tasks_are_scoped_per_user(store, storage) -> None:
    store.add_task("u1", title="Mine")
    store.add_task("u2", title="Theirs")

    assert [t.title for t in store.get_tasks("u1")] == ["Mine"]
    assert storage.get_item(f"{TODO_PREFIX}u2") is not None
    with pytest.raises(TaskNotFound):
        store.get_task("u2", store.get_tasks("u1")[0].id)


def test_update_rejects_immutable_and_unknown_fields(store) -> None:
    task = store.add_task("u1", title="Buy milk")
    with pytest.raises(ValidationError, match="immutable"):
        store.update_task("u1", task.id, original_title="Hacked")
    with pytest.raises(ValidationError, match="Unknown"):
        store.update_task("u1", task.id, colour="red")
    with pytest.raises(TaskNotFound):
        store.update_task("u1", "todo_missing", completed=True)


def test_empty_title_is_rejected(store) -> None:
    with pytest.raises(ValidationError):
        store.add_task("u1", title="   ")


def test_translations_are_keyed_lowercase(store) -> None:
    task = store.add_task("u1", title="Buy milk")
    store.save_translation("u1", task.id, "Spanish", "Comprar leche")

    assert store.get_translation("u1", task.id, "SPANISH").title == "Comprar leche"
    assert store.get_translation("u1", task.id, "french") is None
    assert list(store.get_task("u1", task.id).translations) == ["spanish"]


def test_legacy_records_are_upgraded_and_written_back(store, storage) -> None:
    legacy = [
        {
            "id": "todo_1",
            "userId": "u1",
            "title": "Comprar leche",
            "description": None,
            "completed": False,
            "currentLanguage": "Spanish",
            "translations": {"Spanish": "Comprar leche"},
            "createdAt": "2024-01-01T00:00:00.000Z",
        }
    ]
    storage.set_item(f"{TODO_PREFIX}u1", json.dumps(legacy))

    (task,) = store.get_tasks("u1")

    assert task.original_title == "Comprar leche"
    assert task.current_language == "en"
    assert task.translations["spanish"].title == "Comprar leche"
    assert task.updated_at == "2024-01-01T00:00:00.000Z"

    # The upgrade was persisted once; a second read finds nothing to change.
    persisted = storage.get_item(f"{TODO_PREFIX}u1")
    assert json.loads(persisted)[0]["originalTitle"] == "Comprar leche"
    store.get_tasks("u1")
    assert storage.get_item(f"{TODO_PREFIX}u1") == persisted


def test_corrupt_collection_raises_storage_error(store, storage) -> None:
    storage.set_item(f"{TODO_PREFIX}u1", "{not json")
    with pytest.raises(StorageError):
        store.get_tasks("u1")


def test_quota_exceeded_keeps_previous_state() -> None:
    storage = MemoryStorage(quota_bytes=600)
    store = PersistenceStore(storage)
    store.add_task("u1", title="Small")
    before = storage.get_item(f"{TODO_PREFIX}u1")

    with pytest.raises(StorageError, match="quota"):
        store.add_task("u1", title="x" * 1000)

    assert storage.get_item(f"{TODO_PREFIX}u1") == before
    assert [t.title for t in store.get_tasks("u1")] == ["Small"]


def test_api_key_roundtrip(store, storage) -> None:
    assert store.get_api_key() is None
    store.set_api_key("sk-abc")
    assert storage.get_item(API_KEY_KEY) == "sk-abc"
    store.set_api_key(None)
    assert store.get_api_key() is None


def test_clear_all_data_keeps_api_key(store, storage) -> None:
    store.create_user("alice", "secret1")
    store.set_current_user(CurrentUser(id="u1", username="alice"))
    store.add_task("u1", title="Buy milk")
    store.set_api_key("sk-abc")
    storage.set_item("unrelated", "keep")

    store.clear_all_data()

    assert sorted(storage.keys()) == [API_KEY_KEY, "unrelated"]


def test_export_import(store) -> None:
    store.set_current_user(CurrentUser(id="u1", username="alice"))
    store.add_task("u1", title="Buy milk")
    exported = store.export_user_data("u1")
    data = json.loads(exported)
    assert data["user"]["username"] == "alice"
    assert "exportedAt" in data

    assert store.import_user_data("u2", exported) == 1
    (imported,) = store.get_tasks("u2")
    assert imported.title == "Buy milk"
    assert imported.user_id == "u2"


@pytest.mark.parametrize("payload", ["not json", "[]", '{"todos": "nope"}'])
def test_import_rejects_bad_payloads(store, payload) -> None:
    with pytest.raises(ValidationError):
        store.import_user_data("u1", payload)


def test_json_file_storage_persists_across_instances(tmp_path) -> None:
    path = tmp_path / "store.json"
    first = JsonFileStorage(path)
    first.set_item("k", "v")
    first.set_item("gone", "x")
    first.remove_item("gone")

    second = JsonFileStorage(path)
    assert second.get_item("k") == "v"
    assert list(second.keys()) == ["k"]


def test_json_file_storage_rejects_corrupt_file(tmp_path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{broken", "utf-8")
    with pytest.raises(StorageError):
        JsonFileStorage(path)


def test_current_language_must_name_a_stored_variant(store) -> None:
    task = store.add_task("u1", title="Buy milk")
    with pytest.raises(TranslationNotFound):
        store.update_task("u1", task.id, current_language="klingon")
    assert store.get_task("u1", task.id).current_language == "en"

    store.save_translation("u1", task.id, "spanish", "Comprar leche")
    switched = store.update_task("u1", task.id, current_language=" Spanish ", title="Comprar leche")
    assert switched.current_language == "spanish"


def test_title_patch_follows_selected_variant(store) -> None:
    task = store.add_task("u1", title="Buy milk", description="two liters")

    edited = store.update_task("u1", task.id, title="Buy oat milk")
    assert (edited.original_title, edited.original_description) == ("Buy oat milk", "two liters")

    store.save_translation("u1", task.id, "spanish", "Comprar leche de avena")
    store.update_task("u1", task.id, current_language="spanish", title="Comprar leche de avena", description="")
    edited = store.update_task("u1", task.id, title="Comprar leche")

    assert edited.translations["spanish"].title == "Comprar leche"
    assert edited.translations["spanish"].description is None
    assert edited.original_title == "Buy oat milk"


def test_malformed_subtasks_are_normalized_on_load(store, storage) -> None:
    record = {
        "id": "todo_1",
        "userId": "u1",
        "title": "Trip",
        "originalTitle": "Trip",
        "subtasks": [
            {"title": "no id"},
            "junk",
            {"id": "s1", "title": "Book", "orderIndex": "later"},
            {"id": "s2", "title": "Pack", "orderIndex": "5"},
        ],
        "createdAt": "2024-01-01T00:00:00.000Z",
    }
    storage.set_item(f"{TODO_PREFIX}u1", json.dumps([record]))

    (task,) = store.get_tasks("u1")

    assert [(s.id, s.order_index) for s in task.subtasks] == [("s1", 2), ("s2", 5)]
    persisted = storage.get_item(f"{TODO_PREFIX}u1")
    store.get_tasks("u1")
    assert storage.get_item(f"{TODO_PREFIX}u1") == persisted
