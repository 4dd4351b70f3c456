"""
Tests for storage.py - JSON file store and client-side key/value store.
"""
import json

import pytest

from app.core.errors import StorageError
from app.core.storage import (
    AGENTS,
    STORAGE_KEYS,
    USERS,
    JsonFileStore,
    LocalStorageStore,
)


class TestJsonFileStore:

    async def test_missing_collection_reads_as_empty(self, tmp_path):
        store = JsonFileStore(str(tmp_path))
        assert await store.read(USERS) == {}
        assert await store.read(AGENTS) == {}
        assert list(tmp_path.iterdir()) == []

    async def test_write_is_pretty_printed_with_trailing_newline(self, tmp_path):
        store = JsonFileStore(str(tmp_path))
        data = {"u_1": {"user_id": "u_1", "email": "ada@acme.com"}}

        await store.write(USERS, data)

        raw = (tmp_path / "users.json").read_text(encoding="utf-8")
        assert raw == json.dumps(data, indent=2) + "\n"
        assert await store.read(USERS) == data

    async def test_write_replaces_whole_collection(self, tmp_path):
        store = JsonFileStore(str(tmp_path))
        await store.write(AGENTS, {"agt_1": {"agent_id": "agt_1"}})
        await store.write(AGENTS, {"agt_2": {"agent_id": "agt_2"}})

        assert await store.read(AGENTS) == {"agt_2": {"agent_id": "agt_2"}}

    async def test_no_temp_files_left_behind(self, tmp_path):
        store = JsonFileStore(str(tmp_path))
        await store.write(USERS, {"u_1": {}})
        await store.write(AGENTS, {"agt_1": {}})

        assert sorted(p.name for p in tmp_path.iterdir()) == ["agents.json", "users.json"]

    async def test_failed_replace_keeps_previous_document(self, tmp_path, monkeypatch):
        store = JsonFileStore(str(tmp_path))
        await store.write(USERS, {"u_1": {"user_id": "u_1"}})

        def boom(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("app.core.storage.os.replace", boom)

        with pytest.raises(StorageError, match="disk full"):
            await store.write(USERS, {"u_2": {"user_id": "u_2"}})

        monkeypatch.undo()
        assert await store.read(USERS) == {"u_1": {"user_id": "u_1"}}
        assert [p.name for p in tmp_path.iterdir()] == ["users.json"]

    async def test_corrupt_document_raises_storage_error(self, tmp_path):
        (tmp_path / "users.json").write_text("{not json", encoding="utf-8")
        store = JsonFileStore(str(tmp_path))

        with pytest.raises(StorageError):
            await store.read(USERS)

    async def test_non_object_document_raises_storage_error(self, tmp_path):
        (tmp_path / "agents.json").write_text("[]\n", encoding="utf-8")
        store = JsonFileStore(str(tmp_path))

        with pytest.raises(StorageError):
            await store.read(AGENTS)

    async def test_unwritable_directory_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        store = JsonFileStore(str(blocker / "data"))

        with pytest.raises(StorageError):
            await store.write(USERS, {})

    async def test_custom_filenames(self, tmp_path):
        store = JsonFileStore(str(tmp_path), {USERS: "u.json", AGENTS: "a.json"})
        await store.write(USERS, {"u_1": {}})

        assert (tmp_path / "u.json").exists()
        with pytest.raises(KeyError):
            store.path_for("sessions")


class TestLocalStorageStore:

    async def test_lazily_initializes_both_keys(self):
        store = LocalStorageStore()
        assert store.items == {}

        assert await store.read(USERS) == {}
        assert store.get_item(STORAGE_KEYS[USERS]) == "{}"
        assert store.get_item(STORAGE_KEYS[AGENTS]) == "{}"

    async def test_reads_are_independent_copies(self):
        store = LocalStorageStore()
        await store.write(USERS, {"u_1": {"verified": False}})

        snapshot = await store.read(USERS)
        snapshot["u_1"]["verified"] = True

        assert (await store.read(USERS))["u_1"]["verified"] is False

    async def test_existing_items_are_kept(self):
        items = {"BBF_MOCK_USERS": json.dumps({"u_1": {"email": "ada@acme.com"}})}
        store = LocalStorageStore(items)

        assert await store.read(USERS) == {"u_1": {"email": "ada@acme.com"}}
        assert await store.read(AGENTS) == {}

    async def test_non_object_item_raises_storage_error(self):
        store = LocalStorageStore({"BBF_MOCK_USERS": "[]"})

        with pytest.raises(StorageError):
            await store.read(USERS)

    async def test_corrupt_item_raises_storage_error(self):
        store = LocalStorageStore({"BBF_MOCK_AGENTS": "{oops"})

        with pytest.raises(StorageError):
            await store.read(AGENTS)
