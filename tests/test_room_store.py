"""Tests for the RoomStore implementations."""

import asyncio
import json
import threading

import pytest

from messenger.core.config import Settings
from messenger.core.errors import StorageError
from messenger.models.models import Message, RoomDocument
from messenger.services.room_store import (
    InMemoryRoomStore,
    JsonFileRoomStore,
    RedisRoomStore,
    build_room_store,
)

pytestmark = pytest.mark.anyio


def sample_document() -> RoomDocument:
    return RoomDocument(
        people=["alice", "bob"],
        messages=[
            Message(author="alice", content="hi", timecode=1000),
            Message(author="bob", content="yo", timecode=500),
        ],
    )


class TestInMemoryRoomStore:
    async def test_unknown_room_is_empty(self) -> None:
        store = InMemoryRoomStore()
        document = await store.get(7)
        assert document.people == []
        assert document.messages == []

    async def test_put_then_get_keeps_content_and_order(self) -> None:
        store = InMemoryRoomStore()
        await store.put(1, sample_document())

        document = await store.get(1)
        assert document.people == ["alice", "bob"]
        assert [m.content for m in document.messages] == ["hi", "yo"]
        assert document == sample_document()

    async def test_ensure_is_idempotent(self) -> None:
        store = InMemoryRoomStore()
        assert await store.ensure(1) is True
        await store.put(1, sample_document())
        assert await store.ensure(1) is False
        assert (await store.get(1)).people == ["alice", "bob"]

    async def test_int_and_str_ids_address_same_room(self) -> None:
        store = InMemoryRoomStore()
        await store.put(3, sample_document())
        assert (await store.get("3")).people == ["alice", "bob"]

    async def test_get_returns_independent_copy(self) -> None:
        store = InMemoryRoomStore()
        await store.put(1, sample_document())

        document = await store.get(1)
        document.people.append("mallory")

        assert (await store.get(1)).people == ["alice", "bob"]


class TestJsonFileRoomStore:
    async def test_survives_restart(self, tmp_path) -> None:
        path = tmp_path / "chats.json"
        store = JsonFileRoomStore(str(path))
        await store.connect()
        await store.put(1, sample_document())

        reopened = JsonFileRoomStore(str(path))
        await reopened.connect()
        assert await reopened.get(1) == sample_document()

    async def test_file_format(self, tmp_path) -> None:
        path = tmp_path / "chats.json"
        store = JsonFileRoomStore(str(path))
        await store.connect()
        await store.ensure(2)
        await store.put(1, sample_document())

        data = json.loads(path.read_text())
        assert data["2"] == {"people": [], "messages": []}
        assert data["1"]["messages"][0] == {"author": "alice", "content": "hi", "timecode": 1000}

    async def test_missing_file_starts_empty(self, tmp_path) -> None:
        store = JsonFileRoomStore(str(tmp_path / "absent.json"))
        await store.connect()
        assert await store.get(1) == RoomDocument()

    async def test_corrupt_file_raises_storage_error(self, tmp_path) -> None:
        path = tmp_path / "chats.json"
        path.write_text("{not json")
        store = JsonFileRoomStore(str(path))
        with pytest.raises(StorageError):
            await store.connect()

    async def test_corrupt_document_raises_storage_error(self, tmp_path) -> None:
        path = tmp_path / "chats.json"
        path.write_text(json.dumps({"1": {"people": "alice", "messages": []}}))
        store = JsonFileRoomStore(str(path))
        with pytest.raises(StorageError):
            await store.connect()

    async def test_failed_write_keeps_previous_document(self, tmp_path) -> None:
        path = tmp_path / "chats.json"
        store = JsonFileRoomStore(str(path))
        await store.connect()
        await store.put(1, sample_document())

        store.path = str(tmp_path / "missing-dir" / "chats.json")
        with pytest.raises(StorageError):
            await store.put(1, RoomDocument(people=["eve"]))

        assert (await store.get(1)).people == ["alice", "bob"]

    async def test_write_without_connect_keeps_saved_rooms(self, tmp_path) -> None:
        path = tmp_path / "chats.json"
        path.write_text(json.dumps({"1": sample_document().model_dump()}))

        store = JsonFileRoomStore(str(path))
        assert await store.ensure(2) is True

        data = json.loads(path.read_text())
        assert set(data) == {"1", "2"}
        assert data["1"]["people"] == ["alice", "bob"]

    async def test_get_without_connect_reads_file(self, tmp_path) -> None:
        path = tmp_path / "chats.json"
        path.write_text(json.dumps({"1": sample_document().model_dump()}))

        store = JsonFileRoomStore(str(path))
        assert await store.get(1) == sample_document()

    async def test_reads_proceed_while_file_is_written(self, tmp_path, monkeypatch) -> None:
        store = JsonFileRoomStore(str(tmp_path / "chats.json"))
        await store.connect()
        await store.put(1, sample_document())

        writing = threading.Event()
        release = threading.Event()
        real_save = store._save

        def slow_save(documents):
            writing.set()
            release.wait(timeout=5)
            real_save(documents)

        monkeypatch.setattr(store, "_save", slow_save)
        put_task = asyncio.create_task(store.put(1, RoomDocument(people=["carol"])))
        while not writing.is_set():
            await asyncio.sleep(0.01)

        # write still in flight: readers get the previous document
        assert (await store.get(1)).people == ["alice", "bob"]
        assert not put_task.done()

        release.set()
        await put_task
        assert (await store.get(1)).people == ["carol"]

    async def test_concurrent_puts_to_different_rooms_all_saved(self, tmp_path) -> None:
        path = tmp_path / "chats.json"
        store = JsonFileRoomStore(str(path))
        await store.connect()

        await asyncio.gather(*(store.put(i, RoomDocument(people=[f"user{i}"])) for i in range(10)))

        reopened = JsonFileRoomStore(str(path))
        await reopened.connect()
        for i in range(10):
            assert (await reopened.get(i)).people == [f"user{i}"]


class TestBuildRoomStore:
    def test_picks_backend_from_settings(self) -> None:
        settings = Settings()
        settings.STORE_BACKEND = "memory"
        assert isinstance(build_room_store(settings), InMemoryRoomStore)

        settings.STORE_BACKEND = "file"
        settings.STORE_PATH = "somewhere.json"
        store = build_room_store(settings)
        assert isinstance(store, JsonFileRoomStore)
        assert store.path == "somewhere.json"

        settings.STORE_BACKEND = "redis"
        assert isinstance(build_room_store(settings), RedisRoomStore)

    def test_unknown_backend(self) -> None:
        settings = Settings()
        settings.STORE_BACKEND = "postgres"
        with pytest.raises(ValueError):
            build_room_store(settings)


class TestRedisRoomStore:
    async def test_round_trip(self, redis_url: str) -> None:
        store = RedisRoomStore(redis_url, key_prefix="test-messenger:")
        await store.connect()
        try:
            await store.client.delete("test-messenger:1")
            assert await store.ensure(1) is True
            assert await store.ensure(1) is False
            await store.put(1, sample_document())
            assert await store.get(1) == sample_document()
        finally:
            await store.client.delete("test-messenger:1")
            await store.close()

    async def test_not_connected_raises_storage_error(self) -> None:
        store = RedisRoomStore("redis://localhost:6379")
        with pytest.raises(StorageError):
            await store.get(1)
