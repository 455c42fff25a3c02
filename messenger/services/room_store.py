# messenger/services/room_store.py

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from typing import Dict, Optional

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from messenger.core.config import Settings
from messenger.core.errors import StorageError
from messenger.core.logging import get_logger
from messenger.models.models import RoomDocument

logger = get_logger(__name__)

EMPTY_DOCUMENT = RoomDocument().model_dump_json()


def room_key(room_id) -> str:
    """Rooms are addressed by the string form of their id (1 and "1" are the same room)."""
    return str(room_id)


def decode_document(raw: str | bytes) -> RoomDocument:
    try:
        return RoomDocument.model_validate_json(raw)
    except ValidationError as e:
        raise StorageError(f"Corrupt room document: {e}") from e


# ============================================================================
# STORE CONTRACT
# ============================================================================
class RoomStore:
    """
    Maps a room id to its document {people: [...], messages: [...]}.

    Implementations guarantee that a single get or put is atomic: a reader
    sees either the whole previous document or the whole new one. They do NOT
    serialize read-modify-write sequences; that is ChatService's job.

    Every failure of the backing storage surfaces as StorageError and leaves
    the previously stored document untouched.
    """

    name = "abstract"

    async def connect(self) -> None:
        """Open connections / load persisted state. No-op by default."""

    async def close(self) -> None:
        """Release resources. No-op by default."""

    async def get(self, room_id) -> RoomDocument:
        """Return the room's document, or an empty one for a room never touched."""
        raise NotImplementedError

    async def put(self, room_id, document: RoomDocument) -> None:
        """Replace the room's document as a whole."""
        raise NotImplementedError

    async def ensure(self, room_id) -> bool:
        """
        Create an empty document for the room if it has none.

        Returns:
            True if the room was created by this call, False if it already existed
        """
        raise NotImplementedError


# ============================================================================
# IN-MEMORY STORE
# ============================================================================
class InMemoryRoomStore(RoomStore):
    """
    Process-local store, mostly for tests and single-run demos.

    Documents are kept serialized so every get hands out a fresh copy and
    callers can never mutate stored state behind the store's back.
    """

    name = "memory"

    def __init__(self) -> None:
        self.documents: Dict[str, str] = {}

    async def get(self, room_id) -> RoomDocument:
        raw = self.documents.get(room_key(room_id))
        if raw is None:
            return RoomDocument()
        return decode_document(raw)

    async def put(self, room_id, document: RoomDocument) -> None:
        self.documents[room_key(room_id)] = document.model_dump_json()

    async def ensure(self, room_id) -> bool:
        key = room_key(room_id)
        if key in self.documents:
            return False
        self.documents[key] = EMPTY_DOCUMENT
        return True


# ============================================================================
# JSON FILE STORE
# ============================================================================
class JsonFileRoomStore(RoomStore):
    """
    Stores every room in one JSON file so rooms survive backend restarts.

    Storage Format (chats.json):
        {
            "1": {
                "people": ["alice", "bob"],
                "messages": [
                    {"author": "alice", "content": "hi", "timecode": 1000}
                ]
            }
        }

    The file is rewritten through a temp file + os.replace, so a crash mid-write
    never leaves a half-written file behind. The in-memory copy is only updated
    after the file write succeeded. The file is loaded on connect() or, when
    nobody called it, on first access, so a write never replaces rooms that
    were saved by an earlier run.
    """

    name = "file"

    def __init__(self, path: str) -> None:
        self.path = path
        self.documents: Dict[str, str] = {}
        self._loaded = False
        self._write_lock = asyncio.Lock()

    async def connect(self) -> None:
        """Load rooms from the file, if it exists."""
        self._load()

    def _load(self) -> None:
        if not os.path.exists(self.path):
            logger.info(f"No store file at {self.path} - starting empty")
            self.documents = {}
            self._loaded = True
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot load {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Cannot load {self.path}: expected an object of rooms")

        self.documents = {
            key: decode_document(json.dumps(doc)).model_dump_json()
            for key, doc in data.items()
        }
        self._loaded = True
        logger.info(f"✓ Loaded {len(self.documents)} rooms from {self.path}")

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self._load()

    async def get(self, room_id) -> RoomDocument:
        self._ensure_loaded()
        raw = self.documents.get(room_key(room_id))
        if raw is None:
            return RoomDocument()
        return decode_document(raw)

    async def put(self, room_id, document: RoomDocument) -> None:
        async with self._write_lock:
            self._ensure_loaded()
            updated = dict(self.documents)
            updated[room_key(room_id)] = document.model_dump_json()
            await asyncio.to_thread(self._save, updated)
            self.documents = updated

    async def ensure(self, room_id) -> bool:
        key = room_key(room_id)
        async with self._write_lock:
            self._ensure_loaded()
            if key in self.documents:
                return False
            updated = dict(self.documents)
            updated[key] = EMPTY_DOCUMENT
            await asyncio.to_thread(self._save, updated)
            self.documents = updated
            return True

    def _save(self, documents: Dict[str, str]) -> None:
        data = {key: json.loads(raw) for key, raw in documents.items()}
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".chats-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            logger.error(f"Save error: {e}")
            raise StorageError(f"Cannot write {self.path}: {e}") from e


# ============================================================================
# REDIS STORE
# ============================================================================
class RedisRoomStore(RoomStore):
    """
    One redis string per room, holding the JSON document.

    GET and SET are single commands, so each is atomic on the server; ensure
    relies on SET NX.
    """

    name = "redis"

    def __init__(self, url: str, key_prefix: str = "chat:") -> None:
        self.url = url
        self.key_prefix = key_prefix
        self.client: Optional[redis.Redis] = None

    def _key(self, room_id) -> str:
        return f"{self.key_prefix}{room_key(room_id)}"

    def _client(self) -> redis.Redis:
        if self.client is None:
            raise StorageError("Redis store is not connected")
        return self.client

    async def connect(self) -> None:
        """Establish async connection to Redis."""
        try:
            self.client = redis.from_url(self.url, decode_responses=True)
            await self.client.ping()
        except RedisError as e:
            raise StorageError(f"Cannot connect to Redis: {e}") from e
        logger.info("✓ Connected to Redis room store")

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
        logger.info("Redis connection closed")

    async def get(self, room_id) -> RoomDocument:
        try:
            raw = await self._client().get(self._key(room_id))
        except RedisError as e:
            raise StorageError(f"Redis GET failed: {e}") from e
        if raw is None:
            return RoomDocument()
        return decode_document(raw)

    async def put(self, room_id, document: RoomDocument) -> None:
        try:
            await self._client().set(self._key(room_id), document.model_dump_json())
        except RedisError as e:
            raise StorageError(f"Redis SET failed: {e}") from e

    async def ensure(self, room_id) -> bool:
        try:
            created = await self._client().set(self._key(room_id), EMPTY_DOCUMENT, nx=True)
        except RedisError as e:
            raise StorageError(f"Redis SET NX failed: {e}") from e
        return bool(created)


def build_room_store(settings: Settings) -> RoomStore:
    """Pick the store implementation named by STORE_BACKEND."""
    if settings.STORE_BACKEND == "memory":
        return InMemoryRoomStore()
    if settings.STORE_BACKEND == "file":
        return JsonFileRoomStore(settings.STORE_PATH)
    if settings.STORE_BACKEND == "redis":
        return RedisRoomStore(settings.redis_url, key_prefix=settings.REDIS_KEY_PREFIX)
    raise ValueError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND!r}")
