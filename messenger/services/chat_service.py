# messenger/services/chat_service.py

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

from messenger.core.errors import MalformedInputError, NotMemberError
from messenger.core.logging import get_logger
from messenger.models.models import Message, now_millis
from messenger.services.room_store import RoomStore, room_key

logger = get_logger(__name__)


# ============================================================================
# CHAT SERVICE
# ============================================================================
class ChatService:
    """
    Room membership and message history on top of a RoomStore.

    Every mutation is a read-modify-write of the whole room document:
    get -> change in memory -> put. Two of those racing on the same room would
    lose one of the updates, so mutations of a room run under that room's
    lock. Locks are per room (created lazily, kept for the process lifetime),
    so unrelated rooms never wait on each other.

    Reads take no lock. The store hands out whole documents, so a reader sees
    the room either before or after a mutation, never half of each.

    Data Structures:
        locks: Maps room key -> asyncio.Lock guarding that room's mutations
               Example: {"1": <Lock>, "42": <Lock>}

    Usage:
        service = ChatService(InMemoryRoomStore())
        await service.join(1, "alice")
        await service.post(1, "alice", "hi")
        messages = await service.list_messages(1)
    """

    def __init__(self, store: RoomStore) -> None:
        self.store = store
        self.locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, room_id) -> asyncio.Lock:
        return self.locks.setdefault(room_key(room_id), asyncio.Lock())

    async def _ensure(self, room_id) -> None:
        if await self.store.ensure(room_id):
            logger.info("✓ Created room %s", room_key(room_id))

    async def join(self, room_id, person: str) -> None:
        """
        Add a person to the room's members.

        Joining twice is a no-op, so the roster holds every name once.

        Raises:
            MalformedInputError: person is blank
            StorageError: the store failed; nothing was committed
        """
        if not isinstance(person, str) or not person.strip():
            raise MalformedInputError("person is required")

        async with self._lock_for(room_id):
            await self._ensure(room_id)
            document = await self.store.get(room_id)
            if person in document.people:
                return
            document.people.append(person)
            await self.store.put(room_id, document)

        logger.info("→ %s joined room %s (%d members)", person, room_key(room_id), len(document.people))

    async def post(
        self,
        room_id,
        author: str,
        content: str,
        timecode: Optional[int] = None,
    ) -> Message:
        """
        Append a message to the room's history.

        Args:
            room_id: Target room
            author: Must already be a member of the room
            content: Message text
            timecode: Milliseconds since epoch; stamped with now() when None.
                      A client-supplied value is stored as given.

        Returns:
            Message: The message exactly as stored

        Raises:
            MalformedInputError: author is blank or timecode is not an integer
            NotMemberError: author never joined the room; nothing is stored
            StorageError: the store failed; nothing was committed
        """
        if not isinstance(author, str) or not author.strip():
            raise MalformedInputError("author is required")
        if not isinstance(content, str):
            raise MalformedInputError("content must be a string")
        if timecode is not None and (isinstance(timecode, bool) or not isinstance(timecode, int)):
            raise MalformedInputError("timecode must be an integer")

        async with self._lock_for(room_id):
            await self._ensure(room_id)
            document = await self.store.get(room_id)
            if author not in document.people:
                logger.warning("✗ %s tried to post to room %s without joining", author, room_key(room_id))
                raise NotMemberError(room_key(room_id), author)

            message = Message(
                author=author,
                content=content,
                timecode=now_millis() if timecode is None else timecode,
            )
            document.messages.append(message)
            await self.store.put(room_id, document)

        logger.info("📨 %s posted to room %s (%d messages)", author, room_key(room_id), len(document.messages))
        return message

    async def list_people(self, room_id) -> List[str]:
        """Members of the room in join order (empty for an unknown room)."""
        document = await self.store.get(room_id)
        return document.people

    async def list_messages(self, room_id) -> List[Message]:
        """Messages of the room in arrival order (empty for an unknown room)."""
        document = await self.store.get(room_id)
        return document.messages

