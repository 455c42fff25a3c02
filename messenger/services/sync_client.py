# messenger/services/sync_client.py

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Union

import httpx
from pydantic import TypeAdapter, ValidationError

from messenger.core.config import settings
from messenger.core.logging import get_logger
from messenger.models.models import Message, now_millis

logger = get_logger(__name__)

_people_adapter = TypeAdapter(List[str])
_messages_adapter = TypeAdapter(List[Message])


@dataclass(frozen=True)
class RoomSnapshot:
    """Client-side copy of a room. version grows by one on every replacement."""

    version: int = 0
    people: List[str] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)


Listener = Callable[[RoomSnapshot], Union[None, Awaitable[None]]]


# ============================================================================
# POLLING CLIENT
# ============================================================================
class SyncClient:
    """
    Keeps a local snapshot of one room in sync with the backend by polling.

    Every tick fetches the full message list and roster and, if both requests
    succeeded, replaces the snapshot wholesale and notifies listeners. A failed
    tick is logged and otherwise ignored: the last good snapshot stays in place
    and the next tick simply tries again. Nothing here raises fetch errors to
    the caller.

    Endpoints used:
        POST /chats/attend?chatId=   {"person": nickname}
        POST /messages/post?chatId=  {"author", "content", "timecode"}
        GET  /messages/get?chatId=
        GET  /chats/people?chatId=

    Usage:
        async with SyncClient("alice", chat_id=1) as client:
            client.subscribe(render)
            await client.attend()
            await client.send("hi")
    """

    def __init__(
        self,
        nickname: str,
        chat_id: int = 1,
        base_url: Optional[str] = None,
        interval: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.nickname = nickname
        self.chat_id = chat_id
        self.interval = settings.POLL_INTERVAL_SECONDS if interval is None else interval
        self._owns_client = http_client is None
        if http_client is None:
            http_client = httpx.AsyncClient(
                base_url=base_url or settings.SERVER_URL,
                timeout=settings.HTTP_TIMEOUT_SECONDS,
            )
        self.http = http_client
        self.snapshot = RoomSnapshot()
        self._listeners: List[Listener] = []
        # refreshes never overlap, so snapshots are published in fetch order
        self._refresh_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # listeners
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callable (sync or async) invoked with every new snapshot.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _publish(self, snapshot: RoomSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Snapshot listener failed")

    # ------------------------------------------------------------------
    # user actions
    # ------------------------------------------------------------------
    async def attend(self) -> bool:
        """Join the room as nickname. Returns whether the server accepted it."""
        try:
            resp = await self.http.post(
                "/chats/attend",
                params={"chatId": self.chat_id},
                json={"person": self.nickname},
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Attend failed for {self.nickname}: {e}")
            return False

        await self.refresh()
        return True

    async def send(self, content: str) -> bool:
        """Post a message stamped with the local clock. Blank text is not sent."""
        text = content.strip()
        if not text:
            return False

        try:
            resp = await self.http.post(
                "/messages/post",
                params={"chatId": self.chat_id},
                json={"author": self.nickname, "content": text, "timecode": now_millis()},
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Send failed for {self.nickname}: {e}")
            return False

        await self.refresh()
        return True

    # ------------------------------------------------------------------
    # polling
    # ------------------------------------------------------------------
    async def refresh(self) -> bool:
        """
        Fetch messages and people once.

        Returns:
            True if a new snapshot was published, False if the previous one was kept
        """
        async with self._refresh_lock:
            params = {"chatId": self.chat_id}
            try:
                messages_resp = await self.http.get("/messages/get", params=params)
                messages_resp.raise_for_status()
                people_resp = await self.http.get("/chats/people", params=params)
                people_resp.raise_for_status()

                messages = _messages_adapter.validate_json(messages_resp.content)
                people = _people_adapter.validate_json(people_resp.content)
            except (httpx.HTTPError, ValidationError) as e:
                logger.debug(f"Refresh of chat {self.chat_id} failed, keeping last snapshot: {e}")
                return False

            self.snapshot = RoomSnapshot(
                version=self.snapshot.version + 1,
                people=people,
                messages=messages,
            )
            await self._publish(self.snapshot)
            return True

    async def _poll_forever(self) -> None:
        while True:
            await self.refresh()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start polling in the background (first fetch happens immediately)."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._poll_forever())
            logger.info(f"✓ Polling chat {self.chat_id} every {self.interval}s")

    async def stop(self) -> None:
        """Stop polling and close the HTTP client if we created it."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._owns_client:
            await self.http.aclose()

    async def __aenter__(self) -> "SyncClient":
        self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.stop()
