"""Test fixtures for the messenger backend."""

import os

import httpx
import pytest

from messenger.core import state
from messenger.main import app
from messenger.services.chat_service import ChatService
from messenger.services.room_store import InMemoryRoomStore


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def store() -> InMemoryRoomStore:
    return InMemoryRoomStore()


@pytest.fixture
def service(store: InMemoryRoomStore) -> ChatService:
    return ChatService(store)


@pytest.fixture
def app_service(monkeypatch: pytest.MonkeyPatch) -> ChatService:
    """Point the app's global singletons at a fresh in-memory store."""
    fresh_store = InMemoryRoomStore()
    fresh_service = ChatService(fresh_store)
    monkeypatch.setattr(state, "room_store", fresh_store)
    monkeypatch.setattr(state, "chat_service", fresh_service)
    return fresh_service


@pytest.fixture
async def http_client(app_service: ChatService):
    """HTTP client talking to the app in-process."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def redis_url() -> str:
    url = os.environ.get("REDIS_URL")
    if not url:
        pytest.skip("REDIS_URL not set")
    return url
