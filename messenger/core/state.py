# messenger/core/state.py
from __future__ import annotations

from datetime import datetime, timezone

from messenger.core.config import settings
from messenger.services.room_store import build_room_store
from messenger.services.chat_service import ChatService

# Global singletons for app state
room_store = build_room_store(settings)
chat_service = ChatService(store=room_store)

app_start_time: datetime = datetime.now(timezone.utc)
