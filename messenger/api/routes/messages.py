# messenger/api/routes/messages.py

from typing import List

from fastapi import APIRouter, Query

from messenger.core import state
from messenger.models.models import Message, PostMessageRequest

# ============================================================================
# MESSAGE ENDPOINTS
# ============================================================================

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("/post")
async def post_message(request: PostMessageRequest, chat_id: int = Query(..., alias="chatId")):
    """
    Post a message to a room.

    Flow:
        1. Room is created if it doesn't exist yet
        2. Author must have joined the room (POST /chats/attend)
        3. Message is appended with the client's timecode, or the server's
           clock when the client sent none

    Returns:
        dict: {"status": "ok"}

    Errors (see exception handlers in main.py):
        403 {"error": "User not in chat"} if author never joined
        400 on missing/invalid fields, 500 if the store fails
    """
    await state.chat_service.post(chat_id, request.author, request.content, request.timecode)
    return {"status": "ok"}


@router.get("/get", response_model=List[Message])
async def get_messages(chat_id: int = Query(..., alias="chatId")):
    """All messages of the room in the order they arrived."""
    return await state.chat_service.list_messages(chat_id)
