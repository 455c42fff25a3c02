# messenger/api/routes/chats.py

from typing import List

from fastapi import APIRouter, Query

from messenger.api.routes import messages
from messenger.core import state
from messenger.models.models import AttendRequest, Message

# ============================================================================
# ROOM MEMBERSHIP ENDPOINTS
# ============================================================================

router = APIRouter(prefix="/chats", tags=["chats"])


@router.post("/attend")
async def attend_chat(request: AttendRequest, chat_id: int = Query(..., alias="chatId")):
    """
    Join a chat room.

    The room is created on first use. Joining again is harmless.

    Returns:
        dict: {"status": "ok"}

    Errors (see exception handlers in main.py):
        400 if person is blank, 500 if the store fails
    """
    await state.chat_service.join(chat_id, request.person)
    return {"status": "ok"}


@router.get("/people", response_model=List[str])
async def list_people(chat_id: int = Query(..., alias="chatId")):
    """Members of the room in join order."""
    return await state.chat_service.list_people(chat_id)


# The first server version served messages under /chats; same handlers as /messages.
router.add_api_route("/post", messages.post_message, methods=["POST"], name="post_message_legacy")
router.add_api_route(
    "/get", messages.get_messages, methods=["GET"], response_model=List[Message], name="get_messages_legacy"
)
