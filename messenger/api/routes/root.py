# messenger/api/routes/root.py

from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def root():
    """
    Root endpoint - API information.

    Returns basic info about the API and its endpoints.
    """
    return {
        "message": "Messenger - multi-room polling chat",
        "version": "1.0",
        "endpoints": {
            "attend": "POST /chats/attend?chatId={id}",
            "post": "POST /messages/post?chatId={id}",
            "messages": "GET /messages/get?chatId={id}",
            "people": "GET /chats/people?chatId={id}",
            "health": "/health",
        },
    }
