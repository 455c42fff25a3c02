# messenger/api/routes/health.py

from datetime import datetime, timezone

from fastapi import APIRouter

from messenger.core import state

router = APIRouter()

@router.get("/health")
async def health():
    """
    Health check endpoint.

    Returns:
        dict: Status, store backend, number of rooms seen since startup, uptime
    """
    uptime_seconds = (datetime.now(timezone.utc) - state.app_start_time).total_seconds()
    return {
        "status": "healthy",
        "store": state.room_store.name,
        "rooms_locked": len(state.chat_service.locks),
        "uptime_seconds": round(uptime_seconds, 1),
    }
