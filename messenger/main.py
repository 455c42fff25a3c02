# messenger/main.py

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from messenger.core import state
from messenger.core.errors import MalformedInputError, NotMemberError, StorageError
from messenger.core.logging import setup_logging, get_logger
from messenger.api.routes import root, health, chats, messages

# Configure logging first
setup_logging()
logger = get_logger(__name__)

# FastAPI app
app = FastAPI(title="Messenger")

# CORS (relaxed for now – tighten in prod)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# REST routes
app.include_router(root.router)
app.include_router(health.router)
app.include_router(chats.router)
app.include_router(messages.router)


# ============================================================================
# ERROR MAPPING
# ============================================================================

@app.exception_handler(NotMemberError)
async def not_member_handler(request: Request, exc: NotMemberError):
    return JSONResponse(status_code=403, content={"error": "User not in chat"})


@app.exception_handler(MalformedInputError)
async def malformed_input_handler(request: Request, exc: MalformedInputError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": details})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "DB error"})


@app.on_event("startup")
async def startup_event():
    logger.info(f"🚀 Application starting - store backend: {state.room_store.name}")
    await state.room_store.connect()


@app.on_event("shutdown")
async def on_shutdown():
    await state.room_store.close()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("messenger.main:app", host="0.0.0.0", port=8000)
