# qa_backend/main.py

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from qa_backend.api import websocket as websocket_module
from qa_backend.api.routes import health, metrics, questions, root, sessions
from qa_backend.core import state
from qa_backend.core.config import settings
from qa_backend.core.exceptions import PersistenceFailure
from qa_backend.core.logging import get_logger, setup_logging
from qa_backend.services.message_store import MongoMessageStore

# Configure logging first
setup_logging()
logger = get_logger(__name__)

# FastAPI app
app = FastAPI(title="Live Q&A Rooms")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# REST routes
app.include_router(root.router)
app.include_router(health.router)
app.include_router(metrics.router)
app.include_router(sessions.router)
app.include_router(questions.router)

# WebSocket routes
app.include_router(websocket_module.router)


@app.on_event("startup")
async def startup_event():
    logger.info("🚀 Application starting")

    # Sockets are only accepted once the store is up
    if not settings.MONGO_URI:
        raise RuntimeError("MONGO_URI is not set")

    store = MongoMessageStore(
        settings.MONGO_URI,
        settings.MONGO_DB,
        code_length=settings.ROOM_CODE_LENGTH,
    )
    try:
        await store.connect()
    except PersistenceFailure:
        logger.critical("MongoDB unreachable, aborting startup")
        raise
    state.bind_store(store)


@app.on_event("shutdown")
async def on_shutdown():
    await state.room_registry.drain()
    await state.presence.drain()
    if state.store is not None:
        await state.store.close()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("qa_backend.main:app", host=settings.HOST, port=settings.PORT)
