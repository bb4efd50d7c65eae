# qa_backend/api/websocket.py

from __future__ import annotations

from fastapi import APIRouter, WebSocket

from qa_backend.core import state
from qa_backend.services.connection_handler import ConnectionHandler

router = APIRouter()

# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for live room updates.

    Protocol:
    =========

    Client -> Server:
    -----------------
    Join Room:
        {"type": "join", "room": "aB3xY9"}

    Server -> Client:
    -----------------
    Presence (after every join/leave in the room):
        {"type": "client_count_update", "count": 5}

    New Question:
        {"type": "new_question", "payload": {"_id": "...", "text": "...", "name": "..."}}

    Question Deleted:
        {"type": "question_deleted", "payload": {"questionId": "..."}}

    Lifecycle:
    ==========
    1. Client connects; it is in no room yet
    2. Client sends "join"; the room's members get the new count
    3. Client receives question events for that room
    4. On disconnect it is removed and the remaining members get the new count

    Questions are submitted over HTTP (POST /api/ask/{code}), not this socket.
    """
    handler = ConnectionHandler(websocket, state.room_registry, state.presence)
    await handler.run()
