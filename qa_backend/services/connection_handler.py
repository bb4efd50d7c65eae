# qa_backend/services/connection_handler.py

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Mapping, Optional

from fastapi import WebSocket, WebSocketDisconnect

from qa_backend.core.exceptions import MalformedFrame
from qa_backend.models.events import JoinFrame, parse_frame
from qa_backend.services.dispatcher import PresenceCounter
from qa_backend.services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    UNJOINED = "unjoined"
    JOINED = "joined"
    DISCONNECTED = "disconnected"


# ============================================================================
# CONNECTION HANDLER
# ============================================================================

class ConnectionHandler:
    """
    Drives one WebSocket connection from accept to close.

    States:
        UNJOINED      initial; receives nothing until it joins a room
        JOINED(code)  member of exactly one room
        DISCONNECTED  terminal; cleanup has run

    Client -> Server:
        {"type": "join", "room": "<room code>"}

    A second join for the same room is a no-op. A join for another room moves
    the connection: it leaves the old room (whose members get a new count) and
    joins the new one. Unknown frame types are ignored and malformed frames
    are logged and dropped; neither closes the connection.

    Only this object changes ``state`` / ``room_code``; the registry is only
    touched through its API.
    """

    def __init__(
        self,
        websocket: WebSocket,
        registry: RoomRegistry,
        presence: PresenceCounter,
    ) -> None:
        self.websocket = websocket
        self.registry = registry
        self.presence = presence
        self.state = ConnectionState.UNJOINED
        self.room_code: Optional[str] = None
        self._cleanup: Optional[asyncio.Task] = None

    async def run(self) -> None:
        await self.websocket.accept()
        logger.info("✓ Connection opened from %s", self._peer())

        try:
            while self.state is not ConnectionState.DISCONNECTED:
                message = await self.websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                await self.handle_message(message)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error("WebSocket error: %s", e)
        finally:
            await self.disconnect()

    async def handle_message(self, message: Mapping[str, Any]) -> None:
        """Handle one ``websocket.receive`` message (text or binary)."""
        text = message.get("text")
        if text is None and message.get("bytes") is not None:
            try:
                text = message["bytes"].decode("utf-8")
            except UnicodeDecodeError:
                pass
        if text is None:
            logger.warning("Dropped malformed frame from %s: not UTF-8 text", self._peer())
            return
        await self.handle_text(text)

    async def handle_text(self, raw: str) -> None:
        try:
            frame = parse_frame(raw)
        except MalformedFrame as exc:
            logger.warning("Dropped malformed frame from %s: %s", self._peer(), exc)
            return

        if isinstance(frame, JoinFrame):
            await self.join(frame.room)
        else:
            logger.debug("Ignoring frame type %r", frame.type)

    async def join(self, room_code: str) -> None:
        if self.state is ConnectionState.DISCONNECTED:
            return

        if self.state is ConnectionState.JOINED:
            if room_code == self.room_code:
                logger.debug("Connection already in room %s", room_code)
                return
            await self._leave_current()

        count = await self.registry.join(room_code, self.websocket)
        self.state = ConnectionState.JOINED
        self.room_code = room_code
        logger.info("→ Connection joined room %s (%d members)", room_code, count)

        self.presence.schedule(room_code)

    async def disconnect(self) -> None:
        """
        Leave the room (if any) and mark the connection closed.

        Idempotent: the first call starts the cleanup as its own task and
        every call waits on that same task. Cancelling a caller doesn't
        cancel the cleanup, so the handle always leaves the registry.
        """
        if self._cleanup is None:
            was_joined = self.state is ConnectionState.JOINED
            self.state = ConnectionState.DISCONNECTED
            self._cleanup = asyncio.create_task(self._close(was_joined))
        await asyncio.shield(self._cleanup)

    async def _close(self, was_joined: bool) -> None:
        if was_joined:
            await self._depart()
        self.room_code = None
        logger.info("✗ Connection from %s closed", self._peer())

    async def _leave_current(self) -> None:
        await self._depart()
        self.state = ConnectionState.UNJOINED
        self.room_code = None

    async def _depart(self) -> None:
        departure = await self.registry.leave(self.websocket)
        if departure is None:
            return
        logger.info("← Connection left room %s (%d members)", departure.room_code, departure.remaining)
        if not departure.torn_down:
            self.presence.schedule(departure.room_code)

    def _peer(self) -> str:
        client = getattr(self.websocket, "client", None)
        return f"{client.host}:{client.port}" if client else "unknown"
