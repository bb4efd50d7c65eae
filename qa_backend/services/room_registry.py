# qa_backend/services/room_registry.py

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Set

from qa_backend.core.exceptions import AlreadyJoined
from qa_backend.services.message_store import MessageStore

logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    """What the registry and dispatcher need from a live connection."""

    async def send_json(self, data: Any) -> None: ...


@dataclass(frozen=True)
class Departure:
    """Outcome of removing a handle from its room."""

    room_code: str
    remaining: int

    @property
    def torn_down(self) -> bool:
        return self.remaining == 0


# ============================================================================
# ROOM REGISTRY
# ============================================================================

class RoomRegistry:
    """
    In-memory membership: which live connections are subscribed to which room.

    Data Structures:
        rooms: Maps room code -> Set of subscriber handles in that room
               Example: {"aB3xY9": {websocket1, websocket2}}

        handle_rooms: Maps handle -> the single room code it is joined to

    Both maps are only touched under ``_lock``. A room whose set becomes empty
    is removed, so ``rooms`` never holds a zero-member entry.

    Joining also bumps the room's persisted ``totalConnections`` counter. That
    write runs as a background task; if it fails the failure is logged and the
    join stands.

    Scaling:
        Single process only. Membership is lost on restart, which is fine:
        presence is a live view, not a system of record.
    """

    def __init__(self, store: Optional[MessageStore] = None) -> None:
        self.rooms: Dict[str, Set[Subscriber]] = {}
        self.handle_rooms: Dict[Subscriber, str] = {}
        self._lock = asyncio.Lock()
        self._store = store
        self._pending: Set[asyncio.Task] = set()

    def bind_store(self, store: Optional[MessageStore]) -> None:
        self._store = store

    async def join(self, room_code: str, handle: Subscriber) -> int:
        """
        Register ``handle`` under ``room_code`` and return the live count.

        Joining the room the handle is already in changes nothing and does not
        count as a new connection. A handle joined to a different room must
        ``leave`` first.
        """
        async with self._lock:
            current = self.handle_rooms.get(handle)
            if current == room_code:
                return len(self.rooms[room_code])
            if current is not None:
                raise AlreadyJoined(current)

            members = self.rooms.setdefault(room_code, set())
            members.add(handle)
            self.handle_rooms[handle] = room_code
            count = len(members)

        self._spawn(self._record_join(room_code))
        return count

    async def leave(self, handle: Subscriber) -> Optional[Departure]:
        """
        Remove ``handle`` from whichever room it is in.

        Returns None if the handle was not a member (so a duplicate close is a
        no-op). ``Departure.torn_down`` tells the caller the room emptied and
        was dropped.
        """
        async with self._lock:
            room_code = self.handle_rooms.pop(handle, None)
            if room_code is None:
                return None

            members = self.rooms.get(room_code)
            if members is None:
                return Departure(room_code, 0)
            members.discard(handle)
            remaining = len(members)
            if not members:
                del self.rooms[room_code]

        if remaining == 0:
            logger.info("Room %s torn down (no members left)", room_code)
        return Departure(room_code, remaining)

    async def count_of(self, room_code: str) -> int:
        async with self._lock:
            return len(self.rooms.get(room_code, ()))

    async def members_of(self, room_code: str) -> List[Subscriber]:
        """Snapshot of the current members; safe to iterate without the lock."""
        async with self._lock:
            return list(self.rooms.get(room_code, ()))

    async def active_rooms(self) -> Dict[str, int]:
        async with self._lock:
            return {code: len(members) for code, members in self.rooms.items()}

    async def connection_count(self) -> int:
        async with self._lock:
            return len(self.handle_rooms)

    # ------------------------------------------------------------------
    # Historical counter bookkeeping
    # ------------------------------------------------------------------

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _record_join(self, room_code: str) -> None:
        if self._store is None:
            return
        try:
            await self._store.increment_connections(room_code)
        except Exception as exc:
            # The live set is authoritative; the durable counter is advisory.
            logger.warning("Could not record join for room %s: %s", room_code, exc)

    async def drain(self) -> None:
        """Wait for outstanding counter writes (shutdown, tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
