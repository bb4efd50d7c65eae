# qa_backend/services/dispatcher.py

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Set

from qa_backend.models.events import ClientCountUpdateEvent, ServerEvent
from qa_backend.services.room_registry import RoomRegistry, Subscriber

logger = logging.getLogger(__name__)


# ============================================================================
# BROADCAST DISPATCHER
# ============================================================================

class BroadcastDispatcher:
    """
    Fans an event out to every live member of a room.

    The member list is snapshotted once; connections that join afterwards do
    not receive the event. Each delivery is independent and bounded by
    ``send_timeout`` seconds: a closed, broken or stalled connection is logged
    and skipped, never raised to the caller. The dispatcher never changes
    membership; a dead connection is cleaned up by its own handler when the
    transport reports the close.
    """

    def __init__(self, registry: RoomRegistry, send_timeout: float = 5.0) -> None:
        self.registry = registry
        self.send_timeout = send_timeout

    async def broadcast(self, room_code: str, event: ServerEvent) -> int:
        """Deliver ``event`` to the room and return how many members got it."""
        members = await self.registry.members_of(room_code)
        if not members:
            logger.debug("[routing] Skipped %s: room=%s has 0 subscribers", event.type, room_code)
            return 0

        message = event.to_wire()
        results = await asyncio.gather(*(self._deliver(member, message) for member in members))
        delivered = sum(results)

        logger.info(
            "📨 %s to room %s: %d/%d delivered", event.type, room_code, delivered, len(members)
        )
        return delivered

    async def _deliver(self, member: Subscriber, message: Dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(member.send_json(message), timeout=self.send_timeout)
        except Exception as exc:
            logger.warning("Send error (%s): %r", type(exc).__name__, exc)
            return False
        return True


# ============================================================================
# PRESENCE COUNTER
# ============================================================================

class PresenceCounter:
    """
    Publishes ``client_count_update`` for a room after a membership change.

    Call ``schedule`` after a join and after a leave, never on question
    events. It returns at once: each room has at most one publisher task,
    and a change that arrives while it is sending marks the room dirty so
    the publisher makes one more pass. Every pass reads the count when it
    runs, so the last update a member sees is the settled count. A stalled
    member only slows that room's publisher, never the connection handlers.
    """

    def __init__(self, registry: RoomRegistry, dispatcher: BroadcastDispatcher) -> None:
        self.registry = registry
        self.dispatcher = dispatcher
        self._dirty: Set[str] = set()
        self._publishers: Dict[str, asyncio.Task] = {}

    def schedule(self, room_code: str) -> asyncio.Task:
        """Request a count publication for ``room_code``; return its publisher."""
        self._dirty.add(room_code)
        task = self._publishers.get(room_code)
        if task is None:
            task = asyncio.create_task(self._run(room_code))
            self._publishers[room_code] = task
        return task

    async def drain(self) -> None:
        """Wait for every running publisher (shutdown, tests)."""
        while self._publishers:
            await asyncio.gather(*list(self._publishers.values()), return_exceptions=True)

    async def _run(self, room_code: str) -> None:
        try:
            while room_code in self._dirty:
                self._dirty.discard(room_code)
                count = await self.registry.count_of(room_code)
                if count:
                    await self.dispatcher.broadcast(room_code, ClientCountUpdateEvent(count=count))
        finally:
            # No await between the last dirty check and here, so a schedule()
            # that found this task still gets its pass.
            self._publishers.pop(room_code, None)
            self._dirty.discard(room_code)
