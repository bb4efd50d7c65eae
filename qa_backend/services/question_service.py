# qa_backend/services/question_service.py

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from qa_backend.core.exceptions import InvalidRange, QuestionNotFound, RoomNotFound
from qa_backend.models.events import NewQuestionEvent, QuestionDeletedEvent
from qa_backend.models.models import Question, Room
from qa_backend.services.dispatcher import BroadcastDispatcher
from qa_backend.services.message_store import MessageStore

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class QuestionService:
    """
    Coordinates the message store and the broadcast dispatcher.

    Writes always complete before the matching event is broadcast, so a
    client never sees a question that isn't in the history.
    """

    def __init__(
        self,
        store: MessageStore,
        dispatcher: BroadcastDispatcher,
        anonymous_name: str = "Anonymous",
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.anonymous_name = anonymous_name
        # Process-local, feeds /metrics
        self.submitted_count = 0

    async def create_session(self, name: str) -> Room:
        room = await self.store.create_room(name.strip())
        logger.info("✓ Created session '%s' (%s)", room.name, room.code)
        return room

    async def list_sessions(self) -> List[Room]:
        return await self.store.list_rooms()

    async def get_session(self, room_code: str) -> Tuple[Room, List[Question]]:
        room = await self.store.find_room_by_code(room_code)
        if room is None:
            raise RoomNotFound(room_code)
        questions = await self.store.list_questions(room.id)
        return room, questions

    async def submit(
        self,
        room_code: str,
        text: str,
        sender_name: Optional[str] = None,
        source_address: Optional[str] = None,
    ) -> Question:
        """
        Persist a question and push it to the room.

        Args:
            room_code: Code of the target room
            text: Question body
            sender_name: Display name; blank or missing uses the anonymous placeholder
            source_address: Network address supplied by the caller, stored for tracing

        Raises:
            RoomNotFound: no session has this code; nothing is written or sent
            PersistenceFailure: the write failed; nothing is sent
        """
        room = await self.store.find_room_by_code(room_code)
        if room is None:
            raise RoomNotFound(room_code)

        name = (sender_name or "").strip() or self.anonymous_name
        question = await self.store.create_question(room, text, name, source_address)
        self.submitted_count += 1
        logger.info("? New question %s in room %s from %s", question.id, room.code, name)

        await self.dispatcher.broadcast(room.code, NewQuestionEvent.for_question(question))
        return question

    async def delete(self, question_id: str) -> Question:
        """
        Delete a question and tell its room.

        Raises:
            InvalidIdentifier: ``question_id`` is not a valid ObjectId
            QuestionNotFound: no question with this id
        """
        question = await self.store.delete_question(question_id)
        if question is None:
            raise QuestionNotFound(question_id)
        logger.info("✗ Deleted question %s", question.id)

        room = await self.store.find_room_by_id(question.session_id)
        if room is not None:
            await self.dispatcher.broadcast(room.code, QuestionDeletedEvent.for_id(question.id))
        return question

    async def questions_between(self, start: datetime, end: datetime) -> List[Question]:
        start, end = _as_utc(start), _as_utc(end)
        if start > end:
            raise InvalidRange(start, end)
        return await self.store.find_questions_between(start, end)
