from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

import pytest
from bson import ObjectId

from qa_backend.core.exceptions import PersistenceFailure
from qa_backend.models.models import Question, Room
from qa_backend.services.dispatcher import BroadcastDispatcher, PresenceCounter
from qa_backend.services.message_store import MessageStore, generate_room_code, parse_object_id
from qa_backend.services.question_service import QuestionService
from qa_backend.services.room_registry import RoomRegistry


class FakeMessageStore(MessageStore):
    """In-memory stand-in for MongoMessageStore, keyed the same way."""

    def __init__(self) -> None:
        self.rooms: dict[str, dict[str, Any]] = {}
        self.questions: dict[str, dict[str, Any]] = {}
        self.increments: list[str] = []
        self.fail_increments = False
        self.fail_writes = False

    def seed_room(self, name: str = "Town hall", code: Optional[str] = None) -> Room:
        doc = {
            "_id": ObjectId(),
            "name": name,
            "code": code or generate_room_code(),
            "totalConnections": 0,
            "createdAt": datetime.now(timezone.utc),
        }
        self.rooms[str(doc["_id"])] = doc
        return Room.from_document(doc)

    async def create_room(self, name: str) -> Room:
        if self.fail_writes:
            raise PersistenceFailure("create_room failed")
        return self.seed_room(name)

    async def list_rooms(self) -> list[Room]:
        docs = sorted(self.rooms.values(), key=lambda d: d["createdAt"], reverse=True)
        return [Room.from_document(d) for d in docs]

    async def find_room_by_code(self, code: str) -> Optional[Room]:
        for doc in self.rooms.values():
            if doc["code"] == code:
                return Room.from_document(doc)
        return None

    async def find_room_by_id(self, room_id: str) -> Optional[Room]:
        parse_object_id(room_id)
        doc = self.rooms.get(room_id)
        return Room.from_document(doc) if doc else None

    async def increment_connections(self, code: str) -> None:
        if self.fail_increments:
            raise PersistenceFailure("increment failed")
        self.increments.append(code)
        for doc in self.rooms.values():
            if doc["code"] == code:
                doc["totalConnections"] += 1

    async def create_question(self, room, text, name, source_address=None) -> Question:
        if self.fail_writes:
            raise PersistenceFailure("create_question failed")
        doc = {
            "_id": ObjectId(),
            "text": text,
            "name": name,
            "sessionId": parse_object_id(room.id),
            "ip": source_address,
            "createdAt": datetime.now(timezone.utc),
        }
        self.questions[str(doc["_id"])] = doc
        return Question.from_document(doc)

    async def list_questions(self, room_id: str) -> list[Question]:
        docs = [d for d in self.questions.values() if str(d["sessionId"]) == room_id]
        docs.sort(key=lambda d: d["createdAt"])
        return [Question.from_document(d) for d in docs]

    async def delete_question(self, question_id: str) -> Optional[Question]:
        parse_object_id(question_id)
        doc = self.questions.pop(question_id, None)
        return Question.from_document(doc) if doc else None

    async def find_questions_between(self, start: datetime, end: datetime) -> list[Question]:
        docs = [d for d in self.questions.values() if start <= d["createdAt"] <= end]
        docs.sort(key=lambda d: d["createdAt"])
        return [Question.from_document(d) for d in docs]


class FakeSocket:
    """Subscriber handle that records what it was sent.

    ``incoming`` feeds ``receive()`` for driving ConnectionHandler.run();
    once exhausted the peer "closes".
    """

    client = None

    def __init__(self, broken: bool = False, incoming: Optional[list[dict]] = None) -> None:
        self.broken = broken
        self.sent: list[dict] = []
        self.incoming = list(incoming or [])
        self.accepted = False

    async def accept(self) -> None:
        self.accepted = True

    async def receive(self) -> dict:
        if self.incoming:
            return self.incoming.pop(0)
        return {"type": "websocket.disconnect", "code": 1000}

    async def send_json(self, data: Any) -> None:
        if self.broken:
            raise RuntimeError("socket is closed")
        self.sent.append(data)

    def counts(self) -> list[int]:
        return [m["count"] for m in self.sent if m["type"] == "client_count_update"]


@pytest.fixture
def store() -> FakeMessageStore:
    return FakeMessageStore()


@pytest.fixture
def registry(store) -> RoomRegistry:
    return RoomRegistry(store)


@pytest.fixture
def dispatcher(registry) -> BroadcastDispatcher:
    return BroadcastDispatcher(registry, send_timeout=0.5)


@pytest.fixture
def presence(registry, dispatcher) -> PresenceCounter:
    return PresenceCounter(registry, dispatcher)


@pytest.fixture
def service(store, dispatcher) -> QuestionService:
    return QuestionService(store, dispatcher, anonymous_name="Anonymous")
