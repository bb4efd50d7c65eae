# qa_backend/services/message_store.py

from __future__ import annotations

import logging
import secrets
import string
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, AsyncMongoClient
from pymongo.errors import DuplicateKeyError, PyMongoError

from qa_backend.core.exceptions import InvalidIdentifier, PersistenceFailure
from qa_backend.models.models import Question, Room

logger = logging.getLogger(__name__)

ROOM_CODE_ALPHABET = string.ascii_letters + string.digits
MAX_CODE_ATTEMPTS = 5


def generate_room_code(length: int = 6) -> str:
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(length))


def parse_object_id(value: str) -> ObjectId:
    """Return ``value`` as an ObjectId or raise ``InvalidIdentifier``."""
    if not ObjectId.is_valid(value):
        raise InvalidIdentifier(value)
    return ObjectId(value)


# ============================================================================
# STORE INTERFACE
# ============================================================================

class MessageStore(ABC):
    """
    Durable record of rooms ("sessions") and their questions.

    Every method raises ``PersistenceFailure`` when the backing store is
    unreachable or rejects the operation. Nothing here retries.
    """

    async def connect(self) -> None:
        """Open the connection. Stores without one can keep the default."""

    async def close(self) -> None:
        """Release the connection."""

    @abstractmethod
    async def create_room(self, name: str) -> Room: ...

    @abstractmethod
    async def list_rooms(self) -> List[Room]: ...

    @abstractmethod
    async def find_room_by_code(self, code: str) -> Optional[Room]: ...

    @abstractmethod
    async def find_room_by_id(self, room_id: str) -> Optional[Room]: ...

    @abstractmethod
    async def increment_connections(self, code: str) -> None: ...

    @abstractmethod
    async def create_question(
        self,
        room: Room,
        text: str,
        name: str,
        source_address: Optional[str] = None,
    ) -> Question: ...

    @abstractmethod
    async def list_questions(self, room_id: str) -> List[Question]: ...

    @abstractmethod
    async def delete_question(self, question_id: str) -> Optional[Question]:
        """Delete by id, returning the removed record or None if absent.

        Raises ``InvalidIdentifier`` if ``question_id`` is malformed.
        """

    @abstractmethod
    async def find_questions_between(self, start: datetime, end: datetime) -> List[Question]: ...


# ============================================================================
# MONGODB IMPLEMENTATION
# ============================================================================

@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except PyMongoError as exc:
        logger.error("MongoDB %s failed: %s", operation, exc)
        raise PersistenceFailure(f"{operation} failed: {exc}") from exc


class MongoMessageStore(MessageStore):
    """
    MongoDB-backed store using pymongo's asyncio client.

    Collections:
        sessions:  {_id, name, code (unique), totalConnections, createdAt}
        questions: {_id, text, name, sessionId, ip, createdAt}
    """

    def __init__(
        self,
        uri: str,
        database: str,
        code_length: int = 6,
        server_selection_timeout_ms: int = 5000,
    ) -> None:
        self.uri = uri
        self.database_name = database
        self.code_length = code_length
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.client: Optional[AsyncMongoClient] = None

    @property
    def _db(self):
        if self.client is None:
            raise PersistenceFailure("Store is not connected")
        return self.client[self.database_name]

    @property
    def sessions(self):
        return self._db["sessions"]

    @property
    def questions(self):
        return self._db["questions"]

    async def connect(self) -> None:
        """Connect, verify with a ping, and make sure indexes exist."""
        self.client = AsyncMongoClient(
            self.uri,
            tz_aware=True,
            serverSelectionTimeoutMS=self.server_selection_timeout_ms,
        )
        try:
            with _translate_errors("connect"):
                await self.client.admin.command("ping")
                await self.sessions.create_index("code", unique=True)
                await self.questions.create_index([("sessionId", ASCENDING), ("createdAt", ASCENDING)])
                await self.questions.create_index("createdAt")
        except PersistenceFailure:
            await self.close()
            raise
        logger.info("✓ Connected to MongoDB database '%s'", self.database_name)

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
            self.client = None
            logger.info("MongoDB connection closed")

    async def create_room(self, name: str) -> Room:
        # Codes are short, so a collision is possible; the unique index decides.
        for _ in range(MAX_CODE_ATTEMPTS):
            doc = {
                "name": name,
                "code": generate_room_code(self.code_length),
                "totalConnections": 0,
                "createdAt": datetime.now(timezone.utc),
            }
            try:
                result = await self.sessions.insert_one(doc)
            except DuplicateKeyError:
                logger.warning("Room code collision on %s, retrying", doc["code"])
                continue
            except PyMongoError as exc:
                logger.error("MongoDB create_room failed: %s", exc)
                raise PersistenceFailure(f"create_room failed: {exc}") from exc
            doc["_id"] = result.inserted_id
            return Room.from_document(doc)
        raise PersistenceFailure(f"Could not allocate a unique room code after {MAX_CODE_ATTEMPTS} attempts")

    async def list_rooms(self) -> List[Room]:
        with _translate_errors("list_rooms"):
            docs = await self.sessions.find().sort("createdAt", DESCENDING).to_list(None)
        return [Room.from_document(d) for d in docs]

    async def find_room_by_code(self, code: str) -> Optional[Room]:
        with _translate_errors("find_room_by_code"):
            doc = await self.sessions.find_one({"code": code})
        return Room.from_document(doc) if doc else None

    async def find_room_by_id(self, room_id: str) -> Optional[Room]:
        oid = parse_object_id(room_id)
        with _translate_errors("find_room_by_id"):
            doc = await self.sessions.find_one({"_id": oid})
        return Room.from_document(doc) if doc else None

    async def increment_connections(self, code: str) -> None:
        with _translate_errors("increment_connections"):
            await self.sessions.update_one({"code": code}, {"$inc": {"totalConnections": 1}})

    async def create_question(
        self,
        room: Room,
        text: str,
        name: str,
        source_address: Optional[str] = None,
    ) -> Question:
        doc = {
            "text": text,
            "name": name,
            "sessionId": parse_object_id(room.id),
            "ip": source_address,
            "createdAt": datetime.now(timezone.utc),
        }
        with _translate_errors("create_question"):
            result = await self.questions.insert_one(doc)
        doc["_id"] = result.inserted_id
        return Question.from_document(doc)

    async def list_questions(self, room_id: str) -> List[Question]:
        oid = parse_object_id(room_id)
        with _translate_errors("list_questions"):
            docs = await self.questions.find({"sessionId": oid}).sort("createdAt", ASCENDING).to_list(None)
        return [Question.from_document(d) for d in docs]

    async def delete_question(self, question_id: str) -> Optional[Question]:
        oid = parse_object_id(question_id)
        with _translate_errors("delete_question"):
            doc = await self.questions.find_one_and_delete({"_id": oid})
        return Question.from_document(doc) if doc else None

    async def find_questions_between(self, start: datetime, end: datetime) -> List[Question]:
        query = {"createdAt": {"$gte": start, "$lte": end}}
        with _translate_errors("find_questions_between"):
            docs = await self.questions.find(query).sort("createdAt", ASCENDING).to_list(None)
        return [Question.from_document(d) for d in docs]
