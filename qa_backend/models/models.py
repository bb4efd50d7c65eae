# qa_backend/models/models.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Room(BaseModel):
    """A persisted Q&A session, addressed by its shareable room code."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: str
    code: str
    total_connections: int = Field(0, alias="totalConnections")
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Room":
        return cls.model_validate({**doc, "_id": str(doc["_id"])})

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class Question(BaseModel):
    """A question submitted into a room.

    ``source_address`` is kept for abuse tracing only and is excluded from
    every serialized form handed to clients.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    text: str
    name: str
    session_id: str = Field(alias="sessionId")
    source_address: Optional[str] = Field(None, alias="ip", exclude=True)
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Question":
        return cls.model_validate(
            {**doc, "_id": str(doc["_id"]), "sessionId": str(doc["sessionId"])}
        )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class CreateSessionRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class AskQuestionRequest(BaseModel):
    question: str = Field(min_length=1, max_length=2000)
    name: Optional[str] = None
