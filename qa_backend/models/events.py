# qa_backend/models/events.py
"""
WebSocket wire frames.

Inbound frames are a closed set: ``JoinFrame`` or ``UnknownFrame``. Anything
that is not a JSON object, or a join frame without a room code, is a
``MalformedFrame``.

Outbound events each know their own wire shape via ``to_wire()``:

    {"type": "new_question", "payload": {"_id": ..., "text": ..., "name": ...}}
    {"type": "question_deleted", "payload": {"questionId": ...}}
    {"type": "client_count_update", "count": 3}
"""

from __future__ import annotations

import json
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from qa_backend.core.exceptions import MalformedFrame
from qa_backend.models.models import Question

# ============================================================================
# INBOUND
# ============================================================================


class JoinFrame(BaseModel):
    type: Literal["join"] = "join"
    room: str = Field(min_length=1, max_length=64)


class UnknownFrame(BaseModel):
    """Any well-formed frame whose type we don't handle (yet)."""

    type: Optional[str] = None


InboundFrame = Union[JoinFrame, UnknownFrame]


def parse_frame(raw: str) -> InboundFrame:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedFrame(f"Invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedFrame(f"Expected a JSON object, got {type(data).__name__}")

    kind = data.get("type")
    if kind == "join":
        try:
            return JoinFrame.model_validate(data)
        except ValidationError as exc:
            raise MalformedFrame(f"Invalid join frame: {exc.errors()}") from exc

    return UnknownFrame(type=kind if isinstance(kind, str) else None)


# ============================================================================
# OUTBOUND
# ============================================================================


class NewQuestionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    text: str
    name: str


class NewQuestionEvent(BaseModel):
    type: Literal["new_question"] = "new_question"
    payload: NewQuestionPayload

    @classmethod
    def for_question(cls, question: Question) -> "NewQuestionEvent":
        # The submitter's address never leaves the server.
        return cls(payload=NewQuestionPayload(id=question.id, text=question.text, name=question.name))

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class QuestionDeletedPayload(BaseModel):
    questionId: str


class QuestionDeletedEvent(BaseModel):
    type: Literal["question_deleted"] = "question_deleted"
    payload: QuestionDeletedPayload

    @classmethod
    def for_id(cls, question_id: str) -> "QuestionDeletedEvent":
        return cls(payload=QuestionDeletedPayload(questionId=question_id))

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class ClientCountUpdateEvent(BaseModel):
    type: Literal["client_count_update"] = "client_count_update"
    count: int = Field(ge=0)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


ServerEvent = Union[NewQuestionEvent, QuestionDeletedEvent, ClientCountUpdateEvent]
