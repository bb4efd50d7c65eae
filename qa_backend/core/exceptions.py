# qa_backend/core/exceptions.py

from __future__ import annotations


class LiveQAError(Exception):
    """Base class for errors raised by the room and question services."""


class RoomNotFound(LiveQAError):
    """No persisted session carries the given room code."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Room not found: {code}")


class InvalidIdentifier(LiveQAError):
    """A record id is not a well-formed ObjectId."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid identifier: {value!r}")


class QuestionNotFound(LiveQAError):
    def __init__(self, question_id: str) -> None:
        self.question_id = question_id
        super().__init__(f"Question not found: {question_id}")


class PersistenceFailure(LiveQAError):
    """The store is unreachable or rejected a read/write."""


class MalformedFrame(LiveQAError):
    """An inbound WebSocket frame could not be interpreted.

    Only ever raised and handled inside the connection handler; the peer
    never sees it.
    """


class InvalidRange(LiveQAError):
    """A time range whose start falls after its end."""

    def __init__(self, start, end) -> None:
        self.start = start
        self.end = end
        super().__init__(f"start ({start.isoformat()}) must not be after end ({end.isoformat()})")


class AlreadyJoined(LiveQAError):
    """A handle tried to join a room while still a member of another one."""

    def __init__(self, room_code: str) -> None:
        self.room_code = room_code
        super().__init__(f"Handle already joined to room {room_code!r}")
