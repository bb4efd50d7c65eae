from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from qa_backend.core.exceptions import (
    InvalidIdentifier,
    InvalidRange,
    PersistenceFailure,
    QuestionNotFound,
    RoomNotFound,
)
from tests.conftest import FakeSocket


@pytest.mark.asyncio
async def test_submit_to_unknown_room(service, store, registry):
    watcher = FakeSocket()
    await registry.join("ABC123", watcher)

    with pytest.raises(RoomNotFound):
        await service.submit("ABC123", "Hi", "Alice")

    assert store.questions == {}
    assert watcher.sent == []
    assert service.submitted_count == 0


@pytest.mark.asyncio
async def test_submit_persists_then_broadcasts(service, store, registry):
    room = store.seed_room(code="ROOM01")
    watcher = FakeSocket()
    await registry.join(room.code, watcher)

    question = await service.submit(room.code, "Hi", "Alice", source_address="10.0.0.7")

    stored = store.questions[question.id]
    assert stored["name"] == "Alice"
    assert stored["ip"] == "10.0.0.7"
    assert watcher.sent == [
        {"type": "new_question", "payload": {"_id": question.id, "text": "Hi", "name": "Alice"}}
    ]
    assert service.submitted_count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("name", [None, "", "   "])
async def test_submit_without_name_uses_placeholder(service, store, name):
    room = store.seed_room(code="ROOM01")

    question = await service.submit(room.code, "Hi", name)

    assert question.name == "Anonymous"
    assert store.questions[question.id]["name"] == "Anonymous"


@pytest.mark.asyncio
async def test_failed_write_broadcasts_nothing(service, store, registry):
    room = store.seed_room(code="ROOM01")
    watcher = FakeSocket()
    await registry.join(room.code, watcher)
    store.fail_writes = True

    with pytest.raises(PersistenceFailure):
        await service.submit(room.code, "Hi", "Alice")

    assert watcher.sent == []


@pytest.mark.asyncio
async def test_delete_broadcasts_once_to_owning_room(service, store, registry):
    room = store.seed_room(code="ROOM01")
    other = store.seed_room(code="ROOM02")
    watcher, bystander = FakeSocket(), FakeSocket()
    await registry.join(room.code, watcher)
    await registry.join(other.code, bystander)
    question = await service.submit(room.code, "Hi", "Alice")
    watcher.sent.clear()

    deleted = await service.delete(question.id)

    assert deleted.id == question.id
    assert question.id not in store.questions
    assert watcher.sent == [{"type": "question_deleted", "payload": {"questionId": question.id}}]
    assert bystander.sent == []


@pytest.mark.asyncio
async def test_delete_invalid_id(service, store, registry):
    room = store.seed_room(code="ROOM01")
    watcher = FakeSocket()
    await registry.join(room.code, watcher)

    with pytest.raises(InvalidIdentifier):
        await service.delete("not-an-object-id")
    assert watcher.sent == []


@pytest.mark.asyncio
async def test_delete_missing_question(service):
    with pytest.raises(QuestionNotFound):
        await service.delete("0123456789abcdef01234567")


@pytest.mark.asyncio
async def test_get_session_returns_history_oldest_first(service, store):
    room = store.seed_room(code="ROOM01")
    first = await service.submit(room.code, "First", None)
    second = await service.submit(room.code, "Second", None)

    found, questions = await service.get_session("ROOM01")

    assert found.id == room.id
    assert [q.id for q in questions] == [first.id, second.id]

    with pytest.raises(RoomNotFound):
        await service.get_session("NOPE00")


@pytest.mark.asyncio
async def test_questions_between(service, store):
    room = store.seed_room(code="ROOM01")
    question = await service.submit(room.code, "Hi", None)
    now = datetime.now(timezone.utc)

    found = await service.questions_between(now - timedelta(minutes=1), now + timedelta(minutes=1))
    assert [q.id for q in found] == [question.id]

    naive = datetime.now(timezone.utc).replace(tzinfo=None)
    assert await service.questions_between(naive - timedelta(minutes=1), naive + timedelta(minutes=1))

    with pytest.raises(InvalidRange):
        await service.questions_between(now, now - timedelta(days=1))


@pytest.mark.asyncio
async def test_create_and_list_sessions(service):
    room = await service.create_session("  Keynote  ")
    assert room.name == "Keynote"
    assert len(room.code) == 6
    assert [r.id for r in await service.list_sessions()] == [room.id]
