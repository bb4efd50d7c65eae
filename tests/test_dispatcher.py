from __future__ import annotations

import asyncio

import pytest

from qa_backend.models.events import ClientCountUpdateEvent, QuestionDeletedEvent
from qa_backend.services.connection_handler import ConnectionHandler
from tests.conftest import FakeSocket


class StalledSocket(FakeSocket):
    async def send_json(self, data):
        await asyncio.sleep(10)


@pytest.mark.asyncio
async def test_broadcast_skips_broken_member(registry, dispatcher):
    healthy = [FakeSocket(), FakeSocket()]
    broken = FakeSocket(broken=True)
    for sock in [*healthy, broken]:
        await registry.join("ROOM01", sock)

    delivered = await dispatcher.broadcast("ROOM01", QuestionDeletedEvent.for_id("abc"))

    assert delivered == 2
    for sock in healthy:
        assert sock.sent == [{"type": "question_deleted", "payload": {"questionId": "abc"}}]
    # Dispatcher leaves membership alone; the handler cleans up on close.
    assert await registry.count_of("ROOM01") == 3


@pytest.mark.asyncio
async def test_broadcast_times_out_stalled_member(registry, dispatcher):
    fast, slow = FakeSocket(), StalledSocket()
    await registry.join("ROOM01", fast)
    await registry.join("ROOM01", slow)

    delivered = await dispatcher.broadcast("ROOM01", ClientCountUpdateEvent(count=2))

    assert delivered == 1
    assert fast.sent == [{"type": "client_count_update", "count": 2}]


@pytest.mark.asyncio
async def test_broadcast_is_scoped_to_room(registry, dispatcher):
    inside, outside = FakeSocket(), FakeSocket()
    await registry.join("ROOM01", inside)
    await registry.join("ROOM02", outside)

    await dispatcher.broadcast("ROOM01", ClientCountUpdateEvent(count=1))

    assert len(inside.sent) == 1
    assert outside.sent == []


@pytest.mark.asyncio
async def test_broadcast_to_empty_room(dispatcher):
    assert await dispatcher.broadcast("NOPE00", ClientCountUpdateEvent(count=0)) == 0


@pytest.mark.asyncio
async def test_presence_publishes_live_count(registry, presence):
    a, b = FakeSocket(), FakeSocket()
    await registry.join("ROOM01", a)
    await registry.join("ROOM01", b)

    await presence.schedule("ROOM01")

    assert a.counts() == [2]
    assert b.counts() == [2]


@pytest.mark.asyncio
async def test_presence_for_torn_down_room_sends_nothing(presence):
    await presence.schedule("GONE00")
    assert presence._publishers == {}


@pytest.mark.asyncio
async def test_presence_requests_coalesce_into_one_pass(registry, presence):
    a = FakeSocket()
    await registry.join("ROOM01", a)

    first = presence.schedule("ROOM01")
    for _ in range(5):
        assert presence.schedule("ROOM01") is first
    await presence.drain()

    assert a.counts() == [1]


@pytest.mark.asyncio
async def test_stalled_member_does_not_hold_up_joins(registry, dispatcher, presence):
    await registry.join("ROOM01", StalledSocket())
    handlers = [ConnectionHandler(FakeSocket(), registry, presence) for _ in range(6)]

    loop = asyncio.get_running_loop()
    started = loop.time()
    await asyncio.gather(*(h.join("ROOM01") for h in handlers))
    assert loop.time() - started < 0.2

    await presence.drain()
    assert loop.time() - started < 2 * dispatcher.send_timeout + 0.5
    for handler in handlers:
        assert handler.websocket.counts()[-1] == 7
