import asyncio

import pytest
from aiohttp.test_utils import TestClient, TestServer

from threshold_ecdsa.rooms import Db, Room, create_app, main, parse_last_event_id


async def read_event(resp):
    lines = []
    while True:
        raw = await asyncio.wait_for(resp.content.readline(), 5)
        line = raw.decode("utf-8").rstrip("\r\n")
        if line.startswith(":"):
            continue
        if not line:
            if lines:
                return lines
            continue
        lines.append(line)


@pytest.mark.asyncio
async def test_issue_unique_idx_counts_from_one():
    room = Room()
    assert [room.issue_unique_idx() for _ in range(3)] == [1, 2, 3]


@pytest.mark.asyncio
async def test_subscription_reads_history_in_order():
    room = Room()
    await room.publish("a")
    await room.publish("b")
    with room.subscribe() as sub:
        assert await sub.next() == (0, "a")
        assert await sub.next() == (1, "b")


@pytest.mark.asyncio
async def test_subscription_resumes_after_last_seen():
    room = Room()
    await room.publish("a")
    await room.publish("b")
    with room.subscribe(0) as sub:
        assert await sub.next() == (1, "b")


@pytest.mark.asyncio
async def test_subscription_waits_for_publish():
    room = Room()
    with room.subscribe() as sub:
        task = asyncio.ensure_future(sub.next())
        await asyncio.sleep(0)
        assert not task.done()
        await room.publish("x")
        assert await asyncio.wait_for(task, 5) == (0, "x")


@pytest.mark.asyncio
async def test_room_abandoned_when_no_subscribers():
    room = Room()
    assert room.is_abandoned()
    sub = room.subscribe()
    assert not room.is_abandoned()
    sub.close()
    sub.close()
    assert room.is_abandoned()
    other = room.subscribe()
    assert not room.is_abandoned()
    other.close()


@pytest.mark.asyncio
async def test_db_keeps_watched_room_and_replaces_abandoned():
    db = Db()
    room = await db.get_room_or_create_empty("r")
    sub = room.subscribe()
    assert await db.get_room_or_create_empty("r") is room
    sub.close()
    assert await db.get_room_or_create_empty("r") is not room


def test_parse_last_event_id():
    assert parse_last_event_id(None) is None
    assert parse_last_event_id("5") == 5
    with pytest.raises(ValueError):
        parse_last_event_id("abc")
    with pytest.raises(ValueError):
        parse_last_event_id("70000")


@pytest.mark.asyncio
async def test_app_streams_broadcasts_and_issues_indices():
    async with TestClient(TestServer(create_app(Db()))) as client:
        stream = await client.get("/rooms/r1/subscribe")
        assert stream.status == 200
        assert stream.headers["Content-Type"].startswith("text/event-stream")

        first = await client.post("/rooms/r1/issue_unique_idx")
        second = await client.post("/rooms/r1/issue_unique_idx")
        assert await first.json() == {"unique_idx": 1}
        assert await second.json() == {"unique_idx": 2}

        posted = await client.post("/rooms/r1/broadcast", data="hello")
        assert posted.status == 200
        assert await read_event(stream) == ["event: new-message", "id: 0", "data: hello"]

        await client.post("/rooms/r1/broadcast", data="second")
        resumed = await client.get("/rooms/r1/subscribe", headers={"Last-Event-ID": "0"})
        assert await read_event(resumed) == ["event: new-message", "id: 1", "data: second"]
        resumed.close()
        stream.close()


@pytest.mark.asyncio
async def test_app_rejects_bad_last_event_id():
    async with TestClient(TestServer(create_app(Db()))) as client:
        resp = await client.get("/rooms/r1/subscribe", headers={"Last-Event-ID": "nope"})
        assert resp.status == 400
        assert await resp.text() == "last seen msg id is not valid"


@pytest.mark.asyncio
async def test_unwatched_room_is_recreated_for_each_request():
    async with TestClient(TestServer(create_app(Db()))) as client:
        first = await client.post("/rooms/empty/issue_unique_idx")
        second = await client.post("/rooms/empty/issue_unique_idx")
        assert await first.json() == await second.json() == {"unique_idx": 1}


def test_main_rejects_bad_port():
    with pytest.raises(SystemExit) as info:
        main(["--port", "not-a-port"])
    assert info.value.code == 2