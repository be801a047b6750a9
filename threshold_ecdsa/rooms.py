"""Message rooms served over HTTP: parties join a room, get an index and see every broadcast."""

from __future__ import annotations

import argparse
import asyncio
import re
from typing import Dict, List, Optional, Sequence, Tuple

from aiohttp import web

EVENT_NAME = "new-message"
MAX_BODY_BYTES = 100 * 1024 * 1024
_U16 = 0x10000
_EVENT_ID = re.compile(r"\+?[0-9]+")
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class Room:
    """A message history shared by every subscriber of one room."""

    def __init__(self) -> None:
        self._messages: List[str] = []
        self._appeared = asyncio.Event()
        self._subscribers = 0
        self._next_idx = 1

    async def publish(self, message: str) -> None:
        """Append ``message`` and wake every waiting subscriber."""
        self._messages.append(message)
        appeared, self._appeared = self._appeared, asyncio.Event()
        appeared.set()

    def subscribe(self, last_seen_msg: Optional[int] = None) -> "Subscription":
        """Follow the room from the message after ``last_seen_msg``, or from the start."""
        self._subscribers += 1
        return Subscription(self, 0 if last_seen_msg is None else last_seen_msg + 1)

    def is_abandoned(self) -> bool:
        return self._subscribers == 0

    def issue_unique_idx(self) -> int:
        """The next party index, counting from 1."""
        idx = self._next_idx
        self._next_idx = (idx + 1) % _U16
        return idx

    def _release(self) -> None:
        self._subscribers -= 1


class Subscription:
    """A cursor into a room's history; close it when done."""

    def __init__(self, room: Room, next_event: int) -> None:
        self._room = room
        self._next_event = next_event
        self._closed = False

    async def next(self) -> Tuple[int, str]:
        """The next message and its id, waiting until one is published."""
        while True:
            messages = self._room._messages
            if self._next_event < len(messages):
                event_id = self._next_event
                self._next_event = event_id + 1
                return event_id, messages[event_id]
            await self._room._appeared.wait()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._room._release()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Db:
    """All rooms by id."""

    def __init__(self) -> None:
        self._rooms: Dict[str, Room] = {}

    async def get_room_or_create_empty(self, room_id: str) -> Room:
        """The room, replaced by an empty one if nobody is watching it."""
        room = self._rooms.get(room_id)
        if room is None or room.is_abandoned():
            room = Room()
            self._rooms[room_id] = room
        return room


def parse_last_event_id(header: Optional[str]) -> Optional[int]:
    """The id in a Last-Event-ID header; ValueError if it is not a 16-bit number."""
    if header is None:
        return None
    if not _EVENT_ID.fullmatch(header):
        raise ValueError("last seen msg id is not valid")
    value = int(header)
    if value >= _U16:
        raise ValueError("last seen msg id is not valid")
    return value


def _format_event(event_id: int, message: str) -> bytes:
    lines = [f"event: {EVENT_NAME}", f"id: {event_id}"]
    lines.extend(f"data: {line}" for line in _LINE_BREAK.split(message))
    return ("\n".join(lines) + "\n\n").encode("utf-8")


async def _next_or_stop(
    subscription: Subscription, stopping: asyncio.Event
) -> Optional[Tuple[int, str]]:
    next_task = asyncio.ensure_future(subscription.next())
    stop_task = asyncio.ensure_future(stopping.wait())
    try:
        await asyncio.wait({next_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (next_task, stop_task):
            if not task.done():
                task.cancel()
    if next_task.done() and not next_task.cancelled():
        return next_task.result()
    return None


def create_app(db: Db) -> web.Application:
    """An HTTP application serving the rooms of ``db``."""
    stopping = asyncio.Event()

    async def subscribe(request: web.Request) -> web.StreamResponse:
        try:
            last_seen = parse_last_event_id(request.headers.get("Last-Event-ID"))
        except ValueError:
            return web.Response(status=400, text="last seen msg id is not valid")
        room = await db.get_room_or_create_empty(request.match_info["room_id"])
        response = web.StreamResponse(
            headers={"Content-Type": "text/event-stream", "Cache-Control": "no-cache"}
        )
        with room.subscribe(last_seen) as subscription:
            await response.prepare(request)
            try:
                await response.write(b": stream open\n\n")
                while True:
                    item = await _next_or_stop(subscription, stopping)
                    if item is None:
                        break
                    await response.write(_format_event(*item))
            except ConnectionResetError:
                pass
        return response

    async def issue_idx(request: web.Request) -> web.Response:
        room = await db.get_room_or_create_empty(request.match_info["room_id"])
        return web.json_response({"unique_idx": room.issue_unique_idx()})

    async def broadcast(request: web.Request) -> web.Response:
        message = await request.text()
        room = await db.get_room_or_create_empty(request.match_info["room_id"])
        await room.publish(message)
        return web.Response(status=200)

    async def on_shutdown(app: web.Application) -> None:
        stopping.set()

    app = web.Application(client_max_size=MAX_BODY_BYTES)
    app.add_routes(
        [
            web.get("/rooms/{room_id}/subscribe", subscribe),
            web.post("/rooms/{room_id}/issue_unique_idx", issue_idx),
            web.post("/rooms/{room_id}/broadcast", broadcast),
        ]
    )
    app.on_shutdown.append(on_shutdown)
    return app


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Serve message rooms for GG20 parties.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args(argv)
    web.run_app(create_app(Db()), host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())