"""Client of the message rooms: join a room, get an index, send and receive messages."""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any, AsyncIterator, Iterable, Iterator, List, Optional, Sequence, Tuple
from urllib.parse import quote, urljoin

import aiohttp


class _SseDecoder:
    """Turns server-sent-event lines into the data of each message event."""

    def __init__(self) -> None:
        self._data: List[str] = []

    def feed(self, line: str) -> Optional[str]:
        line = line.rstrip("\r\n")
        if not line:
            if not self._data:
                return None
            data = "\n".join(self._data)
            self._data = []
            return data
        if line.startswith(":"):
            return None
        field, _sep, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "data":
            self._data.append(value)
        return None


def parse_sse(lines: Iterable[str]) -> Iterator[str]:
    """The data of every complete event in a server-sent-event stream."""
    decoder = _SseDecoder()
    for line in lines:
        data = decoder.feed(line)
        if data is not None:
            yield data


def _decode_line(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ValueError("SSE message is not valid UTF-8 string") from exc


class SmClient:
    """HTTP client bound to one room of the message server."""

    def __init__(
        self, address: str, room_id: str, session: Optional[aiohttp.ClientSession] = None
    ) -> None:
        self.base_url = urljoin(str(address), f"rooms/{quote(room_id, safe='')}/")
        self._session = session
        self._owns_session = session is None

    def _client(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None))
        return self._session

    async def issue_index(self) -> int:
        """Ask the room for a unique party index."""
        async with self._client().post(self.base_url + "issue_unique_idx") as response:
            response.raise_for_status()
            data = await response.json()
        return int(data["unique_idx"])

    async def broadcast(self, message: str) -> None:
        """Publish ``message`` to everyone in the room."""
        async with self._client().post(
            self.base_url + "broadcast", data=message.encode("utf-8")
        ) as response:
            response.raise_for_status()

    async def subscribe(self) -> AsyncIterator[str]:
        """Open the room's event stream; iterate the result for message texts."""
        response = await self._client().get(self.base_url + "subscribe")
        try:
            response.raise_for_status()
        except aiohttp.ClientResponseError:
            response.release()
            raise
        return self._messages(response)

    @staticmethod
    async def _messages(response: aiohttp.ClientResponse) -> AsyncIterator[str]:
        decoder = _SseDecoder()
        buffer = b""
        try:
            async for chunk in response.content.iter_any():
                buffer += chunk
                *lines, buffer = buffer.split(b"\n")
                for raw in lines:
                    data = decoder.feed(_decode_line(raw))
                    if data is not None:
                        yield data
        finally:
            response.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "SmClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


class _Outgoing:
    """Sends messages to the room on behalf of one party."""

    def __init__(self, client: SmClient) -> None:
        self._client = client

    async def send(self, message: Any) -> None:
        await self._client.broadcast(json.dumps(message))

    async def close(self) -> None:
        await self._client.close()


async def join_computation(
    address: str, room_id: str
) -> Tuple[int, AsyncIterator[Any], _Outgoing]:
    """Join a room: this party's index, its incoming messages and its sender.

    Incoming messages from this party itself, and those addressed to another
    party, are left out.
    """
    client = SmClient(address, room_id)
    try:
        messages = await client.subscribe()
        index = await client.issue_index()
    except BaseException:
        await client.close()
        raise

    async def incoming() -> AsyncIterator[Any]:
        try:
            async for text in messages:
                try:
                    message = json.loads(text)
                except ValueError as exc:
                    raise ValueError("deserialize message") from exc
                if not isinstance(message, dict) or "sender" not in message:
                    raise ValueError("deserialize message")
                receiver = message.get("receiver")
                if message["sender"] != index and (receiver is None or receiver == index):
                    yield message
        finally:
            await messages.aclose()

    return index, incoming(), _Outgoing(client)


async def _run(args: argparse.Namespace) -> None:
    client = SmClient(args.address, args.room)
    try:
        if args.cmd == "broadcast":
            await client.broadcast(args.message)
        elif args.cmd == "issue-idx":
            print(f"Index: {await client.issue_index()}")
        else:
            messages = await client.subscribe()
            async for message in messages:
                print(repr(message))
    finally:
        await client.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Talk to a room of the message server.")
    parser.add_argument("-a", "--address", required=True)
    parser.add_argument("-r", "--room", required=True)
    commands = parser.add_subparsers(dest="cmd", required=True)
    commands.add_parser("subscribe")
    broadcast = commands.add_parser("broadcast")
    broadcast.add_argument("-m", "--message", required=True)
    commands.add_parser("issue-idx")
    args = parser.parse_args(argv)
    asyncio.run(_run(args))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())