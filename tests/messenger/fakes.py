"""Scripted request port and wire body builders shared by messenger tests."""

from __future__ import annotations

import asyncio
import json
from collections import deque
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

import anyio

from chatpull.messenger.streaming.stream import RECONNECT_PATH

USER_ID = "100"
PULL_HOST = "edge-chat"

# bytes are returned as-is, exceptions are raised, callables are awaited.
Reply = bytes | BaseException | Callable[[], Awaitable[bytes]]


def guarded(*objects: Any) -> bytes:
    """Encode *objects* as a guarded AJAX body of concatenated JSON."""
    return b"for (;;);" + "\n".join(json.dumps(obj) for obj in objects).encode()


def reconnect_body(host: str = PULL_HOST) -> bytes:
    return guarded({"__ar": 1, "payload": {"host": host}})


def lb_body(pool: str = "atn2c06_chat-proxy", sticky: str = "sticky-42") -> bytes:
    return guarded({"t": "lb", "lb_info": {"sticky": sticky, "pool": pool}})


def msg_body(seq: int, *frames: dict[str, Any]) -> bytes:
    return guarded({"t": "msg", "seq": seq, "ms": list(frames)})


class FakeRequestPort:
    """Scripted ``RequestPort``.

    GETs are routed to the reconnect reply, the discovery reply (a pull
    request without a sticky token) or the next scripted poll reply.  Once
    the poll script is exhausted the request blocks until cancelled and
    ``exhausted`` is set.  POSTs pop from ``posts`` in order.
    """

    def __init__(
        self,
        *,
        reconnect: Reply | None = None,
        discovery: Reply | None = None,
        polls: Iterable[Reply] = (),
        posts: Iterable[Reply] = (),
    ) -> None:
        self.reconnect = reconnect_body() if reconnect is None else reconnect
        self.discovery = lb_body() if discovery is None else discovery
        self.polls: deque[Reply] = deque(polls)
        self.posts: deque[Reply] = deque(posts)

        self.gets: list[tuple[str, dict[str, str]]] = []
        self.poll_params: list[dict[str, str]] = []
        self.post_calls: list[tuple[str, dict[str, str]]] = []
        self.exhausted = asyncio.Event()

    @staticmethod
    async def _reply(reply: Reply) -> bytes:
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return await reply()
        return reply

    async def get(self, url: str, params: dict[str, str] | None = None) -> bytes:
        params = dict(params or {})
        self.gets.append((url, params))
        await asyncio.sleep(0)
        if url.endswith(RECONNECT_PATH):
            return await self._reply(self.reconnect)
        if "sticky_token" not in params:
            return await self._reply(self.discovery)

        self.poll_params.append(params)
        if not self.polls:
            self.exhausted.set()
            await anyio.sleep_forever()
        return await self._reply(self.polls.popleft())

    async def post(self, url: str, data: dict[str, str] | None = None) -> bytes:
        data = dict(data or {})
        self.post_calls.append((url, data))
        await asyncio.sleep(0)
        if not self.posts:
            msg = f"unexpected POST {url}"
            raise AssertionError(msg)
        return await self._reply(self.posts.popleft())

