"""
Realtime fan-out.

Each connected session owns an outbound queue drained by its own pump task,
so publishing never waits on a slow socket and every session receives events
in the order they were published. Publishers that need commit-order delivery
publish while still holding the application write lock.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel

from board.core.ids import gen_id

log = logging.getLogger(__name__)

Sender = Callable[[dict], Awaitable[None]]

_CLOSE = object()


def encode(event: str, data: Any = None, *, ref: str | None = None) -> dict:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True)
    elif isinstance(data, list):
        data = [d.model_dump(mode="json", by_alias=True) if isinstance(d, BaseModel) else d for d in data]
    frame = {"event": event, "data": data}
    if ref is not None:
        frame["ref"] = ref
    return frame


class Connection:
    def __init__(self, send: Sender):
        self.id = gen_id("conn")
        self.operator_token: str | None = None
        self._send = send
        self._queue: asyncio.Queue = asyncio.Queue()
        # set once delivery has failed; nothing is queued after that
        self.dead = False

    def enqueue(self, frame: dict) -> None:
        if not self.dead:
            self._queue.put_nowait(frame)

    def drain(self) -> list[dict]:
        """Take every queued frame without sending it."""
        frames = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is not _CLOSE:
                frames.append(item)
        return frames

    def close(self) -> None:
        self._queue.put_nowait(_CLOSE)

    async def pump(self) -> None:
        while True:
            frame = await self._queue.get()
            if frame is _CLOSE:
                return
            try:
                await self._send(frame)
            except Exception:
                log.warning("delivery to %s failed, dropping session", self.id, exc_info=True)
                self.dead = True
                self.drain()
                return


class Broadcaster:
    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}

    def attach(self, conn: Connection) -> None:
        self._connections[conn.id] = conn
        log.debug("session %s attached (%d open)", conn.id, len(self._connections))

    def detach(self, conn: Connection) -> None:
        if self._connections.pop(conn.id, None) is not None:
            log.debug("session %s detached (%d open)", conn.id, len(self._connections))

    @property
    def connections(self) -> list[Connection]:
        return list(self._connections.values())

    def unicast(self, conn: Connection, event: str, data: Any = None, *, ref: str | None = None) -> None:
        conn.enqueue(encode(event, data, ref=ref))

    def _prune(self) -> None:
        for conn in [c for c in self._connections.values() if c.dead]:
            self.detach(conn)

    def publish(self, event: str, data: Any = None) -> int:
        self._prune()
        frame = encode(event, data)
        for conn in self._connections.values():
            conn.enqueue(frame)
        return len(self._connections)

    def publish_operators(self, event: str, data: Any, *, is_operator: Callable[[Connection], bool]) -> int:
        self._prune()
        frame = encode(event, data)
        sent = 0
        for conn in self._connections.values():
            if is_operator(conn):
                conn.enqueue(frame)
                sent += 1
        return sent
