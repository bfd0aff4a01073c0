"""In-memory transport for offline runs and tests."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from socketmode.errors import TransportError

from .base import BaseTransport

LOGGER = logging.getLogger(__name__)

_CLOSED = object()


class DummyTransport(BaseTransport):
    """Queue-backed transport; inbound frames are fed with :meth:`feed`."""

    def __init__(self, settings=None) -> None:
        self._settings = settings
        self._inbound: asyncio.Queue[object] = asyncio.Queue()
        self.url: Optional[str] = None
        self.sent: List[str] = []
        self.connected = False
        self.closed = False

    def feed(self, *frames: str | bytes) -> None:
        for frame in frames:
            self._inbound.put_nowait(frame)

    async def connect(self, url: str) -> None:
        LOGGER.debug("Dummy transport connect(%s)", url)
        self.url = url
        self.connected = True

    async def send(self, frame: str) -> None:
        if not self.connected or self.closed:
            raise TransportError("Dummy transport not connected")
        LOGGER.debug("Dummy transport send(): %s", frame)
        self.sent.append(frame)

    async def receive(self) -> str | bytes:
        if self.closed:
            raise TransportError("Dummy transport closed")
        item = await self._inbound.get()
        if item is _CLOSED:
            raise TransportError("Dummy transport closed")
        return item  # type: ignore[return-value]

    async def close(self) -> None:
        LOGGER.debug("Dummy transport close()")
        if not self.closed:
            self.closed = True
            self._inbound.put_nowait(_CLOSED)
