"""WebSocket transport implementation."""

from __future__ import annotations

import logging
from typing import Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from socketmode.config import SocketModeSettings
from socketmode.errors import TransportError
from socketmode.network.transport.base import BaseTransport

LOGGER = logging.getLogger(__name__)


class WebSocketTransport(BaseTransport):
    """WebSocket-based Socket Mode transport."""

    def __init__(self, settings: SocketModeSettings) -> None:
        self._settings = settings
        self._ws: Optional[ClientConnection] = None

    async def connect(self, url: str) -> None:
        LOGGER.debug("Connecting to Socket Mode WebSocket")
        try:
            self._ws = await connect(
                url,
                open_timeout=self._settings.websocket_open_timeout_seconds,
                close_timeout=self._settings.websocket_close_timeout_seconds,
            )
        except (OSError, TimeoutError, WebSocketException) as exc:
            raise TransportError(f"WebSocket connect failed: {exc}") from exc

    async def send(self, frame: str) -> None:
        if not self._ws:
            raise TransportError("WebSocket transport not connected")
        LOGGER.debug("WebSocket send: %s", frame)
        try:
            await self._ws.send(frame)
        except ConnectionClosed as exc:
            raise TransportError(f"WebSocket closed during send: {exc}") from exc

    async def receive(self) -> str | bytes:
        if not self._ws:
            raise TransportError("WebSocket transport not connected")
        try:
            raw = await self._ws.recv()
        except ConnectionClosed as exc:
            raise TransportError(f"WebSocket closed during receive: {exc}") from exc
        LOGGER.debug("WebSocket receive: %s", raw)
        return raw

    async def close(self) -> None:
        if self._ws:
            LOGGER.debug("Closing WebSocket transport")
            ws, self._ws = self._ws, None
            await ws.close()
