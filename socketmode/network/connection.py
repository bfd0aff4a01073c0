"""Connection manager that owns the Socket Mode lifecycle and receive loop."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable, Optional

from socketmode.config import SocketModeSettings
from socketmode.credentials import CredentialStore, SettingsCredentials
from socketmode.errors import MissingCredential, TransportError, UnacknowledgedEvent
from socketmode.handler import EventContext, EventHandler
from socketmode.network.handshake import HandshakeClient, with_debug_reconnects
from socketmode.network.transport.base import BaseTransport
from socketmode.network.transport.websocket import WebSocketTransport
from socketmode.protocol import AppEventEnvelope, Envelope, EnvelopeKind, classify, encode_ack

LOGGER = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


class ExitStatus(IntEnum):
    """Process status for a finished run; no run ends with zero."""

    FAILED = 1
    REMOTE_DISCONNECT = 2
    STOPPED = 3


@dataclass(frozen=True)
class Termination:
    status: ExitStatus
    error: Optional[BaseException] = None
    envelope: Optional[Envelope] = None

    @property
    def exit_code(self) -> int:
        return int(self.status)


class ConnectionManager:
    """Drives one Socket Mode session from handshake to termination.

    Frames are handled strictly one at a time: the handler invocation and the
    ack send for a frame complete before the next frame is read.
    """

    def __init__(
        self,
        settings: SocketModeSettings,
        handler: EventHandler,
        *,
        credentials: Optional[CredentialStore] = None,
        handshake: Optional[HandshakeClient] = None,
        transport_factory: Optional[Callable[[SocketModeSettings], BaseTransport]] = None,
    ) -> None:
        self._settings = settings
        self._handler = handler
        self._credentials = credentials or SettingsCredentials(settings)
        self._owns_handshake = handshake is None
        self._handshake = handshake or HandshakeClient(settings)
        self._transport_factory = transport_factory or WebSocketTransport
        self._state = ConnectionState.DISCONNECTED
        self._transport: Optional[BaseTransport] = None
        self._pending: Optional[BaseTransport] = None
        self._started = False
        self._stop_requested = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    async def run(self) -> Termination:
        """Connect and process frames until the session terminates."""

        if self._started:
            raise RuntimeError("ConnectionManager.run() may only be called once")
        self._started = True
        if self._stop_requested:
            return await self._terminate(ExitStatus.STOPPED)

        envelope: Optional[Envelope] = None
        try:
            await self._connect()
            while not self._stop_requested:
                raw = await self._active().receive()
                envelope = classify(raw)
                if not await self._handle(envelope):
                    return await self._terminate(ExitStatus.REMOTE_DISCONNECT, envelope=envelope)
                envelope = None
                await asyncio.sleep(self._settings.frame_pacing_seconds)
        except asyncio.CancelledError:
            self._state = ConnectionState.CLOSED
            await self._close_all()
            if self._owns_handshake:
                self._handshake.close()
            raise
        except Exception as exc:  # noqa: BLE001
            if self._stop_requested:
                return await self._terminate(ExitStatus.STOPPED, error=exc, envelope=envelope)
            return await self._terminate(ExitStatus.FAILED, error=exc, envelope=envelope)
        return await self._terminate(ExitStatus.STOPPED)

    async def stop(self) -> None:
        """Close every live connection; the loop reads no further frames."""

        if self._stop_requested:
            return
        self._stop_requested = True
        self._state = ConnectionState.CLOSED
        LOGGER.debug("Socket Mode stop requested")
        await self._close_all()

    async def _connect(self) -> None:
        self._transition(ConnectionState.CONNECTING)
        self._transport = await self._open_connection()
        self._transition(ConnectionState.CONNECTED)
        LOGGER.info("Socket Mode connection established")

    async def _reconnect(self, envelope: Envelope) -> None:
        LOGGER.debug("Socket Mode reconnect requested (reason=%s)", envelope.reason)
        self._transition(ConnectionState.RECONNECTING)
        replacement = await self._open_connection()
        expired, self._transport = self._transport, replacement
        self._transition(ConnectionState.CONNECTED)
        LOGGER.info("Socket Mode connection re-established")
        if expired is not None:
            await self._close_quietly(expired)
            LOGGER.debug("Expired Socket Mode connection closed")

    async def _open_connection(self) -> BaseTransport:
        token = self._credentials.get_app_token()
        if token is None:
            raise MissingCredential("Cannot create a Socket Mode connection without a configured app token")
        url = await self._handshake.open_connection(token)
        if self._settings.debug_reconnects:
            url = with_debug_reconnects(url)
        transport = self._transport_factory(self._settings)
        self._pending = transport
        await transport.connect(url)
        if self._stop_requested:
            # stop() ran while connect() was in flight and saw no socket to close.
            await self._close_quietly(transport)
            raise TransportError("Connection opened after stop was requested")
        self._pending = None
        return transport

    async def _handle(self, envelope: Envelope) -> bool:
        """Handle one envelope; ``False`` means the remote side ended the session."""

        if envelope.kind is EnvelopeKind.CONNECTION:
            LOGGER.debug(
                "Socket Mode connection acknowledged by remote (num_connections=%s)",
                envelope.num_connections,  # type: ignore[attr-defined]
            )
        elif envelope.kind is EnvelopeKind.RECONNECT:
            await self._reconnect(envelope)
        elif envelope.kind is EnvelopeKind.DISCONNECT:
            return False
        elif envelope.kind is EnvelopeKind.APP_EVENT:
            await self._handle_app_event(envelope)  # type: ignore[arg-type]
        return True

    async def _handle_app_event(self, envelope: AppEventEnvelope) -> None:
        context = EventContext(envelope)
        await self._invoke(context)
        if not context.is_acknowledged:
            raise UnacknowledgedEvent("App did not ack for the context", context={"envelope": envelope.body()})

        # The envelope_id must be echoed back for the remote side to accept the ack.
        frame = encode_ack(envelope.envelope_id, context.ack_payload)
        await self._active().send(frame)
        context.mark_ack_sent()

        if context.is_deferred:
            await self._invoke(context)

    async def _invoke(self, context: EventContext) -> None:
        result = self._handler(context)
        if inspect.isawaitable(result):
            await result

    def _active(self) -> BaseTransport:
        if self._transport is None:
            raise TransportError("No active Socket Mode connection")
        return self._transport

    def _transition(self, state: ConnectionState) -> None:
        if self._state is ConnectionState.CLOSED:
            raise TransportError("Socket Mode connection manager is closed")
        LOGGER.debug("Socket Mode state %s -> %s", self._state.value, state.value)
        self._state = state

    async def _terminate(
        self,
        status: ExitStatus,
        *,
        error: Optional[BaseException] = None,
        envelope: Optional[Envelope] = None,
    ) -> Termination:
        self._state = ConnectionState.CLOSED
        await self._close_all()
        if self._owns_handshake:
            self._handshake.close()

        body = envelope.body() if envelope is not None else None
        if status is ExitStatus.FAILED:
            LOGGER.error("Error occurred during Socket Mode (envelope=%s): %s", body, error, exc_info=error)
        elif status is ExitStatus.REMOTE_DISCONNECT:
            LOGGER.warning("Socket Mode connection closed by remote (envelope=%s)", body)
        else:
            LOGGER.info("Socket Mode stopped")
        LOGGER.debug("Socket Mode connection closed")
        return Termination(status=status, error=error, envelope=envelope)

    async def _close_all(self) -> None:
        pending, active = self._pending, self._transport
        self._pending = None
        self._transport = None
        for transport in (pending, active):
            if transport is not None:
                await self._close_quietly(transport)

    @staticmethod
    async def _close_quietly(transport: BaseTransport) -> None:
        try:
            await transport.close()
        except Exception:  # noqa: BLE001
            LOGGER.debug("Suppress transport close error", exc_info=True)


__all__ = ["ConnectionManager", "ConnectionState", "ExitStatus", "Termination"]
