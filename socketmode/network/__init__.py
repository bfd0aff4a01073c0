"""Network stack (handshake/transport/connection) for Socket Mode."""

from socketmode.network.connection import ConnectionManager, ConnectionState, ExitStatus, Termination
from socketmode.network.handshake import HandshakeClient, with_debug_reconnects
from socketmode.network.transport.base import BaseTransport
from socketmode.network.transport.dummy import DummyTransport
from socketmode.network.transport.websocket import WebSocketTransport

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "ExitStatus",
    "Termination",
    "HandshakeClient",
    "with_debug_reconnects",
    "BaseTransport",
    "DummyTransport",
    "WebSocketTransport",
]
