"""Socket Mode client: envelope classification, acks and connection lifecycle."""

from socketmode.config import SocketModeSettings, get_settings
from socketmode.handler import EventContext, EventHandler
from socketmode.network import ConnectionManager, ConnectionState, ExitStatus, Termination

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "EventContext",
    "EventHandler",
    "ExitStatus",
    "SocketModeSettings",
    "Termination",
    "get_settings",
]
