"""Application event handler contract."""

from .context import EventContext, EventHandler, ack_only

__all__ = ["EventContext", "EventHandler", "ack_only"]
