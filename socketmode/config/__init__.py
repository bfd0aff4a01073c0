"""Configuration primitives for the Socket Mode client."""

from .settings import SocketModeSettings, get_settings

__all__ = ["SocketModeSettings", "get_settings"]
