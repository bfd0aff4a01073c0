"""Error taxonomy for the Socket Mode client."""

from __future__ import annotations

from typing import Any, Dict, Optional


class SocketModeError(Exception):
    """Base error; ``context`` carries the offending frame or request details."""

    code: str = "socket_mode_error"

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.context: Dict[str, Any] = dict(context or {})

    def __str__(self) -> str:
        message = super().__str__()
        if not self.context:
            return message
        return f"{message} (context={self.context!r})"


class ProtocolError(SocketModeError):
    """Raised when a frame violates the envelope/ack protocol."""

    code = "protocol_error"


class EnvelopeError(ProtocolError):
    """Raised when an inbound frame cannot be classified or read."""

    code = "envelope_error"


class InvalidJSON(EnvelopeError):
    code = "invalid_json"


class UnknownType(EnvelopeError):
    code = "unknown_type"


class FieldUnavailable(EnvelopeError):
    code = "field_unavailable"


class EncodingFailure(ProtocolError):
    code = "encoding_failure"


class UnacknowledgedEvent(ProtocolError):
    code = "unacknowledged_event"


class ConnectError(SocketModeError):
    """Raised when the connection handshake fails."""

    code = "connect_error"


class HandshakeRejected(ConnectError):
    code = "handshake_rejected"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=context)
        self.status_code = status_code


class MalformedHandshakeResponse(ConnectError):
    code = "malformed_handshake_response"


class ConfigError(SocketModeError):
    code = "config_error"


class MissingCredential(ConfigError):
    code = "missing_credential"


class TransportError(SocketModeError):
    """Raised when the underlying transport fails to connect, send or receive."""

    code = "transport_error"


__all__ = [
    "SocketModeError",
    "ProtocolError",
    "EnvelopeError",
    "InvalidJSON",
    "UnknownType",
    "FieldUnavailable",
    "EncodingFailure",
    "UnacknowledgedEvent",
    "ConnectError",
    "HandshakeRejected",
    "MalformedHandshakeResponse",
    "ConfigError",
    "MissingCredential",
    "TransportError",
]
