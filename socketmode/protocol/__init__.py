from .ack import Ack, AckPayload, encode_ack
from .envelope import (
    AppEventEnvelope,
    ConnectionEnvelope,
    DisconnectEnvelope,
    Envelope,
    EnvelopeKind,
    ReconnectEnvelope,
    classify,
)

__all__ = [
    "Ack",
    "AckPayload",
    "encode_ack",
    "AppEventEnvelope",
    "ConnectionEnvelope",
    "DisconnectEnvelope",
    "Envelope",
    "EnvelopeKind",
    "ReconnectEnvelope",
    "classify",
]
