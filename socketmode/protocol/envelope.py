"""Classification of inbound Socket Mode frames into typed envelopes."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Dict, FrozenSet, Mapping, Optional

from socketmode.errors import FieldUnavailable, InvalidJSON, UnknownType


class EnvelopeKind(str, Enum):
    CONNECTION = "connection"
    DISCONNECT = "disconnect"
    RECONNECT = "reconnect"
    APP_EVENT = "app_event"


TYPE_MAP: Mapping[str, EnvelopeKind] = MappingProxyType(
    {
        "hello": EnvelopeKind.CONNECTION,
        "disconnect": EnvelopeKind.DISCONNECT,
        "slash_commands": EnvelopeKind.APP_EVENT,
        "interactive": EnvelopeKind.APP_EVENT,
        "events_api": EnvelopeKind.APP_EVENT,
    }
)

# Disconnect reasons that ask the client to open a fresh connection.
RECOVERABLE_REASONS: FrozenSet[str] = frozenset({"warning", "refresh_requested"})


@dataclass(frozen=True)
class Envelope:
    """Decoded view of one inbound frame.

    Kind-specific accessors raise :class:`FieldUnavailable` on variants that do
    not carry the field, so callers must branch on ``kind`` first.
    """

    kind: ClassVar[EnvelopeKind]

    type: str
    data: Mapping[str, Any] = field(repr=False)

    @property
    def envelope_id(self) -> str:
        raise self._unavailable("envelope_id")

    @property
    def payload(self) -> Dict[str, Any]:
        raise self._unavailable("payload")

    @property
    def reason(self) -> Optional[str]:
        raise self._unavailable("reason")

    def body(self) -> Dict[str, Any]:
        """Return a mutable copy of the raw decoded body."""

        return dict(self.data)

    def _unavailable(self, name: str) -> FieldUnavailable:
        return FieldUnavailable(
            f"{name} not available in {self.kind.value} envelope",
            context={"envelope": self.body()},
        )


@dataclass(frozen=True)
class ConnectionEnvelope(Envelope):
    kind: ClassVar[EnvelopeKind] = EnvelopeKind.CONNECTION

    @property
    def num_connections(self) -> Optional[int]:
        return self.data.get("num_connections")

    @property
    def debug_info(self) -> Optional[Dict[str, Any]]:
        return self.data.get("debug_info")


@dataclass(frozen=True)
class DisconnectEnvelope(Envelope):
    kind: ClassVar[EnvelopeKind] = EnvelopeKind.DISCONNECT

    @property
    def reason(self) -> Optional[str]:
        return self.data.get("reason")


@dataclass(frozen=True)
class ReconnectEnvelope(Envelope):
    kind: ClassVar[EnvelopeKind] = EnvelopeKind.RECONNECT

    @property
    def reason(self) -> Optional[str]:
        return self.data.get("reason")


@dataclass(frozen=True)
class AppEventEnvelope(Envelope):
    kind: ClassVar[EnvelopeKind] = EnvelopeKind.APP_EVENT

    @property
    def envelope_id(self) -> str:
        return self.data["envelope_id"]

    @property
    def payload(self) -> Dict[str, Any]:
        return self.data["payload"]

    @property
    def accepts_response_payload(self) -> bool:
        return bool(self.data.get("accepts_response_payload", False))

    @property
    def retry_attempt(self) -> Optional[int]:
        return self.data.get("retry_attempt")

    @property
    def retry_reason(self) -> Optional[str]:
        return self.data.get("retry_reason")


def _decode(raw: str | bytes) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidJSON("Envelope is not valid UTF-8") from exc
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise InvalidJSON("Invalid envelope JSON", context={"raw": raw}) from exc


def classify(raw: str | bytes) -> Envelope:
    """Decode ``raw`` into the envelope variant declared by its ``type`` field."""

    data = _decode(raw)
    if not isinstance(data, dict):
        raise UnknownType("Envelope body is not an object", context={"envelope": data})

    declared = data.get("type")
    kind = TYPE_MAP.get(declared) if isinstance(declared, str) else None
    if kind is None:
        raise UnknownType("Cannot determine type of envelope", context={"envelope": data})

    frozen = MappingProxyType(data)
    if kind is EnvelopeKind.CONNECTION:
        return ConnectionEnvelope(type=declared, data=frozen)
    if kind is EnvelopeKind.DISCONNECT:
        if data.get("reason") in RECOVERABLE_REASONS:
            return ReconnectEnvelope(type=declared, data=frozen)
        return DisconnectEnvelope(type=declared, data=frozen)

    if not isinstance(data.get("envelope_id"), str):
        raise FieldUnavailable("Envelope ID not available in app event envelope", context={"envelope": data})
    if not isinstance(data.get("payload"), dict):
        raise FieldUnavailable("Payload not available in app event envelope", context={"envelope": data})
    return AppEventEnvelope(type=declared, data=frozen)


__all__ = [
    "AppEventEnvelope",
    "ConnectionEnvelope",
    "DisconnectEnvelope",
    "Envelope",
    "EnvelopeKind",
    "RECOVERABLE_REASONS",
    "ReconnectEnvelope",
    "TYPE_MAP",
    "classify",
]
