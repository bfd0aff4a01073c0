"""Context passed to application event handlers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from socketmode.protocol import AckPayload, AppEventEnvelope


@dataclass
class EventContext:
    """Records a handler's acknowledgement decision for one app event.

    A handler must call :meth:`ack` before its first invocation returns. Calling
    :meth:`defer` asks for a second invocation once the ack is on the wire; the
    handler can tell the two apart through :attr:`ack_sent`.
    """

    envelope: AppEventEnvelope
    _acknowledged: bool = field(default=False, init=False, repr=False)
    _ack_payload: Optional[AckPayload] = field(default=None, init=False, repr=False)
    _deferred: bool = field(default=False, init=False, repr=False)
    _ack_sent: bool = field(default=False, init=False, repr=False)

    @property
    def payload(self) -> Dict[str, Any]:
        return self.envelope.payload

    @property
    def envelope_id(self) -> str:
        return self.envelope.envelope_id

    @property
    def event_type(self) -> str:
        return self.envelope.type

    def ack(self, payload: Optional[AckPayload] = None) -> None:
        self._acknowledged = True
        self._ack_payload = payload

    def defer(self) -> None:
        self._deferred = True

    @property
    def is_acknowledged(self) -> bool:
        return self._acknowledged

    @property
    def is_deferred(self) -> bool:
        return self._deferred

    @property
    def ack_payload(self) -> Optional[AckPayload]:
        return self._ack_payload

    @property
    def ack_sent(self) -> bool:
        return self._ack_sent

    def mark_ack_sent(self) -> None:
        self._ack_sent = True


EventHandler = Callable[[EventContext], Awaitable[None] | None]


def ack_only(context: EventContext) -> None:
    """Acknowledge every event without a response payload."""

    context.ack()


__all__ = ["EventContext", "EventHandler", "ack_only"]
