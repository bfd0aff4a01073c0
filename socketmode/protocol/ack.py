"""Serialisation of acknowledgement frames for app event envelopes."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel

from socketmode.errors import EncodingFailure

AckPayload = Mapping[str, Any] | BaseModel


def _payload_dict(payload: AckPayload) -> Dict[str, Any]:
    if isinstance(payload, BaseModel):
        return payload.model_dump(exclude_none=True, by_alias=True)
    return dict(payload)


def encode_ack(envelope_id: str, payload: Optional[AckPayload] = None) -> str:
    """Build the wire frame acknowledging ``envelope_id``.

    ``payload`` is omitted from the frame entirely when it is ``None``.
    """

    data: Dict[str, Any] = {"envelope_id": envelope_id}
    if payload is not None:
        data["payload"] = _payload_dict(payload)
    try:
        return json.dumps(data, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError, RecursionError) as exc:
        raise EncodingFailure(
            "Invalid ack JSON encountered while encoding",
            context={"envelope_id": envelope_id},
        ) from exc


@dataclass(frozen=True)
class Ack:
    envelope_id: str
    payload: Optional[AckPayload] = None

    def encode(self) -> str:
        return encode_ack(self.envelope_id, self.payload)

    def __str__(self) -> str:
        return self.encode()


__all__ = ["Ack", "AckPayload", "encode_ack"]
