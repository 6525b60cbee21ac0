"""Envelope definitions for the protocol layer.

Outbound commands carry a correlation id; the endpoint answers with a
response carrying the same id. Unsolicited events carry a method name
instead.

Outbound (client -> transport):
    {"verb": "sendCommand", "method": "Page.navigate", "params": {...}, "id": 1}

Inbound (transport -> client), one of:
    {"id": 1, "error": {...}}                      # error
    {"id": 1, "result": {...}}                     # response
    {"method": "Page.loadEventFired", "params": {...}}  # event
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

SEND_COMMAND = "sendCommand"

# Placeholder for a response whose nested result is absent
UNDEFINED_RESULT: dict[str, Any] = {"type": "undefined"}


class CommandEnvelope(BaseModel):
    """A command from client to remote endpoint."""

    model_config = ConfigDict(frozen=True)

    verb: Literal["sendCommand"] = SEND_COMMAND
    method: str
    params: dict[str, Any] = Field(default_factory=dict)
    id: int

    def to_wire(self) -> dict[str, Any]:
        """Payload sent to the endpoint (routing verb stripped)."""
        return {"id": self.id, "method": self.method, "params": self.params}


class MessageKind(str, Enum):
    """Classification of an inbound message."""

    ERROR = "error"
    RESPONSE = "response"
    EVENT = "event"


def classify(message: Mapping[str, Any]) -> MessageKind:
    """Classify an inbound message, in priority order error > response > event."""
    if message.get("error") is not None:
        return MessageKind.ERROR
    if message.get("result") is not None:
        return MessageKind.RESPONSE
    return MessageKind.EVENT


def normalize_result(result: Any) -> Any:
    """Fill in an absent nested ``result`` with the undefined marker."""
    if isinstance(result, dict) and result.get("result") is None:
        return {**result, "result": dict(UNDEFINED_RESULT)}
    return result


def split_method(method: str) -> tuple[str, str]:
    """Split ``Domain.eventName`` on the first separator."""
    domain, _, name = method.partition(".")
    return domain, name
