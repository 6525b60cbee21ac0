"""Protocol layer: schema registry and message envelopes.

Key concepts:
- Schema: domains -> commands (ordered parameters) and events
- Commands: client -> endpoint requests with integer correlation ids
- Responses: endpoint -> client answers carrying the same id
- Events: endpoint-initiated notifications named ``Domain.event``
"""

from .messages import (
    SEND_COMMAND,
    UNDEFINED_RESULT,
    CommandEnvelope,
    MessageKind,
    classify,
    normalize_result,
    split_method,
)
from .schema import (
    CommandDescriptor,
    Domain,
    EventDescriptor,
    ParameterDescriptor,
    ProtocolSchema,
    default_schema,
    load_schema,
)

__all__ = [
    # Schema
    "ProtocolSchema",
    "Domain",
    "CommandDescriptor",
    "EventDescriptor",
    "ParameterDescriptor",
    "load_schema",
    "default_schema",
    # Messages
    "CommandEnvelope",
    "MessageKind",
    "SEND_COMMAND",
    "UNDEFINED_RESULT",
    "classify",
    "normalize_result",
    "split_method",
]
