"""DevTools Inspector - asyncio client for remote debugging endpoints.

Generates callable commands from a protocol description, correlates
responses to requests by id, and dispatches remote events to listeners.

Example:
    from devtools_inspector import Inspector

    async with Inspector() as inspector:
        result = await inspector.Runtime.evaluate("document.title")
"""

from .binder import BoundCommand, DomainCommands, bind
from .bus import EventBus
from .config import InspectorConfig
from .dispatcher import CorrelationTable, Dispatcher
from .errors import (
    ConnectionCancelledError,
    ConnectionClosedError,
    InspectorError,
    MissingArgumentError,
    SchemaParseError,
    TargetDiscoveryError,
    TargetNotFoundError,
    TransportError,
)
from .inspector import ConnectionState, Inspector
from .protocol import ProtocolSchema, default_schema, load_schema
from .router import MessageRouter
from .targets import Target, find_target, list_targets, resolve_endpoint
from .transport import MockTransport, TransportHandle, WebSocketTransport

__version__ = "0.1.0"

__all__ = [
    # Client
    "Inspector",
    "InspectorConfig",
    "ConnectionState",
    # Building blocks
    "EventBus",
    "Dispatcher",
    "CorrelationTable",
    "MessageRouter",
    "BoundCommand",
    "DomainCommands",
    "bind",
    # Protocol
    "ProtocolSchema",
    "load_schema",
    "default_schema",
    # Targets
    "Target",
    "list_targets",
    "find_target",
    "resolve_endpoint",
    # Transports
    "TransportHandle",
    "WebSocketTransport",
    "MockTransport",
    # Errors
    "InspectorError",
    "SchemaParseError",
    "MissingArgumentError",
    "TransportError",
    "ConnectionClosedError",
    "ConnectionCancelledError",
    "TargetDiscoveryError",
    "TargetNotFoundError",
]
