"""Transport handles.

- WebSocket - JSON frames over the endpoint's debugger WebSocket
- Mock - in-memory handle for tests and embedding

The Inspector builds handles through a TransportFactory
``(endpoint, config) -> TransportHandle``; WebSocketTransport is the default.
"""

from .base import (
    BaseTransport,
    TransportFactory,
    TransportHandle,
    TransportListener,
    TransportState,
)
from .mock import MockTransport
from .websocket import WebSocketTransport

__all__ = [
    # Base abstractions
    "TransportHandle",
    "TransportFactory",
    "TransportListener",
    "TransportState",
    "BaseTransport",
    # Implementations
    "WebSocketTransport",
    "MockTransport",
]
