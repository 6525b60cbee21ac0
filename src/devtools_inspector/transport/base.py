"""Transport handle abstraction.

A transport handle is one bidirectional channel to the remote endpoint:

- connect/close: Lifecycle management
- send: Hand an outbound envelope to the channel (non-blocking, in order)
- listeners: ``message``, ``disconnect`` and ``error`` notifications

The Inspector owns exactly one live handle at a time and attaches its
listeners after the handle connects. Listeners are detached before a
requested close, so only a remote close reaches ``disconnect`` listeners.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from ..config import InspectorConfig
from ..errors import TransportError

logger = logging.getLogger(__name__)

# Notification kinds
MESSAGE = "message"
DISCONNECT = "disconnect"
ERROR = "error"

NOTIFICATIONS = (MESSAGE, DISCONNECT, ERROR)

TransportListener = Callable[..., Any]


class TransportState(str, Enum):
    """Transport handle state machine."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


@runtime_checkable
class TransportHandle(Protocol):
    """Contract for transport handles used by the Inspector."""

    @property
    def endpoint(self) -> str:
        """Address the handle connects to."""
        ...

    @property
    def is_open(self) -> bool:
        """True while the channel can accept envelopes."""
        ...

    async def connect(self) -> None:
        """Open the channel.

        Raises:
            TransportError: If the channel cannot be established
        """
        ...

    async def close(self) -> None:
        """Close the channel; no-op if it is not open."""
        ...

    def send(self, envelope: dict[str, Any]) -> None:
        """Queue an envelope for delivery.

        Raises:
            TransportError: If the channel is not open
        """
        ...

    def add_listener(self, kind: str, listener: TransportListener) -> None: ...

    def remove_listener(self, kind: str, listener: TransportListener) -> None: ...


TransportFactory = Callable[[str, InspectorConfig], TransportHandle]


class BaseTransport(ABC):
    """Base class for transport handles with common functionality.

    Provides:
    - State management
    - Listener registration and notification
    - Remote-close bookkeeping
    """

    def __init__(self, endpoint: str, config: InspectorConfig | None = None):
        self.config = config or InspectorConfig()
        self._endpoint = endpoint
        self._state = TransportState.DISCONNECTED
        self._listeners: dict[str, list[TransportListener]] = {kind: [] for kind in NOTIFICATIONS}

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == TransportState.CONNECTED

    def add_listener(self, kind: str, listener: TransportListener) -> None:
        self._listeners_for(kind).append(listener)

    def remove_listener(self, kind: str, listener: TransportListener) -> None:
        listeners = self._listeners_for(kind)
        for index, existing in enumerate(listeners):
            if existing == listener:
                del listeners[index]
                return

    def listener_count(self, kind: str) -> int:
        return len(self._listeners_for(kind))

    async def connect(self) -> None:
        """Establish the channel."""
        if self._state == TransportState.CONNECTED:
            return

        self._state = TransportState.CONNECTING
        try:
            await self._do_connect()
        except Exception as e:
            self._state = TransportState.DISCONNECTED
            raise TransportError(f"Failed to connect to {self._endpoint}: {e}") from e

        self._state = TransportState.CONNECTED
        logger.info(f"{self.__class__.__name__} connected to {self._endpoint}")

    async def close(self) -> None:
        """Close the channel."""
        if self._state not in (TransportState.CONNECTED, TransportState.CONNECTING):
            return

        self._state = TransportState.CLOSED
        try:
            await self._do_close()
        finally:
            self._state = TransportState.DISCONNECTED
        logger.info(f"{self.__class__.__name__} closed")

    def send(self, envelope: dict[str, Any]) -> None:
        if not self.is_open:
            raise TransportError("Transport not connected")
        self._do_send(envelope)

    # Helpers for subclasses

    def _emit(self, kind: str, *args: Any) -> None:
        for listener in list(self._listeners_for(kind)):
            try:
                listener(*args)
            except Exception:
                logger.exception(f"Error in transport {kind} listener")

    def _handle_remote_close(self) -> None:
        """Record a close the client did not ask for and notify listeners."""
        if self._state != TransportState.CONNECTED:
            return
        self._state = TransportState.DISCONNECTED
        logger.info(f"{self.__class__.__name__} closed by remote endpoint")
        self._emit(DISCONNECT)

    def _listeners_for(self, kind: str) -> list[TransportListener]:
        try:
            return self._listeners[kind]
        except KeyError:
            raise ValueError(f"Unknown transport notification: {kind}") from None

    # Abstract methods for subclasses
    @abstractmethod
    async def _do_connect(self) -> None:
        """Implementation-specific connection logic."""
        ...

    @abstractmethod
    async def _do_close(self) -> None:
        """Implementation-specific close logic."""
        ...

    @abstractmethod
    def _do_send(self, envelope: dict[str, Any]) -> None:
        """Implementation-specific send logic; must not block."""
        ...

    async def __aenter__(self) -> BaseTransport:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
