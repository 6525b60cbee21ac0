"""Inspector - connection to a remote debugger endpoint.

# EVENTS

The Inspector dispatches connectivity events plus all remote debugger
events. Handlers are attached via ``on(name, handler)`` and detached via
``off(name, handler)``.

    connect     the channel to the remote debugger is open
    disconnect  the remote debugger closed the channel
    error       a transport error (exception) or protocol error (payload)
    message     every raw inbound message, before any other handling

Remote debugger events use ``Domain.event`` as their name
(``on("Page.loadEventFired", handler)``); the handler gets the event
params.

# COMMANDS

After ``init()``, commands are called as ``inspector.<Domain>.<command>()``
with the parameters in the order of the protocol description. Without a
trailing callback the call returns a future of the result:

    await inspector.connect_to_target("http://localhost:8000/index.html")
    result = await inspector.Runtime.evaluate("1 + 1")

``call(domain, command, ...)`` is the generic entry point.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any

from .binder import BoundCommand, DomainCommands, bind
from .bus import CONNECT, DISCONNECT, ERROR, EventBus, Listener
from .config import InspectorConfig
from .dispatcher import CommandResult, CompletionHandler, Dispatcher
from .errors import (
    ConnectionCancelledError,
    ConnectionClosedError,
    InspectorError,
    TransportError,
)
from .protocol.schema import ProtocolSchema, SchemaSource, default_schema, load_schema
from .router import MessageRouter
from .targets import resolve_endpoint
from .transport.base import TransportFactory, TransportHandle
from .transport.websocket import WebSocketTransport

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Connection lifecycle."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class Inspector:
    """Client for one remote debugger endpoint.

    Owns the transport handle, the connection state, the correlation table
    (through its Dispatcher) and the event bus. Everything runs on one
    asyncio event loop; no locking is needed.
    """

    def __init__(
        self,
        config: InspectorConfig | None = None,
        *,
        transport_factory: TransportFactory | None = None,
        schema: SchemaSource | None = None,
    ):
        self.config = config or InspectorConfig()
        self._transport_factory: TransportFactory = transport_factory or WebSocketTransport
        self._bus = EventBus()
        self._dispatcher = Dispatcher(self._open_transport)
        self._router = MessageRouter(self._dispatcher, self._bus)

        self._transport: TransportHandle | None = None
        self._state = ConnectionState.DISCONNECTED
        self._attempt = 0
        self._connect_future: asyncio.Future[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

        self._schema: ProtocolSchema | None = None
        self._domains: dict[str, DomainCommands] = {}
        if schema is not None:
            self.init(schema)

    # =========================================================================
    # Schema & commands
    # =========================================================================

    def init(self, schema: SchemaSource | None = None) -> ProtocolSchema:
        """Load the protocol description and generate the command objects.

        Args:
            schema: Schema source; defaults to ``config.schema_path`` or the
                bundled description

        Raises:
            SchemaParseError: If the description is malformed
        """
        if schema is not None:
            loaded = load_schema(schema)
        elif self.config.schema_path is not None:
            loaded = load_schema(self.config.schema_path)
        else:
            loaded = default_schema()

        self._schema = loaded
        self._domains = bind(
            loaded,
            self._dispatcher.send,
            strict=self.config.strict_arguments,
            bus=self._bus,
        )
        logger.info(f"Inspector initialized with {len(self._domains)} domains")
        return loaded

    @property
    def schema(self) -> ProtocolSchema | None:
        return self._schema

    @property
    def domains(self) -> dict[str, DomainCommands]:
        return dict(self._domains)

    def __getattr__(self, name: str) -> DomainCommands:
        domains = self.__dict__.get("_domains") or {}
        try:
            return domains[name]
        except KeyError:
            raise AttributeError(
                f"{type(self).__name__!r} object has no attribute or domain {name!r}"
            ) from None

    def command(self, domain: str, command: str) -> BoundCommand:
        """Look up a bound command.

        Raises:
            KeyError: If the domain or command is not in the schema
        """
        try:
            return self._domains[domain][command]
        except KeyError:
            raise KeyError(f"Unknown command {domain}.{command}") from None

    def call(
        self, domain: str, command: str, *args: Any, **kwargs: Any
    ) -> asyncio.Future[CommandResult] | None:
        """Invoke ``domain.command`` with the binder's calling convention."""
        return self.command(domain, command)(*args, **kwargs)

    def send(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        callback: CompletionHandler | None = None,
    ) -> asyncio.Future[CommandResult] | None:
        """Send a raw command, bypassing the schema."""
        return self._dispatcher.send(method, params, callback)

    @property
    def pending_ids(self) -> list[int]:
        """Ids of commands still awaiting a response."""
        return self._dispatcher.pending_ids

    # =========================================================================
    # Events
    # =========================================================================

    def on(self, name: str, handler: Listener) -> Any:
        """Register a handler for a connectivity or ``Domain.event`` event.

        Returns:
            Unsubscribe function
        """
        return self._bus.subscribe(name, handler)

    def off(self, name: str | None = None, handler: Listener | None = None) -> int:
        """Remove the given handler, all handlers of the event, or (with no
        name) every handler."""
        if name is None:
            return self._bus.clear()
        return self._bus.unsubscribe(name, handler)

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    @property
    def state(self) -> ConnectionState:
        return self._state

    def connected(self) -> bool:
        """Check if the inspector is connected."""
        return self._state == ConnectionState.CONNECTED

    async def connect(self, target: str | None = None) -> None:
        """Connect to the remote debugger.

        Tears down any existing connection first. Clients learn the outcome
        through the ``connect`` and ``error`` events (or through the future
        of ``connect_to_target``); transport failures are not raised here.

        Args:
            target: WebSocket debugger URL, page URL, or None for
                ``config.target`` / the first page
        """
        previous = self._release_transport()
        attempt = self._begin_attempt()
        await self._connect(target, self._connect_future, attempt, previous)

    async def _connect(
        self,
        target: str | None,
        future: asyncio.Future[None] | None,
        attempt: int,
        previous: TransportHandle | None,
    ) -> None:
        target = target if target is not None else self.config.target
        transport: TransportHandle | None = None
        try:
            await self._close_transport(previous)
            if attempt != self._attempt:
                return
            endpoint = await resolve_endpoint(target, self.config)
            transport = self._transport_factory(endpoint, self.config)
            await transport.connect()
        except Exception as e:
            if attempt != self._attempt:
                logger.debug(f"Superseded connect attempt failed: {e}")
                return
            logger.error(f"Connect failed: {e}")
            self._state = ConnectionState.DISCONNECTED
            self._on_error(_as_inspector_error(e), future)
            return

        if attempt != self._attempt:
            logger.debug(f"Discarding superseded connection to {transport.endpoint}")
            await transport.close()
            return

        transport.add_listener("message", self._router.route)
        transport.add_listener("disconnect", self._on_disconnect)
        transport.add_listener("error", self._on_error)
        self._transport = transport
        self._state = ConnectionState.CONNECTED
        self._on_connect(future)

    def connect_to_target(self, target: str | None = None) -> asyncio.Future[None]:
        """Connect and return a future that settles with the outcome.

        An outstanding connect future is rejected with
        ConnectionCancelledError before the new attempt starts. The current
        channel is detached before this returns, so commands sent while the
        attempt is in flight are dropped.
        """
        if self._connect_future is not None and not self._connect_future.done():
            # reject an existing connection attempt
            self._connect_future.set_exception(ConnectionCancelledError("CANCEL"))

        loop = asyncio.get_running_loop()
        future: asyncio.Future[None] = loop.create_future()
        self._connect_future = future

        previous = self._release_transport()
        attempt = self._begin_attempt()
        task = loop.create_task(self._connect(target, future, attempt, previous))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return future

    async def disconnect(self) -> None:
        """Disconnect from the remote debugger.

        Completes immediately when not connected. An outstanding connect
        future is rejected with ConnectionCancelledError.
        """
        if self._connect_future is not None and not self._connect_future.done():
            self._connect_future.set_exception(ConnectionCancelledError("disconnected"))
        self._connect_future = None
        await self._close_transport(self._release_transport())

    def _begin_attempt(self) -> int:
        self._attempt += 1
        self._state = ConnectionState.CONNECTING
        return self._attempt

    def _release_transport(self) -> TransportHandle | None:
        """Detach the current handle and return it for closing.

        Runs synchronously, so nothing reaches the old channel (and the old
        channel reaches no listener) once it returns. Also invalidates any
        in-flight connect attempt.
        """
        self._attempt += 1
        transport, self._transport = self._transport, None
        self._state = ConnectionState.DISCONNECTED
        if transport is not None:
            self._detach(transport)
            self._release_pending("Connection closed")
        return transport

    async def _close_transport(self, transport: TransportHandle | None) -> None:
        if transport is None:
            return
        await transport.close()
        logger.info("Disconnected")

    def _detach(self, transport: TransportHandle) -> None:
        transport.remove_listener("message", self._router.route)
        transport.remove_listener("disconnect", self._on_disconnect)
        transport.remove_listener("error", self._on_error)

    def _release_pending(self, reason: str) -> None:
        if self.config.reject_pending_on_disconnect:
            self._dispatcher.reject_all(ConnectionClosedError(reason))

    def _open_transport(self) -> TransportHandle | None:
        transport = self._transport
        if transport is None or not transport.is_open:
            return None
        return transport

    # Transport notifications

    def _on_connect(self, future: asyncio.Future[None] | None = None) -> None:
        logger.info("** Connected **")
        if future is not None and not future.done():
            future.set_result(None)
        if future is self._connect_future:
            self._connect_future = None
        self._bus.publish(CONNECT)

    def _on_disconnect(self) -> None:
        """Channel closed by the remote side."""
        transport = self._transport
        if transport is None:
            return
        self._detach(transport)
        self._transport = None
        self._state = ConnectionState.DISCONNECTED
        logger.info("** Disconnected by remote endpoint **")
        self._release_pending("Connection closed by remote endpoint")
        self._bus.publish(DISCONNECT)

    def _on_error(self, error: Exception, future: asyncio.Future[None] | None = None) -> None:
        pending = future if future is not None else self._connect_future
        if pending is not None and not pending.done():
            logger.error(f"** Port error: {error} **")
            pending.set_exception(error)
        if pending is self._connect_future:
            self._connect_future = None
        self._bus.publish(ERROR, error)

    # =========================================================================
    # Context manager
    # =========================================================================

    async def __aenter__(self) -> Inspector:
        if self._schema is None:
            self.init()
        if not self.connected():
            await self.connect_to_target(self.config.target)
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()


def _as_inspector_error(error: Exception) -> InspectorError:
    if isinstance(error, InspectorError):
        return error
    wrapped = TransportError(str(error))
    wrapped.__cause__ = error
    return wrapped
