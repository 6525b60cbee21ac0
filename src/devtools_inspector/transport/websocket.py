"""WebSocket transport implementation.

Speaks JSON over a single WebSocket to the endpoint's debugger URL
(``ws://host:port/devtools/page/<id>``).

Wire format:
- Outbound: ``CommandEnvelope.to_wire()``, i.e. ``{id, method, params}``
- Inbound: one JSON object per text frame (response, error or event)

Outbound envelopes go through a queue drained by a writer task, so they
reach the wire in the order ``send`` was called.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed

from ..config import InspectorConfig
from ..errors import TransportError
from ..protocol.messages import CommandEnvelope
from .base import ERROR, MESSAGE, BaseTransport, TransportState

logger = logging.getLogger(__name__)


class WebSocketTransport(BaseTransport):
    """Transport handle over a WebSocket connection."""

    def __init__(self, endpoint: str, config: InspectorConfig | None = None):
        super().__init__(endpoint, config)
        self._ws: Any = None  # websockets ClientConnection
        self._outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._reader_task: asyncio.Task[None] | None = None
        self._writer_task: asyncio.Task[None] | None = None
        self._cleanup_task: asyncio.Task[None] | None = None

    async def _do_connect(self) -> None:
        """Open the socket and start the reader and writer tasks."""
        self._ws = await websockets.connect(
            self._endpoint,
            open_timeout=self.config.connect_timeout,
            max_size=self.config.max_message_size,
            ping_interval=None,
        )
        self._outbox = asyncio.Queue()
        self._reader_task = asyncio.create_task(self._read_loop())
        self._writer_task = asyncio.create_task(self._write_loop())

    async def _do_close(self) -> None:
        """Stop the tasks and close the socket."""
        current = asyncio.current_task()
        for task in (self._reader_task, self._writer_task):
            if task and task is not current:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._reader_task = None
        self._writer_task = None

        if self._ws is not None:
            await self._ws.close()
            self._ws = None

    def _do_send(self, envelope: dict[str, Any]) -> None:
        self._outbox.put_nowait(envelope)

    async def _write_loop(self) -> None:
        """Background task writing queued envelopes to the socket."""
        try:
            while True:
                envelope = await self._outbox.get()
                frame = CommandEnvelope.model_validate(envelope).to_wire()
                await self._ws.send(json.dumps(frame))
                logger.debug(f"Sent command {envelope.get('id')}: {envelope.get('method')}")
        except asyncio.CancelledError:
            raise
        except ConnectionClosed:
            self._handle_remote_close()
        except Exception as e:
            logger.error(f"WebSocket send error: {e}")
            self._fail(e)

    async def _read_loop(self) -> None:
        """Background task reading frames and emitting messages."""
        try:
            async for data in self._ws:
                try:
                    message = json.loads(data)
                except (json.JSONDecodeError, UnicodeDecodeError) as e:
                    logger.warning(f"Invalid message from endpoint: {e}")
                    continue
                if not isinstance(message, dict):
                    logger.warning(f"Ignoring non-object message: {str(message)[:50]}")
                    continue
                self._emit(MESSAGE, message)
        except asyncio.CancelledError:
            raise
        except ConnectionClosed:
            pass
        except Exception as e:
            logger.error(f"WebSocket receive error: {e}")
            self._fail(e)
            return
        self._handle_remote_close()

    def _handle_remote_close(self) -> None:
        was_open = self.is_open
        super()._handle_remote_close()
        if was_open:
            # Release the socket and the surviving loop task
            self._cleanup_task = asyncio.get_running_loop().create_task(self._do_close())
            self._cleanup_task.add_done_callback(self._cleanup_done)

    def _cleanup_done(self, task: asyncio.Task[None]) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Error releasing WebSocket after remote close", exc_info=task.exception()
            )

    def _fail(self, error: Exception) -> None:
        if self._state != TransportState.CONNECTED:
            return
        self._emit(ERROR, TransportError(f"WebSocket channel error: {error}"))
        self._handle_remote_close()
