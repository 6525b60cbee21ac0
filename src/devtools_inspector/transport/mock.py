"""In-memory transport handle.

Records outbound envelopes and lets the caller inject inbound messages,
remote closes and channel errors. No actual I/O.

Usage:
    transport = MockTransport()
    transport.set_response("Page.navigate", {"frameId": "F1"})

    inspector = Inspector(transport_factory=transport.factory)
    await inspector.connect_to_target("ws://mock")
    result = await inspector.Page.navigate("http://example.com")

    assert transport.sent[0]["method"] == "Page.navigate"
"""

from __future__ import annotations

import asyncio
from typing import Any

from ..config import InspectorConfig
from .base import ERROR, MESSAGE, BaseTransport


class MockTransport(BaseTransport):
    """Mock transport handle for tests and embedding."""

    def __init__(
        self,
        endpoint: str = "mock://inspector",
        config: InspectorConfig | None = None,
        *,
        connect_error: Exception | None = None,
        connect_delay: float = 0.0,
    ):
        super().__init__(endpoint, config)
        self.connect_error = connect_error
        self.connect_delay = connect_delay
        self.connect_count = 0
        self.close_count = 0
        self._sent: list[dict[str, Any]] = []
        self._responses: dict[str, dict[str, Any]] = {}

    @property
    def sent(self) -> list[dict[str, Any]]:
        """All envelopes sent through this transport."""
        return self._sent.copy()

    def factory(self, endpoint: str, config: InspectorConfig) -> MockTransport:
        """Transport factory that always hands out this instance."""
        self._endpoint = endpoint
        self.config = config
        return self

    def set_response(self, method: str, result: dict[str, Any]) -> None:
        """Answer every future ``method`` command with ``result``."""
        self._responses[method] = result

    def deliver(self, message: dict[str, Any]) -> None:
        """Inject an inbound message."""
        self._emit(MESSAGE, message)

    def drop(self) -> None:
        """Simulate the remote endpoint closing the channel."""
        self._handle_remote_close()

    def fail(self, error: Exception) -> None:
        """Simulate a mid-session channel error."""
        self._emit(ERROR, error)

    def clear(self) -> None:
        """Forget recorded envelopes and canned responses."""
        self._sent.clear()
        self._responses.clear()

    async def _do_connect(self) -> None:
        self.connect_count += 1
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.connect_error is not None:
            raise self.connect_error

    async def _do_close(self) -> None:
        self.close_count += 1

    def _do_send(self, envelope: dict[str, Any]) -> None:
        self._sent.append(envelope)
        result = self._responses.get(envelope.get("method", ""))
        if result is not None:
            response = {"id": envelope["id"], "result": dict(result)}
            asyncio.get_running_loop().call_soon(self._deliver_if_open, response)

    def _deliver_if_open(self, message: dict[str, Any]) -> None:
        if self.is_open:
            self.deliver(message)
