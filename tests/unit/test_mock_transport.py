"""Unit tests for the in-memory transport handle."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from devtools_inspector.errors import TransportError
from devtools_inspector.transport.base import TransportHandle, TransportState
from devtools_inspector.transport.mock import MockTransport


class TestMockTransport:
    def test_satisfies_handle_protocol(self) -> None:
        assert isinstance(MockTransport(), TransportHandle)

    @pytest.mark.anyio
    async def test_lifecycle(self) -> None:
        transport = MockTransport()
        assert transport.state == TransportState.DISCONNECTED

        async with transport:
            assert transport.is_open
            assert transport.connect_count == 1

        assert transport.state == TransportState.DISCONNECTED
        assert transport.close_count == 1

    @pytest.mark.anyio
    async def test_close_when_not_open_is_noop(self) -> None:
        transport = MockTransport()

        await transport.close()

        assert transport.close_count == 0

    @pytest.mark.anyio
    async def test_connect_error(self) -> None:
        transport = MockTransport(connect_error=OSError("refused"))

        with pytest.raises(TransportError):
            await transport.connect()
        assert not transport.is_open

    @pytest.mark.anyio
    async def test_records_sent_envelopes(self) -> None:
        transport = MockTransport()
        await transport.connect()

        transport.send({"id": 1, "method": "Page.enable", "params": {}})

        assert transport.sent == [{"id": 1, "method": "Page.enable", "params": {}}]
        transport.clear()
        assert transport.sent == []

    @pytest.mark.anyio
    async def test_canned_response(self) -> None:
        transport = MockTransport()
        received: list[dict[str, Any]] = []
        transport.add_listener("message", received.append)
        transport.set_response("Page.navigate", {"frameId": "F1"})
        await transport.connect()

        transport.send({"id": 5, "method": "Page.navigate", "params": {}})
        await asyncio.sleep(0)

        assert received == [{"id": 5, "result": {"frameId": "F1"}}]

    @pytest.mark.anyio
    async def test_drop_notifies_disconnect(self) -> None:
        transport = MockTransport()
        disconnects: list[bool] = []
        transport.add_listener("disconnect", lambda: disconnects.append(True))
        await transport.connect()

        transport.drop()
        transport.drop()

        assert disconnects == [True]
        assert not transport.is_open

    def test_removed_listener_not_called(self) -> None:
        transport = MockTransport()
        received: list[Any] = []

        def listener(message: Any) -> None:
            received.append(message)

        transport.add_listener("message", listener)
        transport.remove_listener("message", listener)
        transport.deliver({"method": "A.b"})

        assert received == []
        assert transport.listener_count("message") == 0

    def test_unknown_notification_kind(self) -> None:
        with pytest.raises(ValueError):
            MockTransport().add_listener("bogus", lambda: None)
