"""Dispatcher and correlation table.

Every outbound command gets the next correlation id, a pending entry
holding its future, and a ``sendCommand`` envelope handed to the open
transport handle. Responses are matched back purely by id, in any order.

Ids start at 1 and are never reused for the life of the dispatcher, so a
late response from an earlier connection can never resolve a newer call.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .errors import TransportError
from .protocol.messages import CommandEnvelope
from .transport.base import TransportHandle

logger = logging.getLogger(__name__)

CommandResult = dict[str, Any]
CompletionHandler = Callable[[CommandResult], Any]


@dataclass
class PendingCall:
    """Bookkeeping for one command awaiting its response."""

    id: int
    method: str
    future: asyncio.Future[CommandResult]


class CorrelationTable:
    """Mapping from correlation id to pending call."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._pending: dict[int, PendingCall] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, call_id: object) -> bool:
        return call_id in self._pending

    @property
    def ids(self) -> list[int]:
        return sorted(self._pending)

    def register(self, method: str, future: asyncio.Future[CommandResult]) -> PendingCall:
        """Allocate the next id and record the pending call."""
        call_id = next(self._ids)
        call = PendingCall(id=call_id, method=method, future=future)
        self._pending[call_id] = call
        return call

    def pop(self, call_id: Any) -> PendingCall | None:
        return self._pending.pop(call_id, None)

    def drain(self) -> list[PendingCall]:
        """Remove and return every pending call."""
        calls = list(self._pending.values())
        self._pending.clear()
        return calls


class Dispatcher:
    """Sends commands and resolves their continuations."""

    def __init__(self, channel: Callable[[], TransportHandle | None]):
        """Initialize with a callable returning the open transport (or None)."""
        self._channel = channel
        self._table = CorrelationTable()

    @property
    def table(self) -> CorrelationTable:
        return self._table

    @property
    def pending_ids(self) -> list[int]:
        return self._table.ids

    def send(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        callback: CompletionHandler | None = None,
    ) -> asyncio.Future[CommandResult] | None:
        """Send a command.

        With no open channel this does nothing and returns None. Otherwise
        it returns the future of the result; when ``callback`` is given it is
        attached to that future and None is returned instead.
        """
        transport = self._channel()
        if transport is None:
            # Stray sends while (re)connecting are dropped
            logger.debug(f"Not connected, dropping command {method}")
            return None

        future: asyncio.Future[CommandResult] = asyncio.get_running_loop().create_future()
        call = self._table.register(method, future)
        envelope = CommandEnvelope(method=method, params=params or {}, id=call.id)

        logger.debug(f"Executing command {call.id}: {method} {envelope.params}")
        try:
            transport.send(envelope.model_dump())
        except TransportError as e:
            self._table.pop(call.id)
            future.set_exception(e)

        if callback is None:
            return future
        future.add_done_callback(_completion(method, callback))
        return None

    def resolve(self, call_id: Any, result: CommandResult) -> bool:
        """Complete the pending call for ``call_id``; unknown ids are discarded."""
        call = self._table.pop(call_id)
        if call is None:
            logger.debug(f"Discarding response for unknown id {call_id}")
            return False
        if not call.future.done():
            call.future.set_result(result)
        return True

    def reject_all(self, error: Exception) -> int:
        """Fail every pending call with ``error``.

        Returns:
            Number of calls rejected
        """
        calls = self._table.drain()
        for call in calls:
            if not call.future.done():
                call.future.set_exception(error)
        if calls:
            logger.info(f"Rejected {len(calls)} pending command(s): {error}")
        return len(calls)


def _completion(
    method: str, callback: CompletionHandler
) -> Callable[[asyncio.Future[CommandResult]], None]:
    """Adapt a completion handler to a future done-callback."""

    def done(future: asyncio.Future[CommandResult]) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.warning(f"Command {method} failed: {error}")
            return
        try:
            callback(future.result())
        except Exception:
            logger.exception(f"Error in completion handler for {method}")

    return done
