"""Event Bus - pub/sub for connectivity and remote debugger events.

Listeners are keyed by (domain, event name). Remote events use their wire
name (``Page.loadEventFired`` -> ``("Page", "loadEventFired")``); the
connectivity events ``connect``, ``disconnect``, ``error`` and ``message``
live under the empty domain.

Each Inspector owns its own bus, so separate connections never share
listeners.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

# Connectivity events
CONNECT = "connect"
DISCONNECT = "disconnect"
ERROR = "error"
MESSAGE = "message"

EventKey = tuple[str, str]
Listener = Callable[..., Any]


def event_key(name: str | EventKey) -> EventKey:
    """Map an event name to its (domain, event) key.

    ``"Page.loadEventFired"`` -> ``("Page", "loadEventFired")``;
    ``"connect"`` -> ``("", "connect")``.
    """
    if isinstance(name, tuple):
        return name
    domain, sep, event = name.partition(".")
    if not sep:
        return "", name
    return domain, event


def same_listener(a: Listener, b: Listener) -> bool:
    """Identity comparison that treats re-bound methods as the same listener."""
    if a is b:
        return True
    if inspect.ismethod(a) and inspect.ismethod(b):
        return a.__self__ is b.__self__ and a.__func__ is b.__func__
    if inspect.isbuiltin(a) and inspect.isbuiltin(b):
        # e.g. ``received.append``; compares __self__ by identity
        return a == b
    return False


class EventBus:
    """Event bus keyed by (domain, event name).

    Publishing is synchronous: listeners run in registration order on the
    caller's stack. A listener returning a coroutine has it scheduled as a
    task on the running loop.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[EventKey, list[Listener]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    def subscribe(self, name: str | EventKey, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for an event.

        Adding a listener that is already registered for the event is a
        no-op.

        Returns:
            Unsubscribe function
        """
        key = event_key(name)
        listeners = self._subscriptions.setdefault(key, [])
        if not any(same_listener(existing, listener) for existing in listeners):
            listeners.append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(key, listener)

        return unsubscribe

    def unsubscribe(self, name: str | EventKey, listener: Listener | None = None) -> int:
        """Remove ``listener`` (or every listener when None) from an event.

        Returns:
            Number of listeners removed
        """
        key = event_key(name)
        listeners = self._subscriptions.get(key)
        if not listeners:
            return 0
        if listener is None:
            removed = len(listeners)
            del self._subscriptions[key]
            return removed
        kept = [existing for existing in listeners if not same_listener(existing, listener)]
        removed = len(listeners) - len(kept)
        if kept:
            self._subscriptions[key] = kept
        else:
            del self._subscriptions[key]
        return removed

    def clear(self) -> int:
        """Remove all listeners.

        Returns:
            Number of listeners removed
        """
        removed = sum(len(listeners) for listeners in self._subscriptions.values())
        self._subscriptions.clear()
        return removed

    def listener_count(self, name: str | EventKey) -> int:
        return len(self._subscriptions.get(event_key(name), ()))

    def publish(self, name: str | EventKey, *args: Any) -> int:
        """Invoke every listener of an event with ``args``.

        Returns:
            Number of listeners invoked
        """
        key = event_key(name)
        # Copy so listeners may (un)subscribe while we iterate
        listeners = list(self._subscriptions.get(key, ()))
        for listener in listeners:
            try:
                result = listener(*args)
            except Exception:
                logger.exception(f"Error in listener for {_display(key)}")
                continue
            if inspect.iscoroutine(result):
                self._schedule(key, result)
        return len(listeners)

    def _schedule(self, key: EventKey, coro: Any) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.warning(f"Dropped async listener for {_display(key)}: no running event loop")
            return
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Error in async listener", exc_info=task.exception())


def _display(key: EventKey) -> str:
    domain, event = key
    return f"{domain}.{event}" if domain else event
