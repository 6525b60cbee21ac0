"""Message router.

A message from the endpoint can be one of three things:
  1. an error -> report it on the ``error`` channel
  2. the response to a previous command -> resolve the pending call
  3. an event -> publish it to the (domain, event) listeners

Every message is also published on the ``message`` channel first, for
passive observers such as tracing.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .bus import ERROR, MESSAGE, EventBus
from .dispatcher import Dispatcher
from .protocol.messages import MessageKind, classify, normalize_result, split_method

logger = logging.getLogger(__name__)


class MessageRouter:
    """Classifies inbound messages and dispatches them."""

    def __init__(self, dispatcher: Dispatcher, bus: EventBus):
        self._dispatcher = dispatcher
        self._bus = bus

    def route(self, message: Mapping[str, Any]) -> MessageKind:
        self._bus.publish(MESSAGE, message)

        kind = classify(message)
        if kind is MessageKind.ERROR:
            logger.warning(f"Error from endpoint: {message['error']}")
            self._bus.publish(ERROR, message["error"])
        elif kind is MessageKind.RESPONSE:
            result = normalize_result(message["result"])
            logger.debug(f"Result ({message.get('id')}): {result}")
            self._dispatcher.resolve(message.get("id"), result)
        else:
            self._route_event(message)
        return kind

    def _route_event(self, message: Mapping[str, Any]) -> None:
        method = message.get("method")
        if not isinstance(method, str) or not method:
            logger.warning(f"Dropping message without method: {str(message)[:80]}")
            return
        logger.debug(f"Event: {method}")
        domain, event = split_method(method)
        self._bus.publish((domain, event), message.get("params"))
