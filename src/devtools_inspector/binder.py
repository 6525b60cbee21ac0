"""Command binder.

Turns every (domain, command) pair of a ProtocolSchema into a callable:

    domains = bind(schema, dispatcher.send)
    future = domains["Page"].navigate("http://example.com")
    domains["Page"].navigate("http://example.com", on_done)  # callback style

Arguments match the command's declared parameters positionally (or by
keyword). A trailing callable is the completion handler. Unset parameters
are omitted from the params object; a missing required one is reported as
a MissingArgumentError and, unless strict, the command is still sent.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from .bus import EventBus, Listener
from .dispatcher import CommandResult, CompletionHandler
from .errors import MissingArgumentError
from .protocol.schema import CommandDescriptor, Domain, ProtocolSchema

logger = logging.getLogger(__name__)

DispatchFn = Callable[
    [str, dict[str, Any], CompletionHandler | None], asyncio.Future[CommandResult] | None
]


class BoundCommand:
    """A schema command bound to the dispatcher."""

    def __init__(self, descriptor: CommandDescriptor, dispatch: DispatchFn, strict: bool = False):
        self.descriptor = descriptor
        self._dispatch = dispatch
        self._strict = strict

    @property
    def method(self) -> str:
        return self.descriptor.method

    def __repr__(self) -> str:
        names = ", ".join(
            f"{p.name}?" if p.optional else p.name for p in self.descriptor.parameters
        )
        return f"<BoundCommand {self.method}({names})>"

    def __call__(self, *args: Any, **kwargs: Any) -> asyncio.Future[CommandResult] | None:
        """Invoke the command.

        Returns:
            Future of the result, or None when a completion handler was
            given (or when not connected)
        """
        params, callback = self.serialize(args, kwargs)
        return self._dispatch(self.method, params, callback)

    def serialize(
        self, args: tuple[Any, ...], kwargs: dict[str, Any]
    ) -> tuple[dict[str, Any], CompletionHandler | None]:
        """Build the params object and extract the completion handler.

        Raises:
            TypeError: For unknown keywords, surplus positional arguments or
                a parameter given twice
            MissingArgumentError: In strict mode, for an unset required
                parameter
        """
        values = list(args)
        callback = values.pop() if values and callable(values[-1]) else None

        declared = self.descriptor.parameters
        if len(values) > len(declared):
            raise TypeError(
                f"{self.method}() takes {len(declared)} positional argument(s) "
                f"but {len(values)} were given"
            )

        keywords = dict(kwargs)
        unknown = set(keywords) - {p.name for p in declared}
        if unknown:
            raise TypeError(
                f"{self.method}() got unexpected keyword argument(s): {', '.join(sorted(unknown))}"
            )

        params: dict[str, Any] = {}
        for index, parameter in enumerate(declared):
            if index < len(values):
                if parameter.name in keywords:
                    raise TypeError(
                        f"{self.method}() got multiple values for argument '{parameter.name}'"
                    )
                value = values[index]
            else:
                value = keywords.get(parameter.name)

            if value is None:
                if not parameter.optional:
                    self._report_missing(parameter.name)
                continue
            params[parameter.name] = value

        return params, callback

    def _report_missing(self, name: str) -> None:
        error = MissingArgumentError(self.method, name)
        if self._strict:
            raise error
        logger.warning(str(error))


class DomainCommands(Mapping[str, BoundCommand]):
    """Read-only view of one domain's bound commands.

    Commands are reachable by item (``domain["navigate"]``) or attribute
    (``domain.navigate``). With a bus, ``on``/``off`` subscribe to the
    domain's events.

    A command named like a Mapping method or one of the attributes here
    (``get``, ``keys``, ``on``, ``name`` ...) is only reachable by item.
    """

    def __init__(
        self,
        domain: Domain,
        commands: dict[str, BoundCommand],
        bus: EventBus | None = None,
    ):
        self._domain = domain
        self._commands = commands
        self._bus = bus

    @property
    def name(self) -> str:
        return self._domain.name

    @property
    def events(self) -> list[str]:
        return [e.name for e in self._domain.events]

    def __getitem__(self, name: str) -> BoundCommand:
        return self._commands[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._commands)

    def __len__(self) -> int:
        return len(self._commands)

    def __getattr__(self, name: str) -> BoundCommand:
        commands = self.__dict__.get("_commands", {})
        try:
            return commands[name]
        except KeyError:
            raise AttributeError(f"Domain {self.name!r} has no command {name!r}") from None

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self._commands))

    def __repr__(self) -> str:
        return f"<DomainCommands {self.name}: {len(self)} commands>"

    def on(self, event: str, handler: Listener) -> Callable[[], None]:
        """Subscribe to ``<Domain>.<event>``."""
        return self._require_bus().subscribe((self.name, event), handler)

    def off(self, event: str, handler: Listener | None = None) -> int:
        """Unsubscribe from ``<Domain>.<event>``."""
        return self._require_bus().unsubscribe((self.name, event), handler)

    def _require_bus(self) -> EventBus:
        if self._bus is None:
            raise RuntimeError(f"Domain {self.name!r} was bound without an event bus")
        return self._bus


def bind(
    schema: ProtocolSchema,
    dispatch: DispatchFn,
    *,
    strict: bool = False,
    bus: EventBus | None = None,
) -> dict[str, DomainCommands]:
    """Build a callable for every command in ``schema``.

    Args:
        schema: Parsed protocol schema
        dispatch: ``(method, params, callback) -> future | None``
        strict: Raise MissingArgumentError instead of logging it
        bus: Event bus for per-domain ``on``/``off``

    Returns:
        Mapping of domain name to its bound commands
    """
    domains: dict[str, DomainCommands] = {}
    for domain in schema:
        commands = {
            command.name: BoundCommand(command, dispatch, strict=strict)
            for command in domain.commands
        }
        for name in commands:
            if name.startswith("_") or hasattr(DomainCommands, name):
                logger.warning(
                    f"{domain.name}.{name} is shadowed by a DomainCommands attribute; "
                    f"use {domain.name}[{name!r}]"
                )
        domains[domain.name] = DomainCommands(domain, commands, bus)
    logger.debug(f"Bound {sum(len(d) for d in domains.values())} commands")
    return domains
