"""Schema Registry.

Parses a protocol description into domains, commands and events:

    {
        "domains": [
            {
                "domain": "Page",
                "commands": [
                    {"name": "navigate", "parameters": [{"name": "url", "type": "string"}]}
                ],
                "events": [{"name": "loadEventFired", "parameters": [...]}]
            }
        ]
    }

Only parameter presence and optionality are tracked. Type declarations are
accepted and ignored; the remote endpoint is authoritative.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from ..errors import SchemaParseError

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_RESOURCE = "inspector.json"


class ParameterDescriptor(BaseModel):
    """One positional parameter of a command or event."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    optional: bool = False


class CommandDescriptor(BaseModel):
    """A schema-declared command; parameter order is call order."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    domain: str
    name: str
    parameters: tuple[ParameterDescriptor, ...] = ()

    @property
    def method(self) -> str:
        """Wire method name, e.g. ``Page.navigate``."""
        return f"{self.domain}.{self.name}"

    @property
    def required(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.parameters if not p.optional)


class EventDescriptor(BaseModel):
    """A schema-declared event."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    domain: str
    name: str
    parameters: tuple[ParameterDescriptor, ...] = ()

    @property
    def method(self) -> str:
        return f"{self.domain}.{self.name}"


class Domain(BaseModel):
    """A named grouping of commands and events."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    commands: tuple[CommandDescriptor, ...] = ()
    events: tuple[EventDescriptor, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _attach_domain_name(cls, data: Any) -> Any:
        # Source format uses "domain" for the name and leaves it off members
        if not isinstance(data, Mapping) or "name" in data:
            return data
        if "domain" not in data:
            raise ValueError("domain entry is missing the 'domain' field")
        name = data["domain"]
        values = dict(data)
        values["name"] = name
        for key in ("commands", "events"):
            members = values.get(key) or []
            values[key] = [_with_domain(member, name) for member in members]
        return values

    def command(self, name: str) -> CommandDescriptor | None:
        for command in self.commands:
            if command.name == name:
                return command
        return None

    def event(self, name: str) -> EventDescriptor | None:
        for event in self.events:
            if event.name == name:
                return event
        return None


class ProtocolSchema(BaseModel):
    """Ordered, immutable collection of domains."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    domains: tuple[Domain, ...]

    def __iter__(self) -> Iterator[Domain]:  # type: ignore[override]
        return iter(self.domains)

    def __len__(self) -> int:
        return len(self.domains)

    @property
    def domain_names(self) -> list[str]:
        return [d.name for d in self.domains]

    def domain(self, name: str) -> Domain | None:
        for domain in self.domains:
            if domain.name == name:
                return domain
        return None

    def command(self, domain: str, name: str) -> CommandDescriptor | None:
        found = self.domain(domain)
        return found.command(name) if found else None

    def event(self, domain: str, name: str) -> EventDescriptor | None:
        found = self.domain(domain)
        return found.event(name) if found else None

    def commands(self) -> Iterator[CommandDescriptor]:
        for domain in self.domains:
            yield from domain.commands

    def events(self) -> Iterator[EventDescriptor]:
        for domain in self.domains:
            yield from domain.events


SchemaSource = ProtocolSchema | Mapping[str, Any] | str | bytes | Path


def load_schema(source: SchemaSource) -> ProtocolSchema:
    """Parse a protocol description.

    Args:
        source: A mapping, JSON text, a path to a ``.json``/``.yaml`` file,
            or an already-built ProtocolSchema (returned as is).

    Raises:
        SchemaParseError: If the source is not well-formed structured data
            or omits required fields.
    """
    if isinstance(source, ProtocolSchema):
        return source

    data = _read_source(source)
    if not isinstance(data, Mapping):
        raise SchemaParseError("Protocol schema must be a mapping with a 'domains' list")
    if not isinstance(data.get("domains"), list):
        raise SchemaParseError("Protocol schema has no 'domains' list")

    try:
        schema = ProtocolSchema.model_validate({"domains": data["domains"]})
    except ValidationError as e:
        raise SchemaParseError(f"Invalid protocol schema: {e}") from e

    logger.debug(
        f"Loaded protocol schema: {len(schema)} domains, "
        f"{sum(1 for _ in schema.commands())} commands"
    )
    return schema


@lru_cache(maxsize=1)
def default_schema() -> ProtocolSchema:
    """The protocol description bundled with the package."""
    text = resources.files(__package__).joinpath("data", DEFAULT_SCHEMA_RESOURCE).read_text(
        encoding="utf-8"
    )
    return load_schema(text)


def _read_source(source: Mapping[str, Any] | str | bytes | Path) -> Any:
    if isinstance(source, Mapping):
        return source

    if isinstance(source, Path):
        try:
            text = source.read_text(encoding="utf-8")
        except OSError as e:
            raise SchemaParseError(f"Cannot read protocol schema {source}: {e}") from e
        if source.suffix.lower() in (".yaml", ".yml"):
            try:
                return yaml.safe_load(text)
            except yaml.YAMLError as e:
                raise SchemaParseError(f"Malformed protocol schema {source}: {e}") from e
        source = text

    try:
        return json.loads(source)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SchemaParseError(f"Malformed protocol schema: {e}") from e


def _with_domain(member: Any, domain: Any) -> Any:
    if isinstance(member, Mapping) and "domain" not in member:
        return {**member, "domain": domain}
    return member
