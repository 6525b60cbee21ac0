"""Exception taxonomy for the inspector client.

Local errors (schema, arguments) are raised to the caller that triggered
them. Transport and protocol errors are reported asynchronously through the
``error`` notification and never thrown across a command call.
"""

from __future__ import annotations


class InspectorError(Exception):
    """Base class for all inspector client errors."""


class SchemaParseError(InspectorError, ValueError):
    """The protocol schema is not well-formed or misses required fields."""


class MissingArgumentError(InspectorError, TypeError):
    """A non-optional command parameter was left unset."""

    def __init__(self, method: str, parameter: str):
        super().__init__(f"Missing argument: {parameter} (in {method})")
        self.method = method
        self.parameter = parameter


class TransportError(InspectorError, ConnectionError):
    """The transport handle could not complete an operation."""


class ConnectionClosedError(TransportError):
    """The channel closed before a pending command was answered."""


class ConnectionCancelledError(InspectorError):
    """A connect attempt was superseded before it completed."""

    def __init__(self, reason: str = "CANCEL"):
        super().__init__(reason)
        self.reason = reason


class TargetDiscoveryError(TransportError):
    """The endpoint's target list could not be fetched."""


class TargetNotFoundError(InspectorError, LookupError):
    """No attachable target matched the requested URL."""
