"""Client configuration.

Values come from defaults, then an optional YAML file, then ``INSPECTOR_*``
environment variables (highest precedence).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "INSPECTOR_"

# field name -> environment variable suffix
_ENV_NAMES: dict[str, str] = {
    "host": "HOST",
    "port": "PORT",
    "target": "TARGET",
    "schema_path": "SCHEMA",
    "connect_timeout": "CONNECT_TIMEOUT",
    "http_timeout": "HTTP_TIMEOUT",
    "max_message_size": "MAX_MESSAGE_SIZE",
    "strict_arguments": "STRICT_ARGUMENTS",
    "reject_pending_on_disconnect": "REJECT_PENDING",
    "log_level": "LOG_LEVEL",
}

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class InspectorConfig:
    """Settings for the inspector client and the CLI."""

    # Remote debugging endpoint (HTTP discovery + WebSocket)
    host: str = "127.0.0.1"
    port: int = 9222
    target: str | None = None  # page URL or ws:// debugger URL

    # Protocol description; None uses the bundled one
    schema_path: Path | None = None

    # Timeouts (seconds)
    connect_timeout: float = 10.0
    http_timeout: float = 5.0

    max_message_size: int = 64 * 1024 * 1024

    # Raise MissingArgumentError instead of logging it
    strict_arguments: bool = False

    # Reject outstanding commands whenever the connection goes down
    reject_pending_on_disconnect: bool = False

    log_level: str = "WARNING"

    @property
    def base_url(self) -> str:
        """HTTP URL of the endpoint's discovery API."""
        return f"http://{self.host}:{self.port}"

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.schema_path is not None:
            data["schema_path"] = str(self.schema_path)
        return data

    def merged(self, values: Mapping[str, Any]) -> InspectorConfig:
        """Return a copy with ``values`` applied (coerced to field types)."""
        known = {f.name for f in fields(self)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        data = asdict(self)
        for key, raw in values.items():
            data[key] = _coerce(key, raw)
        return InspectorConfig(**data)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> InspectorConfig:
        """Build a config from ``INSPECTOR_*`` variables over the defaults."""
        return cls().with_env(environ)

    def with_env(self, environ: Mapping[str, str] | None = None) -> InspectorConfig:
        env = os.environ if environ is None else environ
        values = {
            name: env[ENV_PREFIX + suffix]
            for name, suffix in _ENV_NAMES.items()
            if ENV_PREFIX + suffix in env
        }
        return self.merged(values) if values else self

    @classmethod
    def from_file(cls, path: str | Path) -> InspectorConfig:
        """Build a config from a YAML mapping of field names."""
        path = Path(path)
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        logger.debug(f"Loaded config from {path}")
        return cls().merged(data)

    @classmethod
    def load(
        cls,
        path: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> InspectorConfig:
        """Defaults, then the YAML file (if any), then the environment."""
        config = cls.from_file(path) if path else cls()
        return config.with_env(environ)


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw (usually string) value to the type of field ``name``."""
    if value is None:
        return None
    if name in ("port", "max_message_size"):
        return int(value)
    if name in ("connect_timeout", "http_timeout"):
        return float(value)
    if name in ("strict_arguments", "reject_pending_on_disconnect"):
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in _TRUE_VALUES
    if name == "schema_path":
        return Path(value)
    if name == "log_level":
        return str(value).upper()
    return value
