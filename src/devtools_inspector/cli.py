"""DevTools Inspector CLI.

Usage:
    devtools-inspector targets                      # List debuggable targets
    devtools-inspector domains                      # List protocol domains
    devtools-inspector call <target> <method>       # Invoke one command
    devtools-inspector trace <target> -e Page       # Print inbound messages
    devtools-inspector config                       # Show configuration

<target> is a page URL (resolved through the endpoint's target list) or a
ws:// debugger URL.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import click

from .config import InspectorConfig
from .errors import InspectorError, SchemaParseError, TargetDiscoveryError
from .inspector import Inspector
from .protocol.schema import ProtocolSchema, default_schema, load_schema
from .targets import list_targets
from .transport.websocket import WebSocketTransport

# Output format options
FORMAT_TABLE = "table"
FORMAT_JSON = "json"

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def truncate(text: str | None, max_len: int = 50) -> str:
    """Truncate text for display."""
    if not text:
        return ""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def parse_param(raw: str) -> tuple[str, Any]:
    """Split ``name=value``; the value is JSON when it parses, else a string."""
    name, sep, value = raw.partition("=")
    if not sep or not name:
        raise click.BadParameter(f"expected NAME=VALUE, got {raw!r}")
    try:
        return name, json.loads(value)
    except ValueError:
        return name, value


def _params_callback(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> dict[str, Any]:
    return dict(parse_param(raw) for raw in values)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML config file",
)
@click.option("--host", default=None, help="Debugging endpoint host")
@click.option("--port", type=int, default=None, help="Debugging endpoint port")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log level (stderr)",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    host: str | None,
    port: int | None,
    log_level: str | None,
) -> None:
    """DevTools Inspector - talk to a remote debugging endpoint.

    Configuration comes from defaults, then --config, then INSPECTOR_*
    environment variables, then the options given here.
    """
    try:
        config = InspectorConfig.load(config_path)
    except (OSError, ValueError) as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)

    overrides = {
        key: value
        for key, value in (("host", host), ("port", port), ("log_level", log_level))
        if value is not None
    }
    if overrides:
        config = config.merged(overrides)

    logging.basicConfig(
        level=config.log_level,
        stream=sys.stderr,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.obj = config


# =============================================================================
# Discovery commands
# =============================================================================


@main.command("targets")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON]),
    default=FORMAT_TABLE,
    help="Output format",
)
@click.pass_obj
def targets_command(config: InspectorConfig, output_format: str) -> None:
    """List debuggable targets.

    Examples:

        devtools-inspector targets
        devtools-inspector --port 9229 targets --format json
    """
    try:
        targets = asyncio.run(list_targets(config))
    except TargetDiscoveryError as e:
        click.echo(str(e), err=True)
        sys.exit(1)

    if output_format == FORMAT_JSON:
        click.echo(json.dumps([t.model_dump(by_alias=True) for t in targets], indent=2))
        return

    if not targets:
        click.echo("No targets found.")
        return

    click.echo(f"{'ID':<20} {'Type':<10} {'Title':<25} {'URL':<40}")
    click.echo("-" * 98)
    for t in targets:
        marker = "" if t.attachable else " (attached)"
        click.echo(
            f"{truncate(t.id, 20):<20} {t.type:<10} {truncate(t.title, 25):<25} "
            f"{truncate(t.url, 40)}{marker}"
        )

    click.echo(f"\nTotal: {len(targets)} target(s)")


@main.command("domains")
@click.option(
    "--schema",
    "schema_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Protocol description (default: configured or bundled)",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON]),
    default=FORMAT_TABLE,
    help="Output format",
)
@click.pass_obj
def domains_command(config: InspectorConfig, schema_path: Path | None, output_format: str) -> None:
    """List protocol domains with their commands and events.

    Examples:

        devtools-inspector domains
        devtools-inspector domains --schema protocol.json --format json
    """
    try:
        schema = _load_schema(config, schema_path)
    except SchemaParseError as e:
        click.echo(str(e), err=True)
        sys.exit(1)

    if output_format == FORMAT_JSON:
        data = [
            {
                "domain": d.name,
                "commands": [c.name for c in d.commands],
                "events": [e.name for e in d.events],
            }
            for d in schema
        ]
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(f"{'Domain':<20} {'Commands':>9} {'Events':>7}")
    click.echo("-" * 38)
    for d in schema:
        click.echo(f"{d.name:<20} {len(d.commands):>9} {len(d.events):>7}")

    click.echo(f"\nTotal: {len(schema)} domain(s)")


def _load_schema(config: InspectorConfig, schema_path: Path | None) -> ProtocolSchema:
    path = schema_path or config.schema_path
    return load_schema(path) if path is not None else default_schema()


# =============================================================================
# Session commands
# =============================================================================


@main.command("call")
@click.argument("target")
@click.argument("method")
@click.option(
    "--param",
    "-p",
    "params",
    multiple=True,
    metavar="NAME=VALUE",
    callback=_params_callback,
    help="Command parameter; VALUE is parsed as JSON when possible",
)
@click.option("--timeout", type=float, default=10.0, help="Seconds to wait for the result")
@click.pass_obj
def call_command(
    config: InspectorConfig,
    target: str,
    method: str,
    params: dict[str, Any],
    timeout: float,
) -> None:
    """Connect, invoke METHOD (Domain.command) and print its result.

    Examples:

        devtools-inspector call http://localhost:8000/ Runtime.evaluate -p expression=1+1
        devtools-inspector call ws://127.0.0.1:9222/devtools/page/1 Page.reload \\
            -p ignoreCache=true
    """

    async def run() -> None:
        inspector = _create_inspector(config)

        domain, _, command = method.partition(".")
        try:
            bound = inspector.command(domain, command)
            payload, _ = bound.serialize((), params)
        except KeyError:
            click.echo(f"Unknown method: {method}", err=True)
            sys.exit(1)
        except TypeError as e:
            click.echo(f"Invalid arguments: {e}", err=True)
            sys.exit(1)

        await _connect(inspector, target, config)
        try:
            failed: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

            def on_error(error: Any) -> None:
                if not failed.done():
                    failed.set_result(error)

            inspector.on("error", on_error)
            future = inspector.send(bound.method, payload)
            if future is None:
                click.echo("Connection lost before the command was sent", err=True)
                sys.exit(1)

            done, _ = await asyncio.wait(
                {future, failed}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
            if future in done:
                click.echo(json.dumps(future.result(), indent=2))
            elif failed in done:
                click.echo(f"{method} failed: {_describe(failed.result())}", err=True)
                sys.exit(1)
            else:
                click.echo(f"Timed out after {timeout}s waiting for {method}", err=True)
                sys.exit(1)
        finally:
            await inspector.disconnect()

    asyncio.run(run())


@main.command("trace")
@click.argument("target")
@click.option(
    "--enable",
    "-e",
    "domains",
    multiple=True,
    help="Domain to enable (repeatable), e.g. Page, Network",
)
@click.option("--duration", type=float, default=None, help="Stop after this many seconds")
@click.pass_obj
def trace_command(
    config: InspectorConfig,
    target: str,
    domains: tuple[str, ...],
    duration: float | None,
) -> None:
    """Print every inbound message as one JSON line.

    Runs until --duration elapses, the endpoint closes the channel, or
    Ctrl+C.

    Examples:

        devtools-inspector trace http://localhost:8000/ -e Page -e Network
        devtools-inspector trace ws://127.0.0.1:9222/devtools/page/1 --duration 5
    """

    async def run() -> None:
        inspector = _create_inspector(config)
        schema = inspector.schema
        unknown = [d for d in domains if schema is None or schema.command(d, "enable") is None]
        if unknown:
            click.echo(f"Cannot enable domain(s): {', '.join(unknown)}", err=True)
            sys.exit(1)

        closed = asyncio.Event()
        inspector.on("message", lambda message: click.echo(json.dumps(message)))
        inspector.on("disconnect", closed.set)

        await _connect(inspector, target, config)
        try:
            for domain in domains:
                inspector.call(domain, "enable")
            try:
                await asyncio.wait_for(closed.wait(), duration)
            except TimeoutError:
                pass
            if closed.is_set():
                click.echo("Disconnected by remote endpoint", err=True)
        finally:
            await inspector.disconnect()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        click.echo("\nStopped", err=True)


def _create_inspector(config: InspectorConfig) -> Inspector:
    inspector = Inspector(config, transport_factory=WebSocketTransport)
    try:
        inspector.init()
    except SchemaParseError as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    return inspector


async def _connect(inspector: Inspector, target: str, config: InspectorConfig) -> None:
    try:
        await asyncio.wait_for(inspector.connect_to_target(target), config.connect_timeout)
    except TimeoutError:
        await inspector.disconnect()
        click.echo(f"Timed out connecting to {target}", err=True)
        sys.exit(1)
    except InspectorError as e:
        click.echo(f"Cannot connect to {target}: {e}", err=True)
        sys.exit(1)


def _describe(error: Any) -> str:
    if isinstance(error, dict):
        message = error.get("message")
        code = error.get("code")
        if message is not None:
            return f"{message} ({code})" if code is not None else str(message)
    return str(error)


# =============================================================================
# Config Commands
# =============================================================================


@main.command("config")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def show_config(config: InspectorConfig, output_json: bool) -> None:
    """Show the effective configuration.

    Examples:

        devtools-inspector config
        devtools-inspector --config inspector.yaml config --json
    """
    data = config.to_dict()

    if output_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.echo("DevTools Inspector Configuration")
    click.echo("-" * 40)
    click.echo(f"Endpoint:           {config.base_url}")
    click.echo(f"Target:             {config.target or 'first page'}")
    click.echo(f"Schema:             {data['schema_path'] or 'bundled'}")
    click.echo(f"Connect timeout:    {config.connect_timeout}s")
    click.echo(f"HTTP timeout:       {config.http_timeout}s")
    click.echo(f"Strict arguments:   {config.strict_arguments}")
    click.echo(f"Reject on drop:     {config.reject_pending_on_disconnect}")
    click.echo(f"Log level:          {config.log_level}")


if __name__ == "__main__":
    main()
