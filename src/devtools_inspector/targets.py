"""Target discovery.

Remote-debuggable endpoints list their targets (tabs, workers,
extensions) over HTTP at ``/json/list``. Each attachable target carries
the WebSocket URL the transport connects to.
"""

from __future__ import annotations

import logging
from urllib.parse import urldefrag

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import InspectorConfig
from .errors import TargetDiscoveryError, TargetNotFoundError

logger = logging.getLogger(__name__)

WEBSOCKET_SCHEMES = ("ws://", "wss://")


class Target(BaseModel):
    """A debuggable window, tab or worker."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    type: str = "page"
    title: str = ""
    url: str = ""
    web_socket_debugger_url: str | None = Field(default=None, alias="webSocketDebuggerUrl")
    devtools_frontend_url: str | None = Field(default=None, alias="devtoolsFrontendUrl")

    @property
    def attachable(self) -> bool:
        """True when no other client holds the target's debugger socket."""
        return bool(self.web_socket_debugger_url)


async def list_targets(
    config: InspectorConfig | None = None,
    client: httpx.AsyncClient | None = None,
) -> list[Target]:
    """Get the endpoint's debuggable targets.

    Args:
        config: Endpoint host/port and HTTP timeout
        client: Optional client to reuse (must not set base_url)

    Raises:
        TargetDiscoveryError: If the endpoint is unreachable or answers
            with something other than a target list
    """
    config = config or InspectorConfig()
    url = f"{config.base_url}/json/list"

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=config.http_timeout) as own_client:
                response = await own_client.get(url)
        else:
            response = await client.get(url)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPError as e:
        raise TargetDiscoveryError(f"Cannot list targets at {url}: {e}") from e
    except ValueError as e:
        raise TargetDiscoveryError(f"Invalid target list from {url}: {e}") from e

    if not isinstance(data, list):
        raise TargetDiscoveryError(f"Invalid target list from {url}: expected a JSON array")

    try:
        targets = [Target.model_validate(item) for item in data]
    except ValidationError as e:
        raise TargetDiscoveryError(f"Invalid target list from {url}: {e}") from e

    logger.debug(f"Found {len(targets)} target(s) at {config.base_url}")
    return targets


def find_target(targets: list[Target], url: str | None = None) -> Target | None:
    """Pick the attachable page for ``url`` (first attachable page if None).

    Exact URL matches win; otherwise URLs are compared without fragment.
    """
    pages = [t for t in targets if t.attachable and t.type == "page"]
    if url is None:
        return pages[0] if pages else None

    for target in pages:
        if target.url == url:
            return target

    wanted = urldefrag(url).url
    for target in pages:
        if urldefrag(target.url).url == wanted:
            return target
    return None


async def resolve_endpoint(
    target: str | None,
    config: InspectorConfig | None = None,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Turn a page URL (or None) into a WebSocket debugger URL.

    WebSocket URLs are returned unchanged.

    Raises:
        TargetDiscoveryError: If discovery fails
        TargetNotFoundError: If no attachable target matches
    """
    if target and target.startswith(WEBSOCKET_SCHEMES):
        return target

    config = config or InspectorConfig()
    found = find_target(await list_targets(config, client), target)
    if found is None or found.web_socket_debugger_url is None:
        wanted = target or "any page"
        raise TargetNotFoundError(f"No attachable target for {wanted} at {config.base_url}")

    logger.info(f"Resolved {target or 'first page'} to target {found.id}")
    return found.web_socket_debugger_url
