"""MCP resources for the Aidbox connection.

Exposes the upstream connection state as a read-only resource. The same payload
backs the ``/health`` route in HTTP mode.
"""

# pyright: reportUnusedFunction=false

from types import SimpleNamespace
from typing import Any

from fastmcp import FastMCP

from .client.aidbox_client import AidboxClient
from .operations.common import utc_timestamp

STATUS_URI = "aidbox://status"


def connection_status(client: AidboxClient) -> dict[str, Any]:
    """Describe the configured Aidbox deployment and whether the last probe succeeded."""
    return {
        "url": client.config.base_url,
        "auth_type": client.config.auth_type,
        "connected": client.is_connected(),
        "checked_at": utc_timestamp(),
    }


def register(app: FastMCP, *, deps: SimpleNamespace) -> None:
    """Register resources on the provided app instance.

    Args:
        app: The FastMCP application instance to add resources to.
        deps: Dependencies namespace exposing ``get_client``.

    """

    @app.resource(
        uri=STATUS_URI,
        name="Aidbox Connection Status",
        description="Return the Aidbox base URL, auth mode, and whether the last connectivity probe succeeded.",
        mime_type="application/json",
        tags={"status"},
    )
    async def get_status() -> dict[str, Any]:
        return connection_status(deps.get_client())


__all__ = ["STATUS_URI", "connection_status", "register"]
