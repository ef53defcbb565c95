"""Entry point for the Aidbox FHIR MCP server.

This module wires together the FastMCP app and registers tools. Implementation
logic lives in focused modules under ``aidbox_fhir_mcp/``.

Registered tools:
- ``search_patients`` / ``get_patient_details`` / ``create_patient`` / ``update_patient``
- ``get_patient_observations`` / ``create_observation``
- ``get_patient_medications`` / ``create_medication_request``
- ``get_patient_conditions`` / ``create_condition``
- ``get_patient_encounters`` / ``create_encounter``
"""

import asyncio
import logging
import os
import signal
import sys
from types import SimpleNamespace

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from . import __version__, resources
from .client.aidbox_client import AidboxClient
from .config import AidboxConfig, ServerSettings
from .errors import AidboxConnectionError
from .operations.common import utc_timestamp
from .tools.conditions import register as register_condition_tools
from .tools.encounters import register as register_encounter_tools
from .tools.medications import register as register_medication_tools
from .tools.observations import register as register_observation_tools
from .tools.patients import register as register_patient_tools

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(name)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger("aidbox_fhir_mcp.server")

SERVER_NAME = "aidbox-mcp-server"

app = FastMCP(
    name=SERVER_NAME,
    instructions=(
        "Expose tools that read and write patients, observations, medications, conditions, "
        "and encounters on an Aidbox FHIR server."
    ),
)

_client: AidboxClient | None = None


def get_client() -> AidboxClient:
    """Return the process-wide Aidbox client, building it from the environment on first use."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = AidboxClient(AidboxConfig.from_env())
    return _client


async def health(request: Request) -> JSONResponse:  # noqa: ARG001
    """Report server liveness and the Aidbox connection state."""
    status = resources.connection_status(get_client())
    return JSONResponse(
        {
            "status": "healthy",
            "server": SERVER_NAME,
            "version": __version__,
            "aidbox": {"url": status["url"], "connected": status["connected"]},
            "timestamp": utc_timestamp(),
        }
    )


def _register_capabilities() -> None:
    """Register tools, resources, and custom routes with the app instance."""
    deps = SimpleNamespace(get_client=get_client)
    register_patient_tools(app, deps=deps)
    register_observation_tools(app, deps=deps)
    register_medication_tools(app, deps=deps)
    register_condition_tools(app, deps=deps)
    register_encounter_tools(app, deps=deps)
    resources.register(app, deps=deps)
    app.custom_route("/health", methods=["GET"])(health)


# Register all capabilities with the app instance (after function is defined)
_register_capabilities()


async def startup_check(client: AidboxClient) -> None:
    """Probe Aidbox once at startup; failures leave the server running in degraded mode."""
    if client.config.skip_connection_check:
        logger.warning("Running in standalone mode (no Aidbox connection check).")
        return
    try:
        await client.test_connection()
    except AidboxConnectionError as exc:
        logger.warning("Could not connect to Aidbox: %s", exc)
        logger.warning("Starting in degraded mode - FHIR operations will fail until %s is reachable.", client.config.base_url)


async def shutdown(client: AidboxClient) -> None:
    """Disconnect from Aidbox and release the HTTP connection pool."""
    logger.info("Stopping Aidbox MCP server...")
    await client.disconnect()
    await client.aclose()
    logger.info("Server stopped gracefully.")


async def serve(settings: ServerSettings) -> None:
    """Run the MCP server on stdio or HTTP until it exits."""
    client = get_client()
    try:
        await startup_check(client)
        if settings.http_mode:
            logger.info("Starting HTTP transport on %s:%s (health check at /health).", settings.host, settings.port)
            await app.run_async(transport="http", host=settings.host, port=settings.port)
        else:
            await app.run_async(transport="stdio")
    finally:
        await shutdown(client)


def handle_interrupt(signum: int, frame: object) -> None:  # noqa: ARG001
    """Handle keyboard interrupt gracefully."""
    logger.info("Received interrupt signal, shutting down...")
    sys.exit(0)


def main() -> None:
    """Entry point for the aidbox-fhir-mcp console script."""
    signal.signal(signal.SIGINT, handle_interrupt)
    signal.signal(signal.SIGTERM, handle_interrupt)
    try:
        settings = ServerSettings.from_env()
        get_client()
    except RuntimeError as exc:
        logger.error("Fatal error starting server: %s", exc)
        sys.exit(1)
    asyncio.run(serve(settings))


# Explicit re-exports for public API stability (and to satisfy linters)
__all__ = [
    "SERVER_NAME",
    "app",
    "get_client",
    "handle_interrupt",
    "health",
    "main",
    "serve",
    "shutdown",
    "startup_check",
]


if __name__ == "__main__":
    main()
