"""Common utilities for MCP tool registration.

Provides the shared call path used by every FHIR tool: report progress to the
client, run the operation, wrap the payload, and turn ``AidboxError`` into an
MCP tool error.
"""

import logging
from collections.abc import Awaitable, Callable
from types import SimpleNamespace
from typing import Any, TypeAlias

from fastmcp import Context
from fastmcp.exceptions import ToolError

from ..client.aidbox_client import AidboxClient
from ..errors import AidboxError
from ..operations.common import utc_timestamp

logger = logging.getLogger("aidbox_fhir_mcp.tools")

Operation: TypeAlias = Callable[[AidboxClient], Awaitable[dict[str, Any]]]

READ_ONLY = {"readOnlyHint": True}
WRITES = {"readOnlyHint": False, "destructiveHint": False}


def build_tool_response(payload: dict[str, Any]) -> dict[str, Any]:
    """Build a standard successful tool response.

    Args:
        payload: Operation-specific fields.

    Returns:
        The payload prefixed with ``success`` and ``retrieved_at``.

    """
    return {
        "success": True,
        "retrieved_at": utc_timestamp(),
        **payload,
    }


async def run_fhir_tool(
    ctx: Context,
    deps: SimpleNamespace,
    *,
    tool_name: str,
    log_message: str,
    operation: Operation,
) -> dict[str, Any]:
    """Run one FHIR operation on behalf of a tool.

    Args:
        ctx: FastMCP context.
        deps: Dependencies namespace exposing ``get_client``.
        tool_name: Registered tool name, used in error reports.
        log_message: Progress message sent to the client.
        operation: Coroutine function receiving the shared ``AidboxClient``.

    Returns:
        Tool response dictionary.

    Raises:
        ToolError: With the normalized Aidbox error message.

    """
    await ctx.info(log_message)
    client: AidboxClient = deps.get_client()
    try:
        payload = await operation(client)
    except AidboxError as exc:
        logger.error("Aidbox %s error: %s", tool_name, exc)
        await ctx.error(f"{tool_name} failed: {exc}")
        raise ToolError(str(exc)) from exc
    return build_tool_response(payload)


__all__ = ["READ_ONLY", "WRITES", "Operation", "build_tool_response", "run_fhir_tool"]
