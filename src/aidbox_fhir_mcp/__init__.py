"""Aidbox FHIR MCP Server package.

This package contains the FastMCP server and tools for reading and writing
clinical records on an Aidbox FHIR server.
"""

# Intentionally do not re-export symbols from submodules to avoid importing
# heavy dependencies and triggering environment validation at package import
# time. Individual modules (e.g., ``server``) should be imported directly by
# consumers as needed.

__version__ = "1.0.0"

__all__: list[str] = ["__version__"]
