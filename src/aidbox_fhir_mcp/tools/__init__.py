"""Tools package for MCP server.

Contains MCP tool registration modules:
- ``patients``: Search, read, create, and update patients
- ``observations``: List and create observations
- ``medications``: List and create medication requests
- ``conditions``: List and create conditions
- ``encounters``: List and create encounters
- ``common``: Shared utilities for tool registration
"""
