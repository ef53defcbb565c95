"""Client package for the Aidbox MCP server.

Provides the HTTP client and credential management for the Aidbox FHIR API:
- ``aidbox_client``: FHIR REST operations with auth, single 401 retry, and error normalization
- ``token_manager``: Basic credentials and OAuth2 token lifecycle with automatic refresh
"""
