"""Aidbox FHIR REST client.

Wraps every outbound call with authorization, a single retry after an expired
OAuth2 token, and error normalization into ``AidboxError``.
"""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, TypeAlias

import httpx

from ..config import AidboxConfig
from ..errors import AidboxConnectionError, AidboxError, normalize_error
from .token_manager import TokenManager

logger = logging.getLogger("aidbox_fhir_mcp.aidbox_client")

FHIR_JSON = "application/fhir+json"
HTTP_OK = 200
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403

FhirResource: TypeAlias = dict[str, Any]


class AidboxClient:
    """Async client for the FHIR API of one Aidbox deployment."""

    def __init__(
        self,
        config: AidboxConfig,
        *,
        token_manager: TokenManager | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Immutable connection parameters.
            token_manager: Credential source; built from ``config`` when omitted.
            transport: Optional httpx transport shared by API and token requests (used in tests).

        """
        self._config = config
        self._tokens = token_manager or TokenManager(config, transport=transport)
        self._connected = False
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            headers={"Content-Type": FHIR_JSON, "Accept": FHIR_JSON},
            timeout=httpx.Timeout(config.timeout_seconds),
            verify=config.verify_ssl,
            follow_redirects=True,
            transport=transport,
        )

    @property
    def config(self) -> AidboxConfig:
        return self._config

    @property
    def token_manager(self) -> TokenManager:
        return self._tokens

    def is_connected(self) -> bool:
        """Return whether the last connectivity probe succeeded."""
        return self._connected

    async def test_connection(self) -> None:
        """Probe the server once and record whether it answered with HTTP 200.

        The probe bypasses the 401 retry used by regular operations.

        Raises:
            AidboxConnectionError: With a message classified for operators.

        """
        base_url = self._config.base_url
        logger.info("Attempting to connect to Aidbox at %s (auth: %s)", base_url, self._config.auth_type)
        try:
            headers = await self._tokens.auth_headers()
            response = await self._http.get(self._config.probe_path, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._connected = False
            status = exc.response.status_code
            logger.error("Aidbox connection failed with HTTP %s: %s", status, exc.response.text)
            if status == HTTP_UNAUTHORIZED:
                msg = "Authentication failed. Please check your Aidbox credentials."
            elif status == HTTP_FORBIDDEN:
                msg = "Access forbidden. Please check your Aidbox permissions."
            else:
                msg = f"Failed to connect to Aidbox: {normalize_error(exc)}"
            raise AidboxConnectionError(msg, status_code=status) from exc
        except httpx.ConnectError as exc:
            self._connected = False
            logger.error("Aidbox connection failed: %s", exc)
            msg = f"Cannot connect to Aidbox at {base_url}. Please ensure Aidbox is running and check the URL."
            raise AidboxConnectionError(msg) from exc
        except (httpx.HTTPError, AidboxError) as exc:
            self._connected = False
            logger.error("Aidbox connection failed: %s", exc)
            msg = f"Failed to connect to Aidbox: {normalize_error(exc)}"
            raise AidboxConnectionError(msg) from exc

        if response.status_code != HTTP_OK:
            self._connected = False
            msg = f"Failed to connect to Aidbox: HTTP {response.status_code}: {response.reason_phrase}"
            logger.error("Aidbox connection probe returned HTTP %s.", response.status_code)
            raise AidboxConnectionError(msg, status_code=response.status_code)
        self._connected = True
        logger.info("Connected to Aidbox, version: %s", _reported_version(response))

    async def disconnect(self) -> None:
        """Mark the client disconnected and drop any cached OAuth2 token.

        Safe to call repeatedly. The pooled HTTP client stays open; use ``aclose``
        to release it.
        """
        self._connected = False
        self._tokens.invalidate()

    async def aclose(self) -> None:
        """Close the pooled HTTP client."""
        await self._http.aclose()

    async def search(self, resource_type: str, params: dict[str, Any] | None = None) -> FhirResource:
        """Search a resource type and return the raw Bundle."""
        return await self._request_json("GET", self._config.resource_path(resource_type), params=params)

    async def get(self, resource_type: str, resource_id: str) -> FhirResource:
        """Read one resource by id."""
        return await self._request_json("GET", self._config.resource_path(resource_type, resource_id))

    async def create(self, resource_type: str, resource: FhirResource) -> FhirResource:
        """Create a resource and return the server's copy."""
        return await self._request_json("POST", self._config.resource_path(resource_type), body=resource)

    async def update(self, resource_type: str, resource_id: str, resource: FhirResource) -> FhirResource:
        """Replace a resource; the sent body's ``id`` always equals ``resource_id``."""
        body = {**resource, "id": resource_id}
        return await self._request_json("PUT", self._config.resource_path(resource_type, resource_id), body=body)

    async def delete(self, resource_type: str, resource_id: str) -> dict[str, bool]:
        """Delete a resource. The response body is ignored."""
        await self._execute("DELETE", self._config.resource_path(resource_type, resource_id))
        return {"success": True}

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: FhirResource | None = None,
    ) -> FhirResource:
        response = await self._execute(method, path, params=params, body=body)
        # 201 with only a Location header, or Prefer: return=minimal
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            msg = f"Invalid JSON response from {method} {path}: {exc}"
            raise AidboxError(msg, status_code=response.status_code) from exc

    async def _execute(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: FhirResource | None = None,
    ) -> httpx.Response:
        """Send one logical request, retrying once after a 401 in OAuth2 mode.

        Raises:
            AidboxError: For every terminal failure, with the normalized message.

        """
        content = json.dumps(body) if body is not None else None
        try:
            response = await self._send(method, path, params=params, content=content)
            if response.status_code == HTTP_UNAUTHORIZED and self._config.auth_type == "oauth2":
                logger.info("Aidbox returned 401 for %s %s; refreshing token and retrying once.", method, path)
                self._tokens.invalidate()
                response = await self._send(method, path, params=params, content=content)
            response.raise_for_status()
        except (httpx.HTTPError, AidboxError) as exc:
            error = normalize_error(exc)
            logger.warning("Aidbox %s %s failed: %s", method, path, error)
            raise error from exc
        return response

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None,
        content: str | None,
    ) -> httpx.Response:
        headers = await self._tokens.auth_headers()
        return await self._http.request(method, path, params=params, content=content, headers=headers)


def _reported_version(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return "Unknown"
    if isinstance(data, dict) and data.get("version"):
        return str(data["version"])
    return "Unknown"


@asynccontextmanager
async def create_aidbox_client(
    config: AidboxConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[AidboxClient]:
    """Create an ``AidboxClient`` that is disconnected and closed on exit.

    Args:
        config: The configuration containing base URL, credentials, and timeouts.
        transport: Optional httpx transport (used in tests).

    Yields:
        Configured AidboxClient instance.

    """
    client = AidboxClient(config, transport=transport)
    try:
        yield client
    finally:
        await client.disconnect()
        await client.aclose()


__all__ = ["FHIR_JSON", "AidboxClient", "FhirResource", "create_aidbox_client"]
