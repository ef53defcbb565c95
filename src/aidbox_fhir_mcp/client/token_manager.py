"""Credential management for the Aidbox REST API."""

import base64
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import httpx

from ..config import AidboxConfig
from ..errors import AidboxAuthError

logger = logging.getLogger("aidbox_fhir_mcp.token_manager")

DEFAULT_EXPIRES_IN = 3600
# Tokens are refreshed this long before the server-reported expiry.
EXPIRY_MARGIN = timedelta(seconds=60)

OAUTH2_FAILED_MESSAGE = "OAuth2 authentication failed"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def basic_auth_header(username: str, password: str) -> str:
    """Return the value of a Basic ``Authorization`` header."""
    encoded = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
    return f"Basic {encoded}"


class TokenManager:
    """Produce authorization headers for Aidbox, refreshing OAuth2 tokens when necessary.

    Basic credentials are derived from the configuration on every call. OAuth2
    tokens are cached together with their expiry and replaced wholesale once
    expired or invalidated. There is no lock around the cache: two callers that
    both see an expired token will both fetch one and the last write wins.
    """

    def __init__(
        self,
        config: AidboxConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the token manager.

        Args:
            config: The resolved Aidbox configuration to use for authentication.
            transport: Optional httpx transport for the token endpoint (used in tests).
            now: Optional clock returning an aware ``datetime``.

        """
        self._config = config
        self._transport = transport
        self._now = now or _utcnow
        self._cached_token: str | None = None
        self._token_expires_at: datetime | None = None

    @property
    def token_expires_at(self) -> datetime | None:
        """Return the instant after which the cached token is no longer used."""
        return self._token_expires_at

    def has_valid_token(self) -> bool:
        """Return whether a cached token exists and has not reached its refresh boundary."""
        return (
            self._cached_token is not None
            and self._token_expires_at is not None
            and self._now() < self._token_expires_at
        )

    def invalidate(self) -> None:
        """Drop the cached token so the next request fetches a new one."""
        if self._cached_token is not None:
            logger.debug("Invalidating cached Aidbox access token.")
        self._cached_token = None
        self._token_expires_at = None

    async def auth_headers(self) -> dict[str, str]:
        """Return the ``Authorization`` header for the configured auth mode.

        Returns an empty dict in basic mode when username or password is missing.

        Raises:
            AidboxAuthError: If an OAuth2 token is needed and cannot be obtained.

        """
        if self._config.auth_type == "oauth2":
            token = await self.get_access_token()
            return {"Authorization": f"Bearer {token}"}
        if self._config.username and self._config.password:
            return {"Authorization": basic_auth_header(self._config.username, self._config.password)}
        return {}

    async def get_access_token(self) -> str:
        """Return a valid OAuth2 access token, fetching a new one if needed."""
        if self.has_valid_token():
            return self._cached_token  # type: ignore[return-value]
        return await self._fetch_and_cache_token()

    async def _fetch_and_cache_token(self) -> str:
        """Run the client-credentials exchange and cache the returned token.

        Raises:
            AidboxAuthError: On transport errors, non-2xx responses, or malformed bodies.

        """
        logger.info("Requesting new Aidbox access token.")
        try:
            token, expires_in = await self._request_token()
        except (httpx.HTTPError, ValueError, TypeError) as exc:
            logger.error("Failed to get Aidbox access token: %s", exc)
            raise AidboxAuthError(OAUTH2_FAILED_MESSAGE) from exc

        self._cached_token = token
        self._token_expires_at = self._now() + timedelta(seconds=expires_in) - EXPIRY_MARGIN
        logger.debug("Fetched new Aidbox access token (expires in %ss).", expires_in)
        return token

    async def _request_token(self) -> tuple[str, int]:
        """POST the client-credentials grant and parse the token response.

        Returns:
            The access token and its lifetime in seconds.

        """
        form = {
            "grant_type": "client_credentials",
            "client_id": self._config.client_id or "",
            "client_secret": self._config.client_secret or "",
        }
        timeout = httpx.Timeout(self._config.timeout_seconds)
        async with httpx.AsyncClient(
            verify=self._config.verify_ssl,
            timeout=timeout,
            transport=self._transport,
        ) as http_client:
            response = await http_client.post(self._config.token_url, data=form)
            response.raise_for_status()
            payload = response.json()

        if not isinstance(payload, dict):
            msg = "Token response is not a JSON object"
            raise TypeError(msg)
        token = payload.get("access_token")
        if not isinstance(token, str) or not token:
            msg = "Token response is missing 'access_token'"
            raise ValueError(msg)
        expires_in = int(payload.get("expires_in") or DEFAULT_EXPIRES_IN)
        return token, expires_in


__all__ = ["DEFAULT_EXPIRES_IN", "EXPIRY_MARGIN", "OAUTH2_FAILED_MESSAGE", "TokenManager", "basic_auth_header"]
