"""Unit tests for TokenManager in client.token_manager.

Covers basic header derivation, OAuth2 token caching around the expiry margin,
and failure handling of the token exchange.
"""

# pyright: reportPrivateUsage=false

import base64
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs

import httpx
import pytest

from aidbox_fhir_mcp.client.token_manager import OAUTH2_FAILED_MESSAGE, TokenManager, basic_auth_header
from aidbox_fhir_mcp.config import AidboxConfig
from aidbox_fhir_mcp.errors import AidboxAuthError

BASE_URL = "https://aidbox.example.com"


class _Clock:
    """Manually advanced clock."""

    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def _oauth_config() -> AidboxConfig:
    return AidboxConfig(
        base_url=BASE_URL,
        auth_type="oauth2",
        client_id="client",
        client_secret="secret",
    )


def _token_transport(
    requests: list[httpx.Request],
    *,
    body: Callable[[int], dict[str, object]] | None = None,
    status_code: int = 200,
) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        payload = body(len(requests)) if body else {"access_token": f"tok-{len(requests)}", "expires_in": 3600}
        return httpx.Response(status_code, json=payload)

    return httpx.MockTransport(handler)


class TestBasicAuth:
    """Tests for basic-mode headers."""

    @pytest.mark.asyncio
    async def test_basic_header_from_credentials(self) -> None:
        """Username and password should produce a Basic header."""
        manager = TokenManager(AidboxConfig(base_url=BASE_URL, username="root", password="secret"))

        headers = await manager.auth_headers()

        expected = base64.b64encode(b"root:secret").decode()
        assert headers == {"Authorization": f"Basic {expected}"}

    @pytest.mark.asyncio
    async def test_no_header_without_password(self) -> None:
        """A missing password should leave requests unauthenticated."""
        manager = TokenManager(AidboxConfig(base_url=BASE_URL, username="root"))

        assert await manager.auth_headers() == {}

    @pytest.mark.asyncio
    async def test_no_header_without_credentials(self) -> None:
        manager = TokenManager(AidboxConfig(base_url=BASE_URL))

        assert await manager.auth_headers() == {}

    def test_basic_auth_header_encodes_colon_in_password(self) -> None:
        value = basic_auth_header("user", "pa:ss")
        assert base64.b64decode(value.removeprefix("Basic ")).decode() == "user:pa:ss"


class TestOAuth2Tokens:
    """Tests for client-credentials token acquisition and caching."""

    @pytest.mark.asyncio
    async def test_fetches_token_with_client_credentials(self) -> None:
        """The first call should POST a form-encoded grant to /auth/token."""
        requests: list[httpx.Request] = []
        manager = TokenManager(_oauth_config(), transport=_token_transport(requests))

        headers = await manager.auth_headers()

        assert headers == {"Authorization": "Bearer tok-1"}
        assert len(requests) == 1
        request = requests[0]
        assert request.method == "POST"
        assert str(request.url) == f"{BASE_URL}/auth/token"
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        form = parse_qs(request.content.decode())
        assert form == {
            "grant_type": ["client_credentials"],
            "client_id": ["client"],
            "client_secret": ["secret"],
        }

    @pytest.mark.asyncio
    async def test_token_reused_until_margin_boundary(self) -> None:
        """A 3600s token is reused for 3540s and refreshed at the boundary."""
        requests: list[httpx.Request] = []
        clock = _Clock()
        manager = TokenManager(_oauth_config(), transport=_token_transport(requests), now=clock)

        assert await manager.get_access_token() == "tok-1"
        clock.advance(3539)
        assert await manager.get_access_token() == "tok-1"
        assert len(requests) == 1

        clock.advance(1)
        assert await manager.get_access_token() == "tok-2"
        assert len(requests) == 2

    @pytest.mark.asyncio
    async def test_expiry_includes_safety_margin(self) -> None:
        clock = _Clock()
        start = clock.now
        manager = TokenManager(
            _oauth_config(),
            transport=_token_transport([], body=lambda _n: {"access_token": "tok", "expires_in": 600}),
            now=clock,
        )

        await manager.get_access_token()

        assert manager.token_expires_at == start + timedelta(seconds=540)

    @pytest.mark.asyncio
    async def test_missing_expires_in_defaults_to_one_hour(self) -> None:
        clock = _Clock()
        start = clock.now
        manager = TokenManager(
            _oauth_config(),
            transport=_token_transport([], body=lambda _n: {"access_token": "tok"}),
            now=clock,
        )

        await manager.get_access_token()

        assert manager.token_expires_at == start + timedelta(seconds=3540)

    @pytest.mark.asyncio
    async def test_invalidate_forces_new_exchange(self) -> None:
        """Invalidating the cache should trigger a new token request."""
        requests: list[httpx.Request] = []
        manager = TokenManager(_oauth_config(), transport=_token_transport(requests))

        await manager.get_access_token()
        assert manager.has_valid_token() is True

        manager.invalidate()
        assert manager.has_valid_token() is False
        assert manager.token_expires_at is None

        assert await manager.get_access_token() == "tok-2"
        assert len(requests) == 2

    def test_invalidate_without_token_is_noop(self) -> None:
        manager = TokenManager(_oauth_config())
        manager.invalidate()
        manager.invalidate()
        assert manager.has_valid_token() is False


class TestOAuth2Failures:
    """Token exchange failures surface as AidboxAuthError and are not retried."""

    @pytest.mark.asyncio
    async def test_non_2xx_response_raises(self) -> None:
        requests: list[httpx.Request] = []
        manager = TokenManager(
            _oauth_config(),
            transport=_token_transport(requests, body=lambda _n: {"error": "invalid_client"}, status_code=401),
        )

        with pytest.raises(AidboxAuthError, match=OAUTH2_FAILED_MESSAGE):
            await manager.get_access_token()

        assert len(requests) == 1
        assert manager.has_valid_token() is False

    @pytest.mark.asyncio
    async def test_missing_access_token_raises(self) -> None:
        manager = TokenManager(
            _oauth_config(),
            transport=_token_transport([], body=lambda _n: {"expires_in": 3600}),
        )

        with pytest.raises(AidboxAuthError) as exc_info:
            await manager.get_access_token()

        assert str(exc_info.value) == OAUTH2_FAILED_MESSAGE
        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self) -> None:
        def handler(_request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>login</html>")

        manager = TokenManager(_oauth_config(), transport=httpx.MockTransport(handler))

        with pytest.raises(AidboxAuthError, match=OAUTH2_FAILED_MESSAGE):
            await manager.get_access_token()

    @pytest.mark.asyncio
    async def test_transport_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        manager = TokenManager(_oauth_config(), transport=httpx.MockTransport(handler))

        with pytest.raises(AidboxAuthError) as exc_info:
            await manager.auth_headers()

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
