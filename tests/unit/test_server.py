"""Unit tests for the Aidbox FHIR MCP server entry point.

Tests cover:
- Lazy client construction from the environment
- The /health route payload
- Startup probing and degraded mode
- Shutdown and signal handling
"""

# pyright: reportPrivateUsage=false

import json
import signal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from aidbox_fhir_mcp import __version__, server
from aidbox_fhir_mcp.config import AidboxConfig, ServerSettings
from aidbox_fhir_mcp.errors import AidboxConnectionError


def _mock_client(**config_overrides: object) -> MagicMock:
    client = MagicMock()
    client.config = AidboxConfig(base_url="https://aidbox.example.com", **config_overrides)  # type: ignore[arg-type]
    client.is_connected.return_value = False
    client.test_connection = AsyncMock()
    client.disconnect = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def mock_client(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Install a mock as the process-wide client."""
    client = _mock_client()
    monkeypatch.setattr(server, "_client", client)
    return client


def test_get_client_builds_once_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(server, "_client", None)
    monkeypatch.setenv("AIDBOX_URL", "https://env.example.com")
    monkeypatch.delenv("AIDBOX_AUTH_TYPE", raising=False)

    first = server.get_client()
    second = server.get_client()

    assert first is second
    assert first.config.base_url == "https://env.example.com"


def test_get_client_invalid_env_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(server, "_client", None)
    monkeypatch.setenv("AIDBOX_URL", "not-a-url")

    with pytest.raises(RuntimeError, match="Invalid Aidbox configuration"):
        server.get_client()


@pytest.mark.asyncio
async def test_health_payload(mock_client: MagicMock) -> None:
    mock_client.is_connected.return_value = True

    response = await server.health(MagicMock())

    assert response.status_code == 200
    body = json.loads(response.body)
    assert body["status"] == "healthy"
    assert body["server"] == server.SERVER_NAME
    assert body["version"] == __version__
    assert body["aidbox"] == {"url": "https://aidbox.example.com", "connected": True}
    assert body["timestamp"]


@pytest.mark.asyncio
async def test_startup_check_probes_aidbox() -> None:
    client = _mock_client()
    await server.startup_check(client)
    client.test_connection.assert_awaited_once()


@pytest.mark.asyncio
async def test_startup_check_skipped_in_standalone_mode() -> None:
    client = _mock_client(skip_connection_check=True)
    await server.startup_check(client)
    client.test_connection.assert_not_awaited()


@pytest.mark.asyncio
async def test_startup_check_degraded_mode(caplog: pytest.LogCaptureFixture) -> None:
    """A failed probe is logged and the server keeps starting."""
    client = _mock_client()
    client.test_connection.side_effect = AidboxConnectionError("Cannot connect to Aidbox")

    with caplog.at_level("WARNING", logger="aidbox_fhir_mcp.server"):
        await server.startup_check(client)

    assert "degraded mode" in caplog.text


@pytest.mark.asyncio
async def test_shutdown_disconnects_and_closes() -> None:
    client = _mock_client()
    await server.shutdown(client)
    client.disconnect.assert_awaited_once()
    client.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_serve_stdio_runs_and_shuts_down(mock_client: MagicMock) -> None:
    with patch.object(server.app, "run_async", new=AsyncMock()) as run_async:
        await server.serve(ServerSettings())

    run_async.assert_awaited_once_with(transport="stdio")
    mock_client.test_connection.assert_awaited_once()
    mock_client.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_serve_http_mode(mock_client: MagicMock) -> None:
    settings = ServerSettings(http_mode=True, host="127.0.0.1", port=8080)
    with patch.object(server.app, "run_async", new=AsyncMock()) as run_async:
        await server.serve(settings)

    run_async.assert_awaited_once_with(transport="http", host="127.0.0.1", port=8080)


@pytest.mark.asyncio
async def test_serve_shuts_down_on_error(mock_client: MagicMock) -> None:
    with (
        patch.object(server.app, "run_async", new=AsyncMock(side_effect=RuntimeError("transport died"))),
        pytest.raises(RuntimeError, match="transport died"),
    ):
        await server.serve(ServerSettings())

    mock_client.disconnect.assert_awaited_once()
    mock_client.aclose.assert_awaited_once()


def test_handle_interrupt_exits() -> None:
    with pytest.raises(SystemExit) as exc_info:
        server.handle_interrupt(signal.SIGINT, None)
    assert exc_info.value.code == 0


def test_main_exits_on_invalid_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(server, "_client", None)
    monkeypatch.setenv("AIDBOX_URL", "not-a-url")

    with patch("aidbox_fhir_mcp.server.signal.signal"), pytest.raises(SystemExit) as exc_info:
        server.main()

    assert exc_info.value.code == 1


def test_main_runs_server(mock_client: MagicMock, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MCP_HTTP_MODE", raising=False)
    with (
        patch("aidbox_fhir_mcp.server.signal.signal") as mock_signal,
        patch("aidbox_fhir_mcp.server.asyncio.run") as mock_run,
    ):
        server.main()

    assert mock_signal.call_count == 2
    mock_run.assert_called_once()
    mock_run.call_args.args[0].close()
