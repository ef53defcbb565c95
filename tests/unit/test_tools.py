"""Unit tests for the FHIR tool wrappers.

Validates registration, response shape, dependency injection, and error handling
through the tool registration layer (without requiring a running FastMCP app).
"""

from collections.abc import Awaitable, Callable
from types import SimpleNamespace
from typing import Any, TypeAlias
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastmcp import Context
from fastmcp.exceptions import ToolError

from aidbox_fhir_mcp.errors import AidboxError
from aidbox_fhir_mcp.models.inputs import AddressInput
from aidbox_fhir_mcp.tools import conditions, encounters, medications, observations, patients
from aidbox_fhir_mcp.tools.common import build_tool_response

ToolFunc: TypeAlias = Callable[..., Awaitable[dict[str, Any]]]

EXPECTED_TOOLS = {
    "search_patients",
    "get_patient_details",
    "create_patient",
    "update_patient",
    "get_patient_observations",
    "create_observation",
    "get_patient_medications",
    "create_medication_request",
    "get_patient_conditions",
    "create_condition",
    "get_patient_encounters",
    "create_encounter",
}


class _FakeApp:
    """Minimal stand-in for FastMCP app to capture registered tools."""

    def __init__(self) -> None:
        self.tools: dict[str, ToolFunc] = {}
        self.annotations: dict[str, dict[str, Any]] = {}

    def tool(
        self,
        *,
        name: str,
        description: str,
        annotations: dict[str, Any] | None = None,
    ) -> Callable[[ToolFunc], ToolFunc]:
        def _decorator(func: ToolFunc) -> ToolFunc:
            _ = description
            self.tools[name] = func
            self.annotations[name] = annotations or {}
            return func

        return _decorator


@pytest.fixture
def mock_ctx() -> Context:
    """Return a Context-like mock with async logging methods."""
    ctx = MagicMock(spec=Context)
    ctx.info = AsyncMock()
    ctx.error = AsyncMock()
    return ctx


@pytest.fixture
def aidbox() -> AsyncMock:
    client = AsyncMock()
    client.search.return_value = {"resourceType": "Bundle", "entry": []}
    client.create.side_effect = lambda _type, resource: {**resource, "id": "new-id"}
    client.update.side_effect = lambda _type, resource_id, resource: {**resource, "id": resource_id}
    return client


@pytest.fixture
def app(aidbox: AsyncMock) -> _FakeApp:
    fake = _FakeApp()
    deps = SimpleNamespace(get_client=lambda: aidbox)
    for module in (patients, observations, medications, conditions, encounters):
        module.register(fake, deps=deps)  # type: ignore[arg-type]
    return fake


def test_all_tools_registered(app: _FakeApp) -> None:
    assert set(app.tools) == EXPECTED_TOOLS


def test_read_tools_are_annotated_read_only(app: _FakeApp) -> None:
    for name in EXPECTED_TOOLS:
        expected = not name.startswith(("create_", "update_"))
        assert app.annotations[name]["readOnlyHint"] is expected, name


def test_build_tool_response_prefixes_metadata() -> None:
    response = build_tool_response({"patients": []})
    assert response["success"] is True
    assert "retrieved_at" in response
    assert response["patients"] == []


@pytest.mark.asyncio
async def test_search_patients_tool(app: _FakeApp, aidbox: AsyncMock, mock_ctx: Context) -> None:
    aidbox.search.return_value = {
        "resourceType": "Bundle",
        "total": 1,
        "entry": [{"resource": {"id": "p1", "name": [{"given": ["Jane"], "family": "Doe"}]}}],
    }

    result = await app.tools["search_patients"](mock_ctx, family="Doe")

    aidbox.search.assert_awaited_once_with("Patient", {"family": "Doe", "_count": 20})
    assert result["success"] is True
    assert result["patientsFound"] == 1
    assert result["patients"][0]["name"] == "Jane Doe"
    mock_ctx.info.assert_awaited()  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_get_patient_details_tool(app: _FakeApp, aidbox: AsyncMock, mock_ctx: Context) -> None:
    aidbox.get.return_value = {"resourceType": "Patient", "id": "p1", "gender": "female"}

    result = await app.tools["get_patient_details"](mock_ctx, patient_id="p1")

    aidbox.get.assert_awaited_once_with("Patient", "p1")
    assert result["patient"]["gender"] == "female"


@pytest.mark.asyncio
async def test_create_patient_tool_with_address(app: _FakeApp, aidbox: AsyncMock, mock_ctx: Context) -> None:
    result = await app.tools["create_patient"](
        mock_ctx,
        given="John",
        family="Smith",
        address=AddressInput(line="1 Main St", city="Boston"),
    )

    sent = aidbox.create.await_args.args[1]
    assert sent["address"] == [{"line": ["1 Main St"], "city": "Boston"}]
    assert result["patientId"] == "new-id"
    assert result["message"] == "Patient created successfully"


@pytest.mark.asyncio
async def test_update_patient_tool(app: _FakeApp, aidbox: AsyncMock, mock_ctx: Context) -> None:
    aidbox.get.return_value = {"resourceType": "Patient", "id": "p1", "active": True}

    result = await app.tools["update_patient"](mock_ctx, patient_id="p1", active=False)

    assert aidbox.update.await_args.args[2]["active"] is False
    assert result["patient"]["active"] is False


@pytest.mark.asyncio
async def test_observation_tools(app: _FakeApp, aidbox: AsyncMock, mock_ctx: Context) -> None:
    listed = await app.tools["get_patient_observations"](mock_ctx, patient_id="p1", count=5)
    created = await app.tools["create_observation"](
        mock_ctx, patient_id="p1", code="8867-4", display="Heart rate", value=72.0, unit="/min"
    )

    assert aidbox.search.await_args.args[1]["_count"] == 5
    assert listed["observationsFound"] == 0
    assert created["observationId"] == "new-id"


@pytest.mark.asyncio
async def test_medication_tools(app: _FakeApp, aidbox: AsyncMock, mock_ctx: Context) -> None:
    await app.tools["get_patient_medications"](mock_ctx, patient_id="p1", status="active")
    created = await app.tools["create_medication_request"](
        mock_ctx, patient_id="p1", medication="Aspirin", dosage_text="81mg daily"
    )

    assert aidbox.search.await_args.args[0] == "MedicationRequest"
    assert created["medicationRequest"]["medication"] == "Aspirin"


@pytest.mark.asyncio
async def test_condition_tools(app: _FakeApp, aidbox: AsyncMock, mock_ctx: Context) -> None:
    await app.tools["get_patient_conditions"](mock_ctx, patient_id="p1")
    created = await app.tools["create_condition"](mock_ctx, patient_id="p1", display="Asthma", code="J45")

    assert aidbox.search.await_args.args[0] == "Condition"
    assert created["condition"]["code"] == "Asthma"


@pytest.mark.asyncio
async def test_encounter_tools(app: _FakeApp, aidbox: AsyncMock, mock_ctx: Context) -> None:
    await app.tools["get_patient_encounters"](mock_ctx, patient_id="p1", encounter_type="Checkup")
    created = await app.tools["create_encounter"](
        mock_ctx, patient_id="p1", status="finished", encounter_class="ambulatory"
    )

    assert aidbox.search.await_args.args[1]["type"] == "Checkup"
    assert created["encounter"]["status"] == "finished"


@pytest.mark.asyncio
async def test_aidbox_error_becomes_tool_error(app: _FakeApp, aidbox: AsyncMock, mock_ctx: Context) -> None:
    """Upstream failures surface as ToolError with the normalized message."""
    aidbox.get.side_effect = AidboxError("Resource Patient/missing not found", status_code=404)

    with pytest.raises(ToolError, match="Resource Patient/missing not found"):
        await app.tools["get_patient_details"](mock_ctx, patient_id="missing")

    mock_ctx.error.assert_awaited_once()  # type: ignore[attr-defined]
    assert "get_patient_details failed" in mock_ctx.error.await_args.args[0]  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_unexpected_errors_propagate(app: _FakeApp, aidbox: AsyncMock, mock_ctx: Context) -> None:
    aidbox.search.side_effect = KeyError("boom")

    with pytest.raises(KeyError):
        await app.tools["search_patients"](mock_ctx)

    mock_ctx.error.assert_not_awaited()  # type: ignore[attr-defined]
