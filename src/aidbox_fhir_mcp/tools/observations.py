"""MCP tools: get_patient_observations, create_observation."""

# pyright: reportUnusedFunction=false

from functools import partial
from types import SimpleNamespace
from typing import Annotated, Any, Literal

from fastmcp import Context, FastMCP
from pydantic import Field

from ..models.inputs import ObservationCategory
from ..operations import observations
from .common import READ_ONLY, WRITES, run_fhir_tool


def register(app: FastMCP, *, deps: SimpleNamespace) -> None:
    """Register the observation tools on the provided app instance."""

    @app.tool(
        name="get_patient_observations",
        description="Get lab results, vital signs, and other observations for a patient, newest first.",
        annotations={"title": "Get patient observations", **READ_ONLY},
    )
    async def get_patient_observations(  # noqa: PLR0913 (FHIR search parameters)
        ctx: Context,
        patient_id: Annotated[str, Field(description="Patient ID", min_length=1)],
        category: ObservationCategory | None = None,
        code: Annotated[str | None, Field(description="Specific observation code (LOINC)")] = None,
        date: Annotated[str | None, Field(description="Date filter (e.g., ge2023-01-01)")] = None,
        count: Annotated[int, Field(description="Maximum number of results", ge=1)] = 20,
    ) -> dict[str, Any]:
        return await run_fhir_tool(
            ctx,
            deps,
            tool_name="get_patient_observations",
            log_message=f"Listing observations for patient {patient_id}.",
            operation=partial(
                observations.get_patient_observations,
                patient_id=patient_id,
                category=category,
                code=code,
                date=date,
                count=count,
            ),
        )

    @app.tool(
        name="create_observation",
        description="Create a new observation (lab result, vital sign, etc.).",
        annotations={"title": "Create observation", **WRITES},
    )
    async def create_observation(  # noqa: PLR0913 (Observation fields)
        ctx: Context,
        patient_id: Annotated[str, Field(description="Patient ID", min_length=1)],
        code: Annotated[str, Field(description="LOINC code for the observation")],
        display: Annotated[str, Field(description="Display name for the observation")],
        value: Annotated[float, Field(description="Numeric value")],
        unit: Annotated[str | None, Field(description="Unit of measurement (UCUM)")] = None,
        category: Literal["vital-signs", "laboratory", "exam", "survey"] | None = None,
        effective_date_time: Annotated[
            str | None, Field(description="When the observation was taken (ISO datetime); defaults to now")
        ] = None,
    ) -> dict[str, Any]:
        return await run_fhir_tool(
            ctx,
            deps,
            tool_name="create_observation",
            log_message=f"Creating observation {code} for patient {patient_id}.",
            operation=partial(
                observations.create_observation,
                patient_id=patient_id,
                code=code,
                display=display,
                value=value,
                unit=unit,
                category=category,
                effective_date_time=effective_date_time,
            ),
        )


__all__ = ["register"]
