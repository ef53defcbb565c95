"""MCP tools: get_patient_encounters, create_encounter."""

# pyright: reportUnusedFunction=false

from functools import partial
from types import SimpleNamespace
from typing import Annotated, Any

from fastmcp import Context, FastMCP
from pydantic import Field

from ..models.inputs import EncounterClass, EncounterStatus
from ..operations import encounters
from .common import READ_ONLY, WRITES, run_fhir_tool


def register(app: FastMCP, *, deps: SimpleNamespace) -> None:
    """Register the encounter tools on the provided app instance."""

    @app.tool(
        name="get_patient_encounters",
        description="Get healthcare encounters/visits for a patient, newest first.",
        annotations={"title": "Get patient encounters", **READ_ONLY},
    )
    async def get_patient_encounters(
        ctx: Context,
        patient_id: Annotated[str, Field(description="Patient ID", min_length=1)],
        status: EncounterStatus | None = None,
        encounter_type: Annotated[str | None, Field(description="Encounter type (e.g., ambulatory, inpatient)")] = None,
        count: Annotated[int, Field(description="Maximum number of results", ge=1)] = 20,
    ) -> dict[str, Any]:
        return await run_fhir_tool(
            ctx,
            deps,
            tool_name="get_patient_encounters",
            log_message=f"Listing encounters for patient {patient_id}.",
            operation=partial(
                encounters.get_patient_encounters,
                patient_id=patient_id,
                status=status,
                encounter_type=encounter_type,
                count=count,
            ),
        )

    @app.tool(
        name="create_encounter",
        description="Create a new encounter/visit.",
        annotations={"title": "Create encounter", **WRITES},
    )
    async def create_encounter(  # noqa: PLR0913 (Encounter fields)
        ctx: Context,
        patient_id: Annotated[str, Field(description="Patient ID", min_length=1)],
        status: EncounterStatus,
        encounter_class: EncounterClass,
        encounter_type: Annotated[str | None, Field(description='Type of encounter (e.g., "Routine checkup")')] = None,
        start_date_time: Annotated[str | None, Field(description="Start date/time (ISO datetime)")] = None,
        end_date_time: Annotated[str | None, Field(description="End date/time (ISO datetime)")] = None,
        reason: Annotated[str | None, Field(description="Reason for visit")] = None,
    ) -> dict[str, Any]:
        return await run_fhir_tool(
            ctx,
            deps,
            tool_name="create_encounter",
            log_message=f"Creating encounter for patient {patient_id}.",
            operation=partial(
                encounters.create_encounter,
                patient_id=patient_id,
                status=status,
                encounter_class=encounter_class,
                encounter_type=encounter_type,
                start_date_time=start_date_time,
                end_date_time=end_date_time,
                reason=reason,
            ),
        )


__all__ = ["register"]
