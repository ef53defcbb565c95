"""MCP tools: get_patient_conditions, create_condition."""

# pyright: reportUnusedFunction=false

from functools import partial
from types import SimpleNamespace
from typing import Annotated, Any

from fastmcp import Context, FastMCP
from pydantic import Field

from ..models.inputs import ClinicalStatus
from ..operations import conditions
from .common import READ_ONLY, WRITES, run_fhir_tool


def register(app: FastMCP, *, deps: SimpleNamespace) -> None:
    """Register the condition tools on the provided app instance."""

    @app.tool(
        name="get_patient_conditions",
        description="Get diagnoses and medical conditions for a patient.",
        annotations={"title": "Get patient conditions", **READ_ONLY},
    )
    async def get_patient_conditions(
        ctx: Context,
        patient_id: Annotated[str, Field(description="Patient ID", min_length=1)],
        clinical_status: ClinicalStatus | None = None,
        count: Annotated[int, Field(description="Maximum number of results", ge=1)] = 20,
    ) -> dict[str, Any]:
        return await run_fhir_tool(
            ctx,
            deps,
            tool_name="get_patient_conditions",
            log_message=f"Listing conditions for patient {patient_id}.",
            operation=partial(
                conditions.get_patient_conditions,
                patient_id=patient_id,
                clinical_status=clinical_status,
                count=count,
            ),
        )

    @app.tool(
        name="create_condition",
        description="Create a new condition/diagnosis.",
        annotations={"title": "Create condition", **WRITES},
    )
    async def create_condition(
        ctx: Context,
        patient_id: Annotated[str, Field(description="Patient ID", min_length=1)],
        display: Annotated[str, Field(description="Condition name/display")],
        code: Annotated[str | None, Field(description="ICD-10 code")] = None,
        clinical_status: ClinicalStatus | None = None,
        onset_date_time: Annotated[str | None, Field(description="When the condition started (ISO datetime)")] = None,
    ) -> dict[str, Any]:
        return await run_fhir_tool(
            ctx,
            deps,
            tool_name="create_condition",
            log_message=f"Creating condition for patient {patient_id}.",
            operation=partial(
                conditions.create_condition,
                patient_id=patient_id,
                display=display,
                code=code,
                clinical_status=clinical_status,
                onset_date_time=onset_date_time,
            ),
        )


__all__ = ["register"]
