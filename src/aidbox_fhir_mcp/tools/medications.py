"""MCP tools: get_patient_medications, create_medication_request."""

# pyright: reportUnusedFunction=false

from functools import partial
from types import SimpleNamespace
from typing import Annotated, Any

from fastmcp import Context, FastMCP
from pydantic import Field

from ..models.inputs import MedicationRequestStatus, MedicationStatusFilter
from ..operations import medications
from .common import READ_ONLY, WRITES, run_fhir_tool


def register(app: FastMCP, *, deps: SimpleNamespace) -> None:
    """Register the medication tools on the provided app instance."""

    @app.tool(
        name="get_patient_medications",
        description="Get current and past medication requests for a patient.",
        annotations={"title": "Get patient medications", **READ_ONLY},
    )
    async def get_patient_medications(
        ctx: Context,
        patient_id: Annotated[str, Field(description="Patient ID", min_length=1)],
        status: MedicationStatusFilter | None = None,
        count: Annotated[int, Field(description="Maximum number of results", ge=1)] = 20,
    ) -> dict[str, Any]:
        return await run_fhir_tool(
            ctx,
            deps,
            tool_name="get_patient_medications",
            log_message=f"Listing medications for patient {patient_id}.",
            operation=partial(
                medications.get_patient_medications,
                patient_id=patient_id,
                status=status,
                count=count,
            ),
        )

    @app.tool(
        name="create_medication_request",
        description="Create a new medication request (prescription).",
        annotations={"title": "Create medication request", **WRITES},
    )
    async def create_medication_request(  # noqa: PLR0913 (MedicationRequest fields)
        ctx: Context,
        patient_id: Annotated[str, Field(description="Patient ID", min_length=1)],
        medication: Annotated[str, Field(description="Medication name")],
        dosage_text: Annotated[
            str, Field(description='Dosage instructions (e.g., "Take 1 tablet by mouth daily")')
        ],
        quantity: Annotated[float | None, Field(description="Quantity to dispense")] = None,
        refills: Annotated[int | None, Field(description="Number of refills", ge=0)] = None,
        status: MedicationRequestStatus | None = None,
    ) -> dict[str, Any]:
        return await run_fhir_tool(
            ctx,
            deps,
            tool_name="create_medication_request",
            log_message=f"Creating medication request for patient {patient_id}.",
            operation=partial(
                medications.create_medication_request,
                patient_id=patient_id,
                medication=medication,
                dosage_text=dosage_text,
                quantity=quantity,
                refills=refills,
                status=status,
            ),
        )


__all__ = ["register"]
