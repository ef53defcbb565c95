"""MCP tools: search_patients, get_patient_details, create_patient, update_patient."""

# pyright: reportUnusedFunction=false

from functools import partial
from types import SimpleNamespace
from typing import Annotated, Any

from fastmcp import Context, FastMCP
from pydantic import Field

from ..models.inputs import AddressInput, Gender
from ..operations import patients
from .common import READ_ONLY, WRITES, run_fhir_tool

PatientId = Annotated[str, Field(description="Aidbox Patient ID", min_length=1)]


def register(app: FastMCP, *, deps: SimpleNamespace) -> None:  # noqa: C901 (one nested function per tool)
    """Register the patient tools on the provided app instance.

    Args:
        app: The FastMCP application instance to add the tools to.
        deps: Dependencies namespace exposing ``get_client``.

    """

    @app.tool(
        name="search_patients",
        description="Search for patients in Aidbox by name, birthdate, identifier, or other criteria.",
        annotations={"title": "Search patients", **READ_ONLY},
    )
    async def search_patients(  # noqa: PLR0913 (FHIR search parameters)
        ctx: Context,
        name: Annotated[str | None, Field(description="Patient name (first and/or last name)")] = None,
        given: Annotated[str | None, Field(description="Patient first/given name")] = None,
        family: Annotated[str | None, Field(description="Patient last/family name")] = None,
        birthdate: Annotated[str | None, Field(description="Patient birth date (YYYY-MM-DD)")] = None,
        gender: Gender | None = None,
        identifier: Annotated[str | None, Field(description="Patient identifier (MRN, SSN, etc.)")] = None,
        phone: Annotated[str | None, Field(description="Patient phone number")] = None,
        email: Annotated[str | None, Field(description="Patient email address")] = None,
        count: Annotated[int, Field(description="Maximum number of results", ge=1)] = 20,
    ) -> dict[str, Any]:
        return await run_fhir_tool(
            ctx,
            deps,
            tool_name="search_patients",
            log_message="Searching Aidbox patients.",
            operation=partial(
                patients.search_patients,
                name=name,
                given=given,
                family=family,
                birthdate=birthdate,
                gender=gender,
                identifier=identifier,
                phone=phone,
                email=email,
                count=count,
            ),
        )

    @app.tool(
        name="get_patient_details",
        description="Get detailed information for a specific patient by ID.",
        annotations={"title": "Get patient details", **READ_ONLY},
    )
    async def get_patient_details(ctx: Context, patient_id: PatientId) -> dict[str, Any]:
        return await run_fhir_tool(
            ctx,
            deps,
            tool_name="get_patient_details",
            log_message=f"Reading Aidbox patient {patient_id}.",
            operation=partial(patients.get_patient, patient_id=patient_id),
        )

    @app.tool(
        name="create_patient",
        description="Create a new patient in Aidbox.",
        annotations={"title": "Create patient", **WRITES},
    )
    async def create_patient(  # noqa: PLR0913 (Patient fields)
        ctx: Context,
        given: Annotated[str, Field(description="Patient first/given name")],
        family: Annotated[str, Field(description="Patient last/family name")],
        birth_date: Annotated[str | None, Field(description="Birth date (YYYY-MM-DD)")] = None,
        gender: Gender | None = None,
        phone: Annotated[str | None, Field(description="Phone number")] = None,
        email: Annotated[str | None, Field(description="Email address")] = None,
        address: AddressInput | None = None,
        identifier: Annotated[str | None, Field(description="Patient identifier (MRN, etc.)")] = None,
    ) -> dict[str, Any]:
        return await run_fhir_tool(
            ctx,
            deps,
            tool_name="create_patient",
            log_message="Creating Aidbox patient.",
            operation=partial(
                patients.create_patient,
                given=given,
                family=family,
                birth_date=birth_date,
                gender=gender,
                phone=phone,
                email=email,
                address=address,
                identifier=identifier,
            ),
        )

    @app.tool(
        name="update_patient",
        description="Update existing patient information. Only the supplied fields are changed.",
        annotations={"title": "Update patient", **WRITES},
    )
    async def update_patient(  # noqa: PLR0913 (Patient fields)
        ctx: Context,
        patient_id: PatientId,
        given: str | None = None,
        family: str | None = None,
        birth_date: str | None = None,
        gender: Gender | None = None,
        phone: str | None = None,
        email: str | None = None,
        active: bool | None = None,
    ) -> dict[str, Any]:
        return await run_fhir_tool(
            ctx,
            deps,
            tool_name="update_patient",
            log_message=f"Updating Aidbox patient {patient_id}.",
            operation=partial(
                patients.update_patient,
                patient_id=patient_id,
                given=given,
                family=family,
                birth_date=birth_date,
                gender=gender,
                phone=phone,
                email=email,
                active=active,
            ),
        )


__all__ = ["register"]
