"""Patient search, read, create, and update operations."""

import logging
from typing import Any

from ..client.aidbox_client import AidboxClient
from ..models.inputs import AddressInput
from .common import (
    DEFAULT_COUNT,
    MRN_SYSTEM,
    FhirJson,
    FlatResource,
    bundle_resources,
    compact_params,
    dig,
    extract_identifiers,
    extract_telecom,
    format_address,
    format_patient_name,
    reference_display,
)

logger = logging.getLogger("aidbox_fhir_mcp.operations.patients")

RESOURCE_TYPE = "Patient"


def flatten_patient(patient: FhirJson) -> FlatResource:
    """Return the summary shape used in search results."""
    return {
        "id": patient.get("id"),
        "name": format_patient_name(patient.get("name")),
        "birthDate": patient.get("birthDate"),
        "gender": patient.get("gender"),
        "phone": extract_telecom(patient.get("telecom"), "phone"),
        "email": extract_telecom(patient.get("telecom"), "email"),
        "address": format_address(patient.get("address")),
        "identifier": extract_identifiers(patient.get("identifier")),
    }


def flatten_patient_details(patient: FhirJson) -> FlatResource:
    """Return the detailed shape used by ``get_patient_details``."""
    details = flatten_patient(patient)
    languages = [
        dig(comm, "language", "text") or dig(comm, "language", "coding", 0, "display")
        for comm in patient.get("communication") or []
    ]
    details.update(
        {
            "maritalStatus": dig(patient, "maritalStatus", "text"),
            "active": patient.get("active") is not False,
            "generalPractitioner": reference_display(patient.get("generalPractitioner")),
            "communication": languages or None,
        }
    )
    return details


def build_patient(  # noqa: PLR0913 (mirrors tool arguments)
    *,
    given: str,
    family: str,
    birth_date: str | None = None,
    gender: str | None = None,
    phone: str | None = None,
    email: str | None = None,
    address: AddressInput | None = None,
    identifier: str | None = None,
) -> FhirJson:
    """Build a new active Patient resource from tool arguments."""
    patient: FhirJson = {
        "resourceType": RESOURCE_TYPE,
        "active": True,
        "name": [{"given": [given], "family": family}],
    }
    if birth_date:
        patient["birthDate"] = birth_date
    if gender:
        patient["gender"] = gender
    telecom = []
    if phone:
        telecom.append({"system": "phone", "value": phone, "use": "home"})
    if email:
        telecom.append({"system": "email", "value": email})
    if telecom:
        patient["telecom"] = telecom
    if address is not None:
        patient["address"] = [address.to_fhir()]
    if identifier:
        patient["identifier"] = [{"system": MRN_SYSTEM, "value": identifier}]
    return patient


def _set_telecom(patient: FhirJson, system: str, value: str) -> None:
    telecoms: list[dict[str, Any]] = patient.setdefault("telecom", [])
    for telecom in telecoms:
        if telecom.get("system") == system:
            telecom["value"] = value
            return
    telecoms.append({"system": system, "value": value})


def apply_patient_changes(  # noqa: PLR0913 (mirrors tool arguments)
    patient: FhirJson,
    *,
    given: str | None = None,
    family: str | None = None,
    birth_date: str | None = None,
    gender: str | None = None,
    phone: str | None = None,
    email: str | None = None,
    active: bool | None = None,
) -> FhirJson:
    """Merge supplied fields into an existing Patient resource in place."""
    if given or family:
        names = patient.get("name") or [{}]
        patient["name"] = names
        if given:
            names[0]["given"] = [given]
        if family:
            names[0]["family"] = family
    if birth_date is not None:
        patient["birthDate"] = birth_date
    if gender is not None:
        patient["gender"] = gender
    if active is not None:
        patient["active"] = active
    if phone:
        _set_telecom(patient, "phone", phone)
    if email:
        _set_telecom(patient, "email", email)
    return patient


async def search_patients(  # noqa: PLR0913 (mirrors FHIR search parameters)
    client: AidboxClient,
    *,
    name: str | None = None,
    given: str | None = None,
    family: str | None = None,
    birthdate: str | None = None,
    gender: str | None = None,
    identifier: str | None = None,
    phone: str | None = None,
    email: str | None = None,
    count: int | None = None,
) -> dict[str, Any]:
    """Search patients and return flattened matches."""
    params = compact_params(
        name=name,
        given=given,
        family=family,
        birthdate=birthdate,
        gender=gender,
        identifier=identifier,
        phone=phone,
        email=email,
    )
    params["_count"] = count or DEFAULT_COUNT
    bundle = await client.search(RESOURCE_TYPE, params)
    patients = [flatten_patient(resource) for resource in bundle_resources(bundle)]
    logger.debug("Patient search returned %d entries.", len(patients))
    return {
        "patientsFound": len(patients),
        "total": bundle.get("total") or len(patients),
        "patients": patients,
    }


async def get_patient(client: AidboxClient, patient_id: str) -> dict[str, Any]:
    patient = await client.get(RESOURCE_TYPE, patient_id)
    return {"patient": flatten_patient_details(patient)}


async def create_patient(client: AidboxClient, **fields: Any) -> dict[str, Any]:
    """Create a patient; ``fields`` are the keyword arguments of ``build_patient``."""
    created = await client.create(RESOURCE_TYPE, build_patient(**fields))
    return {
        "message": "Patient created successfully",
        "patientId": created.get("id"),
        "patient": {
            "id": created.get("id"),
            "name": format_patient_name(created.get("name")),
            "birthDate": created.get("birthDate"),
            "gender": created.get("gender"),
        },
    }


async def update_patient(client: AidboxClient, patient_id: str, **changes: Any) -> dict[str, Any]:
    """Read the patient, merge ``changes`` and write it back with PUT."""
    existing = await client.get(RESOURCE_TYPE, patient_id)
    updated = await client.update(RESOURCE_TYPE, patient_id, apply_patient_changes(existing, **changes))
    return {
        "message": "Patient updated successfully",
        "patient": {
            "id": updated.get("id"),
            "name": format_patient_name(updated.get("name")),
            "birthDate": updated.get("birthDate"),
            "gender": updated.get("gender"),
            "active": updated.get("active"),
        },
    }


__all__ = [
    "RESOURCE_TYPE",
    "apply_patient_changes",
    "build_patient",
    "create_patient",
    "flatten_patient",
    "flatten_patient_details",
    "get_patient",
    "search_patients",
    "update_patient",
]
