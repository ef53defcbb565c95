"""Observation (labs, vitals) listing and creation."""

from typing import Any

from ..client.aidbox_client import AidboxClient
from .common import (
    DEFAULT_COUNT,
    LOINC_SYSTEM,
    OBSERVATION_CATEGORY_SYSTEM,
    UCUM_SYSTEM,
    FhirJson,
    FlatResource,
    bundle_resources,
    compact_params,
    dig,
    first_present,
    format_observation_value,
    patient_reference,
    reference_display,
    summarize_code,
    utc_timestamp,
)

RESOURCE_TYPE = "Observation"


def flatten_observation(observation: FhirJson) -> FlatResource:
    return {
        "id": observation.get("id"),
        "status": observation.get("status"),
        "category": first_present(
            dig(observation, "category", 0, "coding", 0, "display"),
            dig(observation, "category", 0, "text"),
        ),
        "code": summarize_code(observation.get("code")),
        "value": format_observation_value(observation),
        "effectiveDateTime": observation.get("effectiveDateTime"),
        "issued": observation.get("issued"),
        "performer": reference_display(observation.get("performer")),
    }


def build_observation(  # noqa: PLR0913 (mirrors tool arguments)
    *,
    patient_id: str,
    code: str,
    display: str,
    value: float,
    unit: str | None = None,
    category: str | None = None,
    effective_date_time: str | None = None,
) -> FhirJson:
    """Build a final Observation with a LOINC code and a quantity value."""
    observation: FhirJson = {
        "resourceType": RESOURCE_TYPE,
        "status": "final",
        "subject": patient_reference(patient_id),
        "code": {
            "coding": [{"system": LOINC_SYSTEM, "code": code, "display": display}],
            "text": display,
        },
    }
    if category:
        observation["category"] = [
            {"coding": [{"system": OBSERVATION_CATEGORY_SYSTEM, "code": category, "display": category}]},
        ]
    quantity: dict[str, Any] = {"value": value}
    if unit:
        quantity.update({"unit": unit, "system": UCUM_SYSTEM, "code": unit})
    observation["valueQuantity"] = quantity
    observation["effectiveDateTime"] = effective_date_time or utc_timestamp()
    return observation


async def get_patient_observations(  # noqa: PLR0913 (mirrors FHIR search parameters)
    client: AidboxClient,
    patient_id: str,
    *,
    category: str | None = None,
    code: str | None = None,
    date: str | None = None,
    count: int | None = None,
) -> dict[str, Any]:
    """List a patient's observations, newest first."""
    params = {
        "patient": patient_id,
        "_sort": "-date",
        "_count": count or DEFAULT_COUNT,
        **compact_params(category=category, code=code, date=date),
    }
    bundle = await client.search(RESOURCE_TYPE, params)
    observations = [flatten_observation(resource) for resource in bundle_resources(bundle)]
    return {
        "observationsFound": len(observations),
        "patientId": patient_id,
        "observations": observations,
    }


async def create_observation(client: AidboxClient, **fields: Any) -> dict[str, Any]:
    """Create an observation; ``fields`` are the keyword arguments of ``build_observation``."""
    observation = build_observation(**fields)
    created = await client.create(RESOURCE_TYPE, observation)
    return {
        "message": "Observation created successfully",
        "observationId": created.get("id"),
        "observation": {
            "id": created.get("id"),
            "code": fields["display"],
            "value": fields["value"],
            "unit": fields.get("unit"),
            "effectiveDateTime": observation["effectiveDateTime"],
        },
    }


__all__ = ["RESOURCE_TYPE", "build_observation", "create_observation", "flatten_observation", "get_patient_observations"]
