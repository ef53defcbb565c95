"""Condition (diagnosis) listing and creation."""

from typing import Any

from ..client.aidbox_client import AidboxClient
from .common import (
    CONDITION_CLINICAL_SYSTEM,
    DEFAULT_COUNT,
    ICD10_SYSTEM,
    FhirJson,
    FlatResource,
    bundle_resources,
    compact_params,
    dig,
    patient_reference,
    summarize_code,
    utc_timestamp,
)

RESOURCE_TYPE = "Condition"
DEFAULT_CLINICAL_STATUS = "active"


def flatten_condition(condition: FhirJson) -> FlatResource:
    return {
        "id": condition.get("id"),
        "clinicalStatus": dig(condition, "clinicalStatus", "coding", 0, "code"),
        "verificationStatus": dig(condition, "verificationStatus", "coding", 0, "code"),
        "code": summarize_code(condition.get("code")),
        "onsetDateTime": condition.get("onsetDateTime"),
        "recordedDate": condition.get("recordedDate"),
        "recorder": dig(condition, "recorder", "display"),
    }


def build_condition(
    *,
    patient_id: str,
    display: str,
    code: str | None = None,
    clinical_status: str | None = None,
    onset_date_time: str | None = None,
) -> FhirJson:
    """Build a Condition; ``code`` is recorded as an ICD-10 coding when given."""
    condition: FhirJson = {
        "resourceType": RESOURCE_TYPE,
        "subject": patient_reference(patient_id),
        "code": {"text": display},
        "clinicalStatus": {
            "coding": [{"system": CONDITION_CLINICAL_SYSTEM, "code": clinical_status or DEFAULT_CLINICAL_STATUS}],
        },
        "recordedDate": utc_timestamp(),
    }
    if code:
        condition["code"]["coding"] = [{"system": ICD10_SYSTEM, "code": code, "display": display}]
    if onset_date_time:
        condition["onsetDateTime"] = onset_date_time
    return condition


async def get_patient_conditions(
    client: AidboxClient,
    patient_id: str,
    *,
    clinical_status: str | None = None,
    count: int | None = None,
) -> dict[str, Any]:
    params = {
        "patient": patient_id,
        "_sort": "-onset-date",
        "_count": count or DEFAULT_COUNT,
        **compact_params(**{"clinical-status": clinical_status}),
    }
    bundle = await client.search(RESOURCE_TYPE, params)
    conditions = [flatten_condition(resource) for resource in bundle_resources(bundle)]
    return {
        "conditionsFound": len(conditions),
        "patientId": patient_id,
        "conditions": conditions,
    }


async def create_condition(client: AidboxClient, **fields: Any) -> dict[str, Any]:
    condition = build_condition(**fields)
    created = await client.create(RESOURCE_TYPE, condition)
    return {
        "message": "Condition created successfully",
        "conditionId": created.get("id"),
        "condition": {
            "id": created.get("id"),
            "code": fields["display"],
            "clinicalStatus": fields.get("clinical_status") or DEFAULT_CLINICAL_STATUS,
            "recordedDate": condition["recordedDate"],
        },
    }


__all__ = ["RESOURCE_TYPE", "build_condition", "create_condition", "flatten_condition", "get_patient_conditions"]
