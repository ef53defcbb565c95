"""Encounter (visit) listing and creation."""

from typing import Any

from ..client.aidbox_client import AidboxClient
from .common import (
    DEFAULT_COUNT,
    ENCOUNTER_CLASS_SYSTEM,
    FhirJson,
    FlatResource,
    bundle_resources,
    compact_params,
    dig,
    first_present,
    patient_reference,
)

RESOURCE_TYPE = "Encounter"


def flatten_encounter(encounter: FhirJson) -> FlatResource:
    participants = [
        {
            "type": dig(participant, "type", 0, "text"),
            "individual": dig(participant, "individual", "display"),
        }
        for participant in encounter.get("participant") or []
    ]
    return {
        "id": encounter.get("id"),
        "status": encounter.get("status"),
        "class": first_present(dig(encounter, "class", "display"), dig(encounter, "class", "code")),
        "type": first_present(
            dig(encounter, "type", 0, "text"),
            dig(encounter, "type", 0, "coding", 0, "display"),
        ),
        "period": {
            "start": dig(encounter, "period", "start"),
            "end": dig(encounter, "period", "end"),
        },
        "reasonCode": dig(encounter, "reasonCode", 0, "text"),
        "participant": participants or None,
    }


def build_encounter(  # noqa: PLR0913 (mirrors tool arguments)
    *,
    patient_id: str,
    status: str,
    encounter_class: str,
    encounter_type: str | None = None,
    start_date_time: str | None = None,
    end_date_time: str | None = None,
    reason: str | None = None,
) -> FhirJson:
    encounter: FhirJson = {
        "resourceType": RESOURCE_TYPE,
        "status": status,
        "class": {"system": ENCOUNTER_CLASS_SYSTEM, "code": encounter_class, "display": encounter_class},
        "subject": patient_reference(patient_id),
    }
    if encounter_type:
        encounter["type"] = [{"text": encounter_type}]
    period = compact_params(start=start_date_time, end=end_date_time)
    if period:
        encounter["period"] = period
    if reason:
        encounter["reasonCode"] = [{"text": reason}]
    return encounter


async def get_patient_encounters(
    client: AidboxClient,
    patient_id: str,
    *,
    status: str | None = None,
    encounter_type: str | None = None,
    count: int | None = None,
) -> dict[str, Any]:
    params = {
        "patient": patient_id,
        "_sort": "-date",
        "_count": count or DEFAULT_COUNT,
        **compact_params(status=status, type=encounter_type),
    }
    bundle = await client.search(RESOURCE_TYPE, params)
    encounters = [flatten_encounter(resource) for resource in bundle_resources(bundle)]
    return {
        "encountersFound": len(encounters),
        "patientId": patient_id,
        "encounters": encounters,
    }


async def create_encounter(client: AidboxClient, **fields: Any) -> dict[str, Any]:
    encounter = build_encounter(**fields)
    created = await client.create(RESOURCE_TYPE, encounter)
    return {
        "message": "Encounter created successfully",
        "encounterId": created.get("id"),
        "encounter": {
            "id": created.get("id"),
            "status": fields["status"],
            "class": fields["encounter_class"],
            "type": fields.get("encounter_type"),
            "period": encounter.get("period"),
        },
    }


__all__ = ["RESOURCE_TYPE", "build_encounter", "create_encounter", "flatten_encounter", "get_patient_encounters"]
