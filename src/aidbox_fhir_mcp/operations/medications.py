"""MedicationRequest listing and prescription creation."""

from typing import Any

from ..client.aidbox_client import AidboxClient
from .common import (
    DEFAULT_COUNT,
    FhirJson,
    FlatResource,
    bundle_resources,
    compact_params,
    dig,
    first_present,
    patient_reference,
    utc_timestamp,
)

RESOURCE_TYPE = "MedicationRequest"


def flatten_medication_request(request: FhirJson) -> FlatResource:
    dosage = [
        {
            "text": dose.get("text"),
            "route": dig(dose, "route", "text"),
            "timing": dig(dose, "timing", "repeat"),
        }
        for dose in request.get("dosageInstruction") or []
    ]
    return {
        "id": request.get("id"),
        "status": request.get("status"),
        "medication": first_present(
            dig(request, "medicationCodeableConcept", "text"),
            dig(request, "medicationCodeableConcept", "coding", 0, "display"),
            dig(request, "medicationReference", "display"),
        ),
        "dosage": dosage or None,
        "authoredOn": request.get("authoredOn"),
        "requester": dig(request, "requester", "display"),
    }


def build_medication_request(  # noqa: PLR0913 (mirrors tool arguments)
    *,
    patient_id: str,
    medication: str,
    dosage_text: str,
    quantity: float | None = None,
    refills: int | None = None,
    status: str | None = None,
) -> FhirJson:
    """Build an order-intent MedicationRequest authored now."""
    request: FhirJson = {
        "resourceType": RESOURCE_TYPE,
        "status": status or "active",
        "intent": "order",
        "subject": patient_reference(patient_id),
        "medicationCodeableConcept": {"text": medication},
        "dosageInstruction": [{"text": dosage_text}],
        "authoredOn": utc_timestamp(),
    }
    if quantity:
        dispense: dict[str, Any] = {"quantity": {"value": quantity}}
        if refills is not None:
            dispense["numberOfRepeatsAllowed"] = refills
        request["dispenseRequest"] = dispense
    return request


async def get_patient_medications(
    client: AidboxClient,
    patient_id: str,
    *,
    status: str | None = None,
    count: int | None = None,
) -> dict[str, Any]:
    params = {
        "patient": patient_id,
        "_sort": "-_lastUpdated",
        "_count": count or DEFAULT_COUNT,
        **compact_params(status=status),
    }
    bundle = await client.search(RESOURCE_TYPE, params)
    medications = [flatten_medication_request(resource) for resource in bundle_resources(bundle)]
    return {
        "medicationsFound": len(medications),
        "patientId": patient_id,
        "medications": medications,
    }


async def create_medication_request(client: AidboxClient, **fields: Any) -> dict[str, Any]:
    request = build_medication_request(**fields)
    created = await client.create(RESOURCE_TYPE, request)
    return {
        "message": "Medication request created successfully",
        "medicationRequestId": created.get("id"),
        "medicationRequest": {
            "id": created.get("id"),
            "medication": fields["medication"],
            "dosage": fields["dosage_text"],
            "status": request["status"],
        },
    }


__all__ = [
    "RESOURCE_TYPE",
    "build_medication_request",
    "create_medication_request",
    "flatten_medication_request",
    "get_patient_medications",
]
