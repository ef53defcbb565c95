"""Shared helpers for Aidbox operations modules.

Flattening helpers turn FHIR JSON into the compact shapes returned by tools.
All of them accept missing or partial data and never raise on absent fields.
"""

from datetime import UTC, datetime
from typing import Any, TypeAlias

FlatResource: TypeAlias = dict[str, Any]
FhirJson: TypeAlias = dict[str, Any]

DEFAULT_COUNT = 20

LOINC_SYSTEM = "http://loinc.org"
UCUM_SYSTEM = "http://unitsofmeasure.org"
ICD10_SYSTEM = "http://hl7.org/fhir/sid/icd-10"
OBSERVATION_CATEGORY_SYSTEM = "http://terminology.hl7.org/CodeSystem/observation-category"
CONDITION_CLINICAL_SYSTEM = "http://terminology.hl7.org/CodeSystem/condition-clinical"
ENCOUNTER_CLASS_SYSTEM = "http://terminology.hl7.org/CodeSystem/v3-ActCode"
MRN_SYSTEM = "http://hospital.local/mrn"


def utc_timestamp() -> str:
    """Return the current time as an ISO 8601 string."""
    return datetime.now(UTC).isoformat()


def first(items: Any) -> Any:
    """Return the first element of a list, or None."""
    if isinstance(items, list) and items:
        return items[0]
    return None


def dig(data: Any, *path: str | int) -> Any:
    """Follow ``path`` through nested dicts and lists, returning None on any gap."""
    current = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or len(current) <= key:
                return None
            current = current[key]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(key)
        if current is None:
            return None
    return current


def first_present(*values: Any) -> Any:
    """Return the first truthy value, or None."""
    for value in values:
        if value:
            return value
    return None


def bundle_resources(bundle: FhirJson) -> list[FhirJson]:
    """Return the resources of a search Bundle's entries."""
    entries = bundle.get("entry") or []
    return [entry["resource"] for entry in entries if isinstance(entry, dict) and isinstance(entry.get("resource"), dict)]


def patient_reference(patient_id: str) -> dict[str, str]:
    return {"reference": f"Patient/{patient_id}"}


def compact_params(**params: Any) -> dict[str, Any]:
    """Drop search parameters that were not supplied."""
    return {key: value for key, value in params.items() if value not in (None, "")}


def format_patient_name(names: Any) -> str:
    """Render the first HumanName as ``"given family"``."""
    name = first(names)
    if not isinstance(name, dict):
        return "Unknown"
    given = " ".join(name.get("given") or [])
    family = name.get("family") or ""
    return f"{given} {family}".strip()


def extract_telecom(telecoms: Any, system: str) -> str | None:
    """Return the first ContactPoint value for ``system`` (``phone``, ``email``)."""
    for telecom in telecoms or []:
        if isinstance(telecom, dict) and telecom.get("system") == system:
            return telecom.get("value")
    return None


def format_address(addresses: Any) -> FlatResource | None:
    address = first(addresses)
    if not isinstance(address, dict):
        return None
    line = address.get("line")
    return {
        "line": ", ".join(line) if line else None,
        "city": address.get("city"),
        "state": address.get("state"),
        "postalCode": address.get("postalCode"),
        "country": address.get("country"),
    }


def extract_identifiers(identifiers: Any) -> list[FlatResource]:
    return [
        {
            "system": identifier.get("system"),
            "value": identifier.get("value"),
            "type": dig(identifier, "type", "text"),
        }
        for identifier in identifiers or []
        if isinstance(identifier, dict)
    ]


def format_observation_value(observation: FhirJson) -> Any:
    """Flatten the ``value[x]`` (or components) of an Observation."""
    quantity = observation.get("valueQuantity")
    if quantity:
        return {"value": quantity.get("value"), "unit": quantity.get("unit")}
    if observation.get("valueString"):
        return observation["valueString"]
    if observation.get("valueBoolean") is not None:
        return observation["valueBoolean"]
    if observation.get("valueCodeableConcept"):
        return observation["valueCodeableConcept"].get("text")
    components = observation.get("component")
    if components:
        return [
            {
                "code": dig(component, "code", "text"),
                "value": dig(component, "valueQuantity", "value"),
                "unit": dig(component, "valueQuantity", "unit"),
            }
            for component in components
        ]
    return None


def summarize_code(codeable: Any) -> FlatResource:
    """Return the text and first coding of a CodeableConcept."""
    return {
        "text": dig(codeable, "text"),
        "coding": dig(codeable, "coding", 0),
    }


def reference_display(references: Any) -> list[str] | None:
    """Return display (or reference) strings for a list of References."""
    if not references:
        return None
    return [ref.get("display") or ref.get("reference") for ref in references if isinstance(ref, dict)]


__all__ = [
    "CONDITION_CLINICAL_SYSTEM",
    "DEFAULT_COUNT",
    "ENCOUNTER_CLASS_SYSTEM",
    "ICD10_SYSTEM",
    "LOINC_SYSTEM",
    "MRN_SYSTEM",
    "OBSERVATION_CATEGORY_SYSTEM",
    "UCUM_SYSTEM",
    "FhirJson",
    "FlatResource",
    "bundle_resources",
    "compact_params",
    "dig",
    "extract_identifiers",
    "extract_telecom",
    "first",
    "first_present",
    "format_address",
    "format_observation_value",
    "format_patient_name",
    "patient_reference",
    "reference_display",
    "summarize_code",
    "utc_timestamp",
]
