"""Pydantic models for tool arguments."""

from .inputs import (
    AddressInput,
    ClinicalStatus,
    EncounterClass,
    EncounterStatus,
    Gender,
    MedicationRequestStatus,
    MedicationStatusFilter,
    ObservationCategory,
)

__all__ = [
    "AddressInput",
    "ClinicalStatus",
    "EncounterClass",
    "EncounterStatus",
    "Gender",
    "MedicationRequestStatus",
    "MedicationStatusFilter",
    "ObservationCategory",
]
