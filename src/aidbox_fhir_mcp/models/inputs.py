"""Pydantic models and enumerations for tool arguments.

These types are used directly in tool signatures so FastMCP publishes them as
JSON Schema enums and objects.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Gender = Literal["male", "female", "other", "unknown"]
ObservationCategory = Literal["vital-signs", "laboratory", "exam", "survey", "imaging"]
MedicationStatusFilter = Literal["active", "completed", "stopped", "on-hold"]
MedicationRequestStatus = Literal["active", "on-hold", "cancelled", "completed"]
ClinicalStatus = Literal["active", "resolved", "inactive"]
EncounterStatus = Literal["planned", "arrived", "in-progress", "finished"]
EncounterClass = Literal["ambulatory", "emergency", "inpatient", "virtual"]


class AddressInput(BaseModel):
    """Postal address supplied when creating a patient."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    line: str | None = None
    """Street line; stored as a single-element FHIR ``line`` array."""

    city: str | None = None
    state: str | None = None

    postal_code: str | None = Field(default=None, alias="postalCode")
    country: str | None = None

    def to_fhir(self) -> dict[str, object]:
        """Return the FHIR Address representation, omitting empty parts."""
        address: dict[str, object] = {
            "line": [self.line] if self.line else None,
            "city": self.city,
            "state": self.state,
            "postalCode": self.postal_code,
            "country": self.country,
        }
        return {key: value for key, value in address.items() if value is not None}


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
