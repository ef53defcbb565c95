"""Operational helpers for MCP tools.

Contains the business logic that maps tool arguments to FHIR requests and
flattens FHIR responses:
- ``common``: Shared flattening helpers and code systems
- ``patients``: Patient search, read, create, update
- ``observations``: Observation listing and creation
- ``medications``: MedicationRequest listing and creation
- ``conditions``: Condition listing and creation
- ``encounters``: Encounter listing and creation
"""
