"""
Schemas
=======

Pydantic models for validating strain records and API request bodies.
"""

from growcare.schemas.care import (
    ActivityProfileRequest,
    ConditionsRequest,
    GenerateTasksRequest,
    NotificationRequest,
    PlantPayload,
    PlantRequest,
    RecurringTasksRequest,
    StageTransitionRequest,
)
from growcare.schemas.strains import CatalogStrainRecord, UserStrainRecord, parse_strain_record

__all__ = [
    "ActivityProfileRequest",
    "CatalogStrainRecord",
    "ConditionsRequest",
    "GenerateTasksRequest",
    "NotificationRequest",
    "PlantPayload",
    "PlantRequest",
    "RecurringTasksRequest",
    "StageTransitionRequest",
    "UserStrainRecord",
    "parse_strain_record",
]
