"""
Enums Module
============

Enumeration types for the GrowCare scheduler.
Enums ensure type safety and consistency across the codebase.
"""

from growcare.enums.common import (
    BatchType,
    CancelOutcome,
    ConfidenceLevel,
    EscalationLevel,
    Priority,
)
from growcare.enums.growth import (
    GrowthStage,
    StrainType,
    TaskStatus,
    TaskType,
)

__all__ = [
    "BatchType",
    "CancelOutcome",
    "ConfidenceLevel",
    "EscalationLevel",
    "GrowthStage",
    "Priority",
    "StrainType",
    "TaskStatus",
    "TaskType",
]
