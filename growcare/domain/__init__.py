"""
Domain Module
=============

Entities, static scheduling tables and exceptions for the care engine.
"""

from growcare.domain.activity_profile import ActivityProfile
from growcare.domain.escalation import EscalationState, EscalationSweepReport
from growcare.domain.flowering import FloweringPrediction
from growcare.domain.growth_stages import GROWTH_STAGE_TABLE, GrowthStageConfig, get_stage_config
from growcare.domain.notifications import (
    BatchProcessingResult,
    BatchProcessingStats,
    NotificationBatch,
    NotificationBatchRequest,
    NotificationContent,
)
from growcare.domain.plant import PlantRecord
from growcare.domain.plant_task import EnvironmentalConditions, PlantTask, TaskMutation
from growcare.domain.strain_profiles import (
    STRAIN_SCHEDULING_TABLE,
    StrainCharacteristics,
    StrainSchedulingConfig,
    get_scheduling_config,
)

__all__ = [
    "ActivityProfile",
    "BatchProcessingResult",
    "BatchProcessingStats",
    "EnvironmentalConditions",
    "EscalationState",
    "EscalationSweepReport",
    "FloweringPrediction",
    "GROWTH_STAGE_TABLE",
    "GrowthStageConfig",
    "NotificationBatch",
    "NotificationBatchRequest",
    "NotificationContent",
    "PlantRecord",
    "PlantTask",
    "STRAIN_SCHEDULING_TABLE",
    "StrainCharacteristics",
    "StrainSchedulingConfig",
    "TaskMutation",
    "get_scheduling_config",
    "get_stage_config",
]
