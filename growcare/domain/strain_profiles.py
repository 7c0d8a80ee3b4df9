"""
Strain Profiles
===============

Strain characteristics record, the per-strain-type scheduling table and the
strain-specific task adjustment rules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from growcare.domain.task_catalog import TASK_TYPE_PROFILES
from growcare.enums import ConfidenceLevel, GrowthStage, StrainType, TaskType

DEFAULT_FLOWERING_WEEKS = 8


@dataclass(frozen=True)
class StrainCharacteristics:
    """Normalized view of a strain record.

    `confidence` is LOW when the record was synthesized because the strain
    could not be resolved.
    """

    strain_id: str | None
    name: str
    strain_type: StrainType = StrainType.UNKNOWN
    flowering_weeks: int | None = DEFAULT_FLOWERING_WEEKS
    grow_difficulty: str | None = None
    thc_percentage: float | None = None
    cbd_percentage: float | None = None
    average_yield: str | None = None
    height_indoor: str | None = None
    height_outdoor: str | None = None
    flowering_weeks_reported: bool = False
    confidence: ConfidenceLevel = ConfidenceLevel.HIGH

    @classmethod
    def unknown(cls, strain_id: str | None = None) -> "StrainCharacteristics":
        return cls(
            strain_id=strain_id,
            name="Unknown strain",
            strain_type=StrainType.UNKNOWN,
            flowering_weeks=DEFAULT_FLOWERING_WEEKS,
            confidence=ConfidenceLevel.LOW,
        )

    @property
    def is_resolved(self) -> bool:
        return self.confidence != ConfidenceLevel.LOW

    def to_dict(self) -> dict[str, Any]:
        return {
            "strain_id": self.strain_id,
            "name": self.name,
            "type": self.strain_type.value,
            "flowering_weeks": self.flowering_weeks,
            "grow_difficulty": self.grow_difficulty,
            "thc_percentage": self.thc_percentage,
            "cbd_percentage": self.cbd_percentage,
            "average_yield": self.average_yield,
            "height_indoor": self.height_indoor,
            "height_outdoor": self.height_outdoor,
            "confidence": self.confidence.value,
        }


@dataclass(frozen=True)
class StrainSchedulingConfig:
    """Care frequencies and per-stage modifiers for one strain type."""

    strain_type: StrainType
    watering_frequency_days: int
    feeding_frequency_days: int
    inspection_frequency_days: int
    growth_stage_modifiers: dict[GrowthStage, float] = field(default_factory=dict)

    def modifier_for(self, stage: GrowthStage) -> float:
        return self.growth_stage_modifiers[stage]

    def base_frequency_days(self, task_type: TaskType) -> int:
        """Base interval in days for a task type before the stage modifier."""
        if task_type == TaskType.WATERING:
            return self.watering_frequency_days
        if task_type == TaskType.FEEDING:
            return self.feeding_frequency_days
        if task_type == TaskType.INSPECTION:
            return self.inspection_frequency_days
        return TASK_TYPE_PROFILES[task_type].base_frequency_days

    def to_dict(self) -> dict[str, Any]:
        return {
            "strain_type": self.strain_type.value,
            "watering_frequency_days": self.watering_frequency_days,
            "feeding_frequency_days": self.feeding_frequency_days,
            "inspection_frequency_days": self.inspection_frequency_days,
            "growth_stage_modifiers": {s.value: m for s, m in self.growth_stage_modifiers.items()},
        }


def _modifiers(*values: float) -> dict[GrowthStage, float]:
    return dict(zip(GrowthStage, values))


STRAIN_SCHEDULING_TABLE: dict[StrainType, StrainSchedulingConfig] = {
    StrainType.INDICA: StrainSchedulingConfig(
        StrainType.INDICA, 3, 7, 2, _modifiers(0.5, 0.7, 1.0, 1.2, 1.3, 0.8, 0.1, 0.1)
    ),
    StrainType.SATIVA: StrainSchedulingConfig(
        StrainType.SATIVA, 2, 5, 1, _modifiers(0.5, 0.8, 1.2, 1.3, 1.5, 1.0, 0.1, 0.1)
    ),
    StrainType.HYBRID: StrainSchedulingConfig(
        StrainType.HYBRID, 3, 6, 2, _modifiers(0.5, 0.7, 1.1, 1.2, 1.4, 0.9, 0.1, 0.1)
    ),
    StrainType.CBD: StrainSchedulingConfig(
        StrainType.CBD, 4, 8, 3, _modifiers(0.5, 0.6, 0.9, 1.0, 1.2, 0.7, 0.1, 0.1)
    ),
    StrainType.UNKNOWN: StrainSchedulingConfig(
        StrainType.UNKNOWN, 3, 7, 2, _modifiers(0.5, 0.7, 1.0, 1.1, 1.2, 0.8, 0.1, 0.1)
    ),
}


def get_scheduling_config(strain_type: StrainType | str | None) -> StrainSchedulingConfig:
    return STRAIN_SCHEDULING_TABLE[StrainType.parse(strain_type)]


# ── Strain-specific adjustments ──────────────────────────────────────


@dataclass(frozen=True)
class StrainTaskAdjustment:
    """Frequency multiplier and priority bump applied to one task type."""

    task_type: TaskType
    frequency_multiplier: float = 1.0
    priority_boost: int = 0

    def combine(self, other: "StrainTaskAdjustment") -> "StrainTaskAdjustment":
        return StrainTaskAdjustment(
            task_type=self.task_type,
            frequency_multiplier=self.frequency_multiplier * other.frequency_multiplier,
            priority_boost=self.priority_boost + other.priority_boost,
        )


STRAIN_TYPE_ADJUSTMENTS: dict[StrainType, tuple[StrainTaskAdjustment, ...]] = {
    StrainType.SATIVA: (
        StrainTaskAdjustment(TaskType.WATERING, frequency_multiplier=1.2),
        StrainTaskAdjustment(TaskType.TRAINING, priority_boost=1),
        StrainTaskAdjustment(TaskType.PRUNING, frequency_multiplier=1.3),
    ),
    StrainType.INDICA: (
        StrainTaskAdjustment(TaskType.FEEDING, frequency_multiplier=0.9),
        StrainTaskAdjustment(TaskType.INSPECTION, frequency_multiplier=0.8),
    ),
    StrainType.HYBRID: (StrainTaskAdjustment(TaskType.INSPECTION, frequency_multiplier=1.1),),
    StrainType.CBD: (),
    StrainType.UNKNOWN: (),
}

HARD_DIFFICULTY_ADJUSTMENT = StrainTaskAdjustment(TaskType.INSPECTION, frequency_multiplier=1.5, priority_boost=1)


def strain_adjustments(characteristics: StrainCharacteristics) -> dict[TaskType, StrainTaskAdjustment]:
    """Merged adjustment per task type for a resolved strain."""
    merged: dict[TaskType, StrainTaskAdjustment] = {}
    rules = list(STRAIN_TYPE_ADJUSTMENTS[characteristics.strain_type])
    if (characteristics.grow_difficulty or "").strip().lower() == "hard":
        rules.append(HARD_DIFFICULTY_ADJUSTMENT)
    for rule in rules:
        existing = merged.get(rule.task_type)
        merged[rule.task_type] = existing.combine(rule) if existing else rule
    return merged


def strain_table_problems() -> list[str]:
    """Describe every gap in the strain tables."""
    problems: list[str] = []
    for strain_type in StrainType:
        config = STRAIN_SCHEDULING_TABLE.get(strain_type)
        if config is None:
            problems.append(f"missing strain scheduling config: {strain_type}")
            continue
        for stage in GrowthStage:
            modifier = config.growth_stage_modifiers.get(stage)
            if modifier is None:
                problems.append(f"{strain_type}: missing modifier for {stage}")
            elif modifier <= 0:
                problems.append(f"{strain_type}: modifier for {stage} must be positive")
        for task_type in TaskType:
            frequency = config.base_frequency_days(task_type)
            if not frequency or frequency <= 0:
                problems.append(f"{strain_type}: no base frequency for {task_type}")
        if strain_type not in STRAIN_TYPE_ADJUSTMENTS:
            problems.append(f"missing strain adjustments entry: {strain_type}")
    return problems
