"""
Growth Stage Table
==================

Static configuration for every growth stage: how long it lasts, which stage
follows it, the priority of each task type while the plant is in it and the
task types recommended for it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from growcare.enums import GrowthStage, Priority, TaskType


@dataclass(frozen=True)
class GrowthStageConfig:
    """Per-stage scheduling defaults."""

    stage: GrowthStage
    duration_days: int
    next_stage: GrowthStage | None
    task_priorities: dict[TaskType, Priority] = field(default_factory=dict)
    recommended_tasks: tuple[TaskType, ...] = ()

    @property
    def is_terminal(self) -> bool:
        return self.next_stage is None

    def priority_for(self, task_type: TaskType) -> Priority:
        return self.task_priorities[task_type]

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage.value,
            "duration_days": self.duration_days,
            "next_stage": self.next_stage.value if self.next_stage else None,
            "task_priorities": {t.value: p.value for t, p in self.task_priorities.items()},
            "recommended_tasks": [t.value for t in self.recommended_tasks],
        }


def _priorities(**overrides: Priority) -> dict[TaskType, Priority]:
    """Full task-type map: LOW everywhere except the named overrides."""
    table = {task_type: Priority.LOW for task_type in TaskType}
    for name, priority in overrides.items():
        table[TaskType(name)] = priority
    return table


_H, _M, _C = Priority.HIGH, Priority.MEDIUM, Priority.CRITICAL

GROWTH_STAGE_TABLE: dict[GrowthStage, GrowthStageConfig] = {
    GrowthStage.GERMINATION: GrowthStageConfig(
        stage=GrowthStage.GERMINATION,
        duration_days=7,
        next_stage=GrowthStage.SEEDLING,
        task_priorities=_priorities(watering=_H, inspection=_H),
        recommended_tasks=(TaskType.WATERING, TaskType.INSPECTION),
    ),
    GrowthStage.SEEDLING: GrowthStageConfig(
        stage=GrowthStage.SEEDLING,
        duration_days=14,
        next_stage=GrowthStage.VEGETATIVE,
        task_priorities=_priorities(watering=_H, feeding=_M, inspection=_H, transplant=_M),
        recommended_tasks=(TaskType.WATERING, TaskType.FEEDING, TaskType.INSPECTION, TaskType.TRANSPLANT),
    ),
    GrowthStage.VEGETATIVE: GrowthStageConfig(
        stage=GrowthStage.VEGETATIVE,
        duration_days=30,
        next_stage=GrowthStage.PRE_FLOWER,
        task_priorities=_priorities(
            watering=_H,
            feeding=_H,
            inspection=_M,
            pruning=_H,
            training=_H,
            defoliation=_M,
            transplant=_M,
        ),
        recommended_tasks=(
            TaskType.WATERING,
            TaskType.FEEDING,
            TaskType.INSPECTION,
            TaskType.PRUNING,
            TaskType.TRAINING,
        ),
    ),
    GrowthStage.PRE_FLOWER: GrowthStageConfig(
        stage=GrowthStage.PRE_FLOWER,
        duration_days=14,
        next_stage=GrowthStage.FLOWERING,
        task_priorities=_priorities(
            watering=_H,
            feeding=_H,
            inspection=_H,
            pruning=_M,
            training=_M,
            defoliation=_H,
        ),
        recommended_tasks=(TaskType.WATERING, TaskType.FEEDING, TaskType.INSPECTION, TaskType.DEFOLIATION),
    ),
    GrowthStage.FLOWERING: GrowthStageConfig(
        stage=GrowthStage.FLOWERING,
        duration_days=56,
        next_stage=GrowthStage.LATE_FLOWERING,
        task_priorities=_priorities(watering=_H, feeding=_H, inspection=_H, defoliation=_M),
        recommended_tasks=(TaskType.WATERING, TaskType.FEEDING, TaskType.INSPECTION),
    ),
    GrowthStage.LATE_FLOWERING: GrowthStageConfig(
        stage=GrowthStage.LATE_FLOWERING,
        duration_days=14,
        next_stage=GrowthStage.HARVEST,
        task_priorities=_priorities(watering=_M, inspection=_C, flushing=_H, harvest=_M),
        recommended_tasks=(TaskType.INSPECTION, TaskType.FLUSHING),
    ),
    GrowthStage.HARVEST: GrowthStageConfig(
        stage=GrowthStage.HARVEST,
        duration_days=1,
        next_stage=GrowthStage.CURING,
        task_priorities=_priorities(inspection=_H, harvest=_C),
        recommended_tasks=(TaskType.HARVEST,),
    ),
    GrowthStage.CURING: GrowthStageConfig(
        stage=GrowthStage.CURING,
        duration_days=21,
        next_stage=None,
        task_priorities=_priorities(inspection=_M),
        recommended_tasks=(TaskType.INSPECTION,),
    ),
}

TERMINAL_STAGE = GrowthStage.CURING


def get_stage_config(stage: GrowthStage | str | None) -> GrowthStageConfig | None:
    """Look up a stage config; None for unknown or missing stages."""
    parsed = GrowthStage.parse(stage)
    if parsed is None:
        return None
    return GROWTH_STAGE_TABLE.get(parsed)


def stage_table_problems() -> list[str]:
    """Describe every gap in GROWTH_STAGE_TABLE (empty when the table is sound)."""
    problems: list[str] = []
    for stage in GrowthStage:
        config = GROWTH_STAGE_TABLE.get(stage)
        if config is None:
            problems.append(f"missing stage config: {stage}")
            continue
        if config.duration_days <= 0:
            problems.append(f"{stage}: duration must be positive")
        missing = [t.value for t in TaskType if t not in config.task_priorities]
        if missing:
            problems.append(f"{stage}: missing task priorities {missing}")

    # Walk the chain from the first stage: it must visit every stage once and stop at TERMINAL_STAGE.
    visited: list[GrowthStage] = []
    current: GrowthStage | None = GrowthStage.GERMINATION
    while current is not None and current in GROWTH_STAGE_TABLE:
        if current in visited:
            problems.append(f"stage cycle detected at {current}")
            break
        visited.append(current)
        current = GROWTH_STAGE_TABLE[current].next_stage
    if visited and visited[-1] != TERMINAL_STAGE:
        problems.append(f"stage chain ends at {visited[-1]}, expected {TERMINAL_STAGE}")
    if set(visited) != set(GrowthStage):
        unreachable = sorted(s.value for s in set(GrowthStage) - set(visited))
        problems.append(f"stages unreachable from germination: {unreachable}")
    return problems
