"""
Task Generator
==============

Produces concrete care tasks for a plant from the growth stage table, the
strain scheduling table and the task catalog.

Two generation modes:
- ``generate``: every recommended task type of a stage over a short horizon
  (default 7 days, both ends inclusive).
- ``generate_recurring``: one task type at a fixed interval until an end date,
  numbered by ``sequence_number``.

Generation is total: unknown stages yield an empty list and unresolved strains
fall back to the unknown profile.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable

from growcare.domain.growth_stages import GrowthStageConfig, get_stage_config
from growcare.domain.plant import PlantRecord
from growcare.domain.plant_task import PlantTask
from growcare.domain.strain_profiles import (
    StrainCharacteristics,
    StrainSchedulingConfig,
    strain_adjustments,
)
from growcare.domain.task_catalog import TASK_TYPE_PROFILES, describe_task
from growcare.enums import GrowthStage, Priority, TaskType
from growcare.services.application.strain_profile_resolver import StrainProfileResolver
from growcare.utils.rounding import round_half_up
from growcare.utils.time import start_of_day, utc_now

logger = logging.getLogger(__name__)


def frequency_days(base_frequency: int, stage_modifier: float) -> int:
    """Interval between occurrences: base / modifier, rounded, never below one day."""
    return max(1, round_half_up(base_frequency / stage_modifier))


def week_number(start: datetime, due: datetime) -> int:
    return math.ceil((due - start) / timedelta(weeks=1))


class TaskGenerator:
    """Builds PlantTask instances; persistence is left to the caller."""

    def __init__(
        self,
        strain_resolver: StrainProfileResolver,
        *,
        horizon_days: int = 7,
        recurring_horizon_days: int = 30,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._strains = strain_resolver
        self.horizon_days = horizon_days
        self.recurring_horizon_days = recurring_horizon_days
        self._clock = clock

    # ==================== Stage generation ====================

    def generate(
        self,
        plant: PlantRecord,
        stage: GrowthStage | str | None = None,
        strain: StrainCharacteristics | None = None,
    ) -> list[PlantTask]:
        """Tasks for every recommended task type of `stage` over the horizon."""
        requested = stage if stage is not None else plant.growth_stage or plant.raw_stage
        stage_config = get_stage_config(requested)
        if stage_config is None:
            logger.warning("No stage config for %r (plant %s); generating no tasks", requested, plant.plant_id)
            return []

        characteristics = strain or self._strains.resolve(plant)
        scheduling = self._strains.scheduling_config(plant, characteristics)
        start = start_of_day(self._clock())
        end = start + timedelta(days=self.horizon_days)

        tasks: list[PlantTask] = []
        for task_type in stage_config.recommended_tasks:
            interval = self.frequency_for(task_type, scheduling, stage_config.stage)
            due = start
            while due <= end:
                tasks.append(self._build_task(plant, task_type, stage_config, due, week_number(start, due)))
                due += timedelta(days=interval)

        logger.debug(
            "Generated %s tasks for plant %s in %s (%s profile)",
            len(tasks),
            plant.plant_id,
            stage_config.stage,
            scheduling.strain_type,
        )
        return tasks

    @staticmethod
    def frequency_for(task_type: TaskType, scheduling: StrainSchedulingConfig, stage: GrowthStage) -> int:
        return frequency_days(scheduling.base_frequency_days(task_type), scheduling.modifier_for(stage))

    # ==================== Recurring series ====================

    def generate_recurring(
        self,
        plant: PlantRecord,
        task_type: TaskType,
        interval_days: int,
        end_date: datetime | None = None,
    ) -> list[PlantTask]:
        """A numbered series of one task type from today until `end_date` (inclusive)."""
        if interval_days < 1:
            logger.warning("Recurring interval must be at least one day (got %s)", interval_days)
            return []

        start = start_of_day(self._clock())
        end = end_date or start + timedelta(days=self.recurring_horizon_days)
        stage_config = get_stage_config(plant.growth_stage)

        tasks: list[PlantTask] = []
        due = start
        sequence = 1
        while due <= end:
            task = self._build_task(plant, task_type, stage_config, due, week_number(start, due))
            task.sequence_number = sequence
            tasks.append(task)
            sequence += 1
            due += timedelta(days=interval_days)
        return tasks

    # ==================== Strain adjustments ====================

    def apply_strain_adjustments(
        self,
        tasks: list[PlantTask],
        characteristics: StrainCharacteristics,
    ) -> list[PlantTask]:
        """Shift and re-prioritize tasks according to strain-specific rules.

        A frequency multiplier m moves the due date by round(24 * (1 - m))
        hours; unresolved strains are returned unchanged.
        """
        if not characteristics.is_resolved:
            return list(tasks)

        adjustments = strain_adjustments(characteristics)
        note = f"Strain-specific: {characteristics.name} ({characteristics.strain_type})"
        adjusted: list[PlantTask] = []
        for task in tasks:
            rule = adjustments.get(task.task_type)
            if rule is None:
                adjusted.append(task)
                continue
            shift_hours = round_half_up(24 * (1 - rule.frequency_multiplier))
            adjusted.append(
                replace(
                    task,
                    due_date=task.due_date + timedelta(hours=shift_hours),
                    priority=task.priority.bump(rule.priority_boost),
                    description=f"{task.description} {note}".strip(),
                )
            )
        return adjusted

    # ==================== Helpers ====================

    def _build_task(
        self,
        plant: PlantRecord,
        task_type: TaskType,
        stage_config: GrowthStageConfig | None,
        due: datetime,
        week: int,
    ) -> PlantTask:
        profile = TASK_TYPE_PROFILES[task_type]
        if stage_config is not None:
            priority = stage_config.priority_for(task_type)
            description = describe_task(task_type, stage_config.stage)
        else:
            priority = Priority.MEDIUM
            description = f"Perform {task_type} task for {plant.name}."
        return PlantTask(
            plant_id=plant.plant_id,
            user_id=plant.user_id,
            task_type=task_type,
            title=profile.title_for(plant.name),
            description=description,
            due_date=due,
            priority=priority,
            estimated_duration_minutes=profile.estimated_minutes,
            auto_generated=True,
            growth_stage=stage_config.stage if stage_config else None,
            week_number=week,
        )
