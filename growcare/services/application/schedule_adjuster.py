"""
Schedule Adjuster
=================

Turns environmental readings into due-date and priority changes for a plant's
pending tasks. Rules are evaluated per task in a fixed order (watering,
feeding, inspection); a later rule overrides any field an earlier one set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Iterable

from growcare.domain.plant_task import EnvironmentalConditions, PlantTask, TaskMutation
from growcare.enums import Priority, TaskType

logger = logging.getLogger(__name__)

HIGH_HUMIDITY = 70.0
LOW_HUMIDITY = 40.0
PH_MIN = 5.5
PH_MAX = 7.0
TEMPERATURE_MAX = 30.0
TEMPERATURE_MIN = 15.0


@dataclass(frozen=True)
class Adjustment:
    reschedule_hours: int = 0
    priority: Priority | None = None


def _watering_rule(task: PlantTask, conditions: EnvironmentalConditions) -> Adjustment | None:
    if task.task_type != TaskType.WATERING or conditions.humidity is None:
        return None
    if conditions.humidity > HIGH_HUMIDITY:
        return Adjustment(reschedule_hours=12)
    if conditions.humidity < LOW_HUMIDITY:
        return Adjustment(reschedule_hours=-6, priority=Priority.HIGH)
    return None


def _feeding_rule(task: PlantTask, conditions: EnvironmentalConditions) -> Adjustment | None:
    if task.task_type != TaskType.FEEDING or conditions.ph is None:
        return None
    if conditions.ph < PH_MIN or conditions.ph > PH_MAX:
        return Adjustment(priority=Priority.CRITICAL)
    return None


def _inspection_rule(task: PlantTask, conditions: EnvironmentalConditions) -> Adjustment | None:
    if task.task_type != TaskType.INSPECTION or conditions.temperature is None:
        return None
    if conditions.temperature > TEMPERATURE_MAX or conditions.temperature < TEMPERATURE_MIN:
        return Adjustment(reschedule_hours=-2, priority=Priority.HIGH)
    return None


Rule = Callable[[PlantTask, EnvironmentalConditions], "Adjustment | None"]

ADJUSTMENT_RULES: tuple[Rule, ...] = (_watering_rule, _feeding_rule, _inspection_rule)


class ScheduleAdjuster:
    """Computes TaskMutations; it never writes to the store itself."""

    def __init__(self, rules: Iterable[Rule] = ADJUSTMENT_RULES) -> None:
        self._rules = tuple(rules)

    def adjust(
        self,
        tasks: Iterable[PlantTask],
        conditions: EnvironmentalConditions,
    ) -> list[TaskMutation]:
        """Mutations for every pending task that a rule matches.

        Negative reschedules may move a task into the past; that marks it as
        due now.
        """
        if conditions.is_empty:
            return []

        mutations: list[TaskMutation] = []
        for task in tasks:
            if not task.is_pending:
                continue
            mutation = self._evaluate(task, conditions)
            if mutation is not None:
                mutations.append(mutation)
        return mutations

    def _evaluate(self, task: PlantTask, conditions: EnvironmentalConditions) -> TaskMutation | None:
        reschedule_hours = 0
        priority: Priority | None = None
        matched = False
        for rule in self._rules:
            adjustment = rule(task, conditions)
            if adjustment is None:
                continue
            matched = True
            if adjustment.reschedule_hours:
                reschedule_hours = adjustment.reschedule_hours
            if adjustment.priority is not None:
                priority = adjustment.priority

        if not matched or (reschedule_hours == 0 and priority is None):
            return None

        logger.debug(
            "Adjusting %s task %s: %+dh, priority %s",
            task.task_type,
            task.task_id,
            reschedule_hours,
            priority or "unchanged",
        )
        return TaskMutation(
            task_id=task.task_id,
            reschedule_hours=reschedule_hours,
            due_date=task.due_date + timedelta(hours=reschedule_hours) if reschedule_hours else None,
            priority=priority,
            environmental_conditions={**(task.environmental_conditions or {}), **conditions.to_dict()},
        )
