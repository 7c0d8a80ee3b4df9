"""
Care Engine
===========

Facade over the scheduling services. This is the surface hosts call: the
HTTP blueprint, the scheduler jobs and the CLI all go through it.

Writes to one plant's task set are serialized with a per-plant lock; different
plants proceed concurrently.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Mapping

from growcare.domain.flowering import FloweringPrediction
from growcare.domain.notifications import BatchProcessingResult, NotificationBatchRequest
from growcare.domain.plant import PlantRecord
from growcare.domain.plant_task import EnvironmentalConditions, PlantTask, TaskMutation
from growcare.domain.escalation import EscalationSweepReport
from growcare.enums import CancelOutcome, GrowthStage, TaskStatus, TaskType
from growcare.services.application.escalation_tracker import EscalationTracker
from growcare.services.application.flowering_predictor import FloweringPredictor
from growcare.services.application.notification_batcher import NotificationBatcher
from growcare.services.application.schedule_adjuster import ScheduleAdjuster
from growcare.services.application.stage_transition_detector import StageTransitionDetector
from growcare.services.application.strain_profile_resolver import StrainProfileResolver
from growcare.services.application.task_generator import TaskGenerator
from growcare.services.protocols import PlantDirectory, TaskStore
from growcare.utils.concurrency import KeyedLocks

logger = logging.getLogger(__name__)


class CareEngine:
    def __init__(
        self,
        *,
        task_store: TaskStore,
        strain_resolver: StrainProfileResolver,
        generator: TaskGenerator,
        adjuster: ScheduleAdjuster,
        detector: StageTransitionDetector,
        flowering: FloweringPredictor,
        batcher: NotificationBatcher,
        escalation: EscalationTracker,
        plant_directory: PlantDirectory | None = None,
    ) -> None:
        self.task_store = task_store
        self.strain_resolver = strain_resolver
        self.generator = generator
        self.adjuster = adjuster
        self.detector = detector
        self.flowering = flowering
        self.batcher = batcher
        self.escalation = escalation
        self.plant_directory = plant_directory
        self._plant_locks = KeyedLocks()

    # ==================== Task generation ====================

    def generate_tasks_for_stage(
        self,
        plant: PlantRecord,
        stage: GrowthStage | str | None = None,
    ) -> list[PlantTask]:
        """Generate and persist the stage's tasks for the horizon."""
        tasks = self.generator.generate(plant, stage)
        return self._persist(plant.plant_id, tasks)

    def generate_strain_specific_tasks(
        self,
        plant: PlantRecord,
        stage: GrowthStage | str | None = None,
    ) -> list[PlantTask]:
        """Stage tasks with strain adjustments applied before persisting."""
        characteristics = self.strain_resolver.resolve(plant)
        tasks = self.generator.generate(plant, stage, characteristics)
        tasks = self.generator.apply_strain_adjustments(tasks, characteristics)
        return self._persist(plant.plant_id, tasks)

    def generate_recurring_tasks(
        self,
        plant: PlantRecord,
        task_type: TaskType,
        interval_days: int,
        end_date: datetime | None = None,
    ) -> list[PlantTask]:
        tasks = self.generator.generate_recurring(plant, task_type, interval_days, end_date)
        return self._persist(plant.plant_id, tasks)

    def _persist(self, plant_id: str, tasks: list[PlantTask]) -> list[PlantTask]:
        created: list[PlantTask] = []
        with self._plant_locks.hold(plant_id):
            for task in tasks:
                stored = self.task_store.create(task)
                if stored is None:
                    logger.warning("Task store rejected %s task %s for plant %s", task.task_type, task.task_id, plant_id)
                    continue
                created.append(stored)
        logger.info("Persisted %s/%s generated tasks for plant %s", len(created), len(tasks), plant_id)
        return created

    # ==================== Adjustment / transitions ====================

    def adjust_for_conditions(
        self,
        plant_id: str,
        conditions: EnvironmentalConditions | Mapping[str, Any],
    ) -> list[TaskMutation]:
        """Apply environmental adjustments to the plant's pending tasks.

        Returns the mutations the store accepted.
        """
        if not isinstance(conditions, EnvironmentalConditions):
            conditions = EnvironmentalConditions.from_dict(dict(conditions))
        plant_id = str(plant_id)

        applied: list[TaskMutation] = []
        with self._plant_locks.hold(plant_id):
            pending = self.task_store.query(plant_id, status=TaskStatus.PENDING)
            for mutation in self.adjuster.adjust(pending, conditions):
                if self.task_store.update(mutation.task_id, mutation):
                    applied.append(mutation)
                else:
                    logger.warning("Task store did not apply adjustment to task %s", mutation.task_id)
        if applied:
            logger.info("Adjusted %s tasks for plant %s from %s", len(applied), plant_id, conditions.to_dict())
        return applied

    def detect_stage_transition(self, plant: PlantRecord) -> GrowthStage | None:
        return self.detector.detect(plant)

    def advance_stage(self, plant: PlantRecord) -> tuple[GrowthStage | None, list[PlantTask]]:
        """Detect a transition and, if found, record it and generate the new stage's tasks."""
        next_stage = self.detector.detect(plant)
        if next_stage is None:
            return None, []
        if self.plant_directory is not None and not self.plant_directory.update_stage(plant.plant_id, next_stage):
            logger.warning("Plant directory did not record %s -> %s for plant %s", plant.growth_stage, next_stage, plant.plant_id)
        tasks = self.generate_tasks_for_stage(plant.with_stage(next_stage), next_stage)
        return next_stage, tasks

    def run_stage_transition_sweep(self) -> dict[str, Any]:
        """Advance every plant in the directory that has outgrown its stage."""
        if self.plant_directory is None:
            return {"checked": 0, "advanced": [], "errors": ["no plant directory configured"]}
        summary: dict[str, Any] = {"checked": 0, "advanced": [], "errors": []}
        for plant in self.plant_directory.list_plants():
            summary["checked"] += 1
            try:
                next_stage, tasks = self.advance_stage(plant)
            except Exception as exc:
                logger.error("Stage sweep failed for plant %s: %s", plant.plant_id, exc)
                summary["errors"].append(f"{plant.plant_id}: {exc}")
                continue
            if next_stage is not None:
                summary["advanced"].append(
                    {"plant_id": plant.plant_id, "stage": next_stage.value, "tasks_created": len(tasks)}
                )
        return summary

    def predict_flowering_and_harvest(self, plant: PlantRecord) -> FloweringPrediction | None:
        return self.flowering.predict(plant)

    # ==================== Notifications ====================

    def enqueue_notification(self, request: NotificationBatchRequest) -> bool:
        return self.batcher.enqueue(request)

    def enqueue_task_notification(self, task: PlantTask, plant_name: str) -> bool:
        return self.batcher.enqueue(
            NotificationBatchRequest(
                task_id=task.task_id,
                plant_id=task.plant_id,
                plant_name=plant_name,
                task_type=task.task_type,
                title=task.title,
                due_date=task.due_date,
                priority=task.priority,
                user_id=task.user_id,
            )
        )

    def cancel_notification(self, task_id: str) -> CancelOutcome:
        outcome = self.batcher.cancel(task_id)
        self.escalation.forget(task_id)
        logger.debug("Cancelled notification for task %s: %s", task_id, outcome)
        return outcome

    def reschedule_notification(self, request: NotificationBatchRequest, new_due_date: datetime) -> bool:
        self.batcher.cancel(request.task_id)
        return self.batcher.enqueue(replace(request, due_date=new_due_date, notify_at=None))

    def flush_notifications(self) -> list[BatchProcessingResult]:
        return self.batcher.flush()

    def run_escalation_sweep(self, now: datetime | None = None) -> EscalationSweepReport:
        return self.escalation.sweep(now)

    def notification_stats(self) -> dict[str, Any]:
        return {
            "batching": self.batcher.get_stats(),
            "escalation": self.escalation.get_stats(),
            "strain_cache": self.strain_resolver.cache_stats(),
        }

    def shutdown(self) -> None:
        self.batcher.shutdown()
