"""Repository for plant task persistence."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from growcare.domain.plant_task import PlantTask, TaskMutation
from growcare.enums import TaskStatus
from growcare.infrastructure.database.ops.plant_tasks import PlantTaskOperations

logger = logging.getLogger(__name__)


class PlantTaskRepository:
    """Task store backed by the SQLite handler; converts rows to PlantTask."""

    def __init__(self, backend: PlantTaskOperations) -> None:
        self._backend = backend

    def create(self, task: PlantTask) -> PlantTask | None:
        return task if self._backend.insert_plant_task(task.to_dict()) else None

    def get(self, task_id: str) -> PlantTask | None:
        row = self._backend.get_plant_task(task_id)
        return self._to_task(row) if row else None

    def query(
        self,
        plant_id: str | None = None,
        *,
        status: TaskStatus | None = None,
        due_before: datetime | None = None,
    ) -> list[PlantTask]:
        rows = self._backend.query_plant_tasks(
            plant_id=plant_id,
            status=status.value if status else None,
            due_before=due_before,
        )
        tasks = [self._to_task(row) for row in rows]
        return [task for task in tasks if task is not None]

    def update(self, task_id: str, mutation: TaskMutation) -> bool:
        fields: dict[str, Any] = {}
        if mutation.due_date is not None:
            fields["due_date"] = mutation.due_date
        if mutation.priority is not None:
            fields["priority"] = mutation.priority.value
        if mutation.environmental_conditions is not None:
            fields["environmental_conditions"] = mutation.environmental_conditions
        if not fields:
            return False
        return self._backend.update_plant_task(task_id, fields)

    def set_status(self, task_id: str, status: TaskStatus) -> bool:
        """Record completion or skipping of a task."""
        return self._backend.update_plant_task(task_id, {"status": status.value})

    @staticmethod
    def _to_task(row: dict[str, Any]) -> PlantTask | None:
        try:
            return PlantTask.from_dict(row)
        except (KeyError, ValueError, TypeError) as exc:
            logger.warning("Skipping unreadable task row %s: %s", row.get("task_id"), exc)
            return None
