"""
Plant Task Domain Objects
=========================

PlantTask is the mutable unit of care work. EnvironmentalConditions and
TaskMutation describe the readings and the resulting schedule changes applied
by the schedule adjuster.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from growcare.enums import GrowthStage, Priority, TaskStatus, TaskType
from growcare.utils.time import coerce_datetime, utc_now


def new_task_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class EnvironmentalConditions:
    """Latest environmental readings for a plant; any field may be missing."""

    humidity: float | None = None
    ph: float | None = None
    temperature: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "EnvironmentalConditions":
        data = data or {}
        ph = data.get("ph", data.get("pH"))
        return cls(
            humidity=_float_or_none(data.get("humidity")),
            ph=_float_or_none(ph),
            temperature=_float_or_none(data.get("temperature")),
        )

    def to_dict(self) -> dict[str, float]:
        values = {"humidity": self.humidity, "ph": self.ph, "temperature": self.temperature}
        return {key: value for key, value in values.items() if value is not None}

    @property
    def is_empty(self) -> bool:
        return not self.to_dict()


def _float_or_none(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class PlantTask:
    """A single scheduled care task for one plant."""

    plant_id: str
    user_id: str
    task_type: TaskType
    title: str
    due_date: datetime
    priority: Priority = Priority.MEDIUM
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    estimated_duration_minutes: int = 0
    auto_generated: bool = True
    template_id: str | None = None
    environmental_conditions: dict[str, float] | None = None
    escalation_start_time: datetime | None = None
    growth_stage: GrowthStage | None = None
    sequence_number: int | None = None
    week_number: int | None = None
    task_id: str = field(default_factory=new_task_id)
    created_at: datetime = field(default_factory=utc_now)

    @property
    def is_pending(self) -> bool:
        return self.status == TaskStatus.PENDING

    def is_overdue(self, now: datetime) -> bool:
        return self.is_pending and self.due_date < now

    @property
    def overdue_origin(self) -> datetime:
        """Timestamp the overdue clock starts from."""
        return self.escalation_start_time or self.due_date

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "plant_id": self.plant_id,
            "user_id": self.user_id,
            "task_type": self.task_type.value,
            "title": self.title,
            "description": self.description,
            "due_date": self.due_date.isoformat(),
            "status": self.status.value,
            "priority": self.priority.value,
            "estimated_duration_minutes": self.estimated_duration_minutes,
            "auto_generated": self.auto_generated,
            "template_id": self.template_id,
            "environmental_conditions": self.environmental_conditions,
            "escalation_start_time": (
                self.escalation_start_time.isoformat() if self.escalation_start_time else None
            ),
            "growth_stage": self.growth_stage.value if self.growth_stage else None,
            "sequence_number": self.sequence_number,
            "week_number": self.week_number,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlantTask":
        created_at = coerce_datetime(data.get("created_at")) or utc_now()
        return cls(
            task_id=str(data.get("task_id") or new_task_id()),
            plant_id=str(data["plant_id"]),
            user_id=str(data["user_id"]),
            task_type=TaskType(data["task_type"]),
            title=data.get("title") or "",
            description=data.get("description") or "",
            due_date=coerce_datetime(data["due_date"]),
            status=TaskStatus(data.get("status") or TaskStatus.PENDING.value),
            priority=Priority(data.get("priority") or Priority.MEDIUM.value),
            estimated_duration_minutes=int(data.get("estimated_duration_minutes") or 0),
            auto_generated=bool(data.get("auto_generated", True)),
            template_id=data.get("template_id"),
            environmental_conditions=data.get("environmental_conditions"),
            escalation_start_time=coerce_datetime(data.get("escalation_start_time")),
            growth_stage=GrowthStage.parse(data.get("growth_stage")),
            sequence_number=data.get("sequence_number"),
            week_number=data.get("week_number"),
            created_at=created_at,
        )


@dataclass(frozen=True)
class TaskMutation:
    """Schedule change for one task produced by the schedule adjuster.

    `due_date` and `priority` are None when that field is unchanged.
    """

    task_id: str
    reschedule_hours: int = 0
    due_date: datetime | None = None
    priority: Priority | None = None
    environmental_conditions: dict[str, float] | None = None

    @property
    def changes_schedule(self) -> bool:
        return self.due_date is not None or self.priority is not None

    def apply_to(self, task: PlantTask) -> PlantTask:
        """Return a copy of `task` with this mutation applied."""
        updated = replace(task)
        if self.due_date is not None:
            updated.due_date = self.due_date
        if self.priority is not None:
            updated.priority = self.priority
        if self.environmental_conditions is not None:
            updated.environmental_conditions = dict(self.environmental_conditions)
        return updated

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "reschedule_hours": self.reschedule_hours,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "priority": self.priority.value if self.priority else None,
            "environmental_conditions": self.environmental_conditions,
        }


