"""
Notification Batch Domain Objects
=================================

Requests enqueued into the batcher, the batches built from them and the
per-batch dispatch results.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from growcare.enums import BatchType, Priority, TaskType


@dataclass(frozen=True)
class NotificationBatchRequest:
    """Immutable reminder request for one task.

    `notify_at` is filled by the batcher once lead time and quiet hours have
    been applied; grouping and scheduling use it instead of `due_date`.
    """

    task_id: str
    plant_id: str
    plant_name: str
    task_type: TaskType
    title: str
    due_date: datetime
    priority: Priority
    user_id: str
    notify_at: datetime | None = None

    @property
    def effective_time(self) -> datetime:
        return self.notify_at or self.due_date

    def timed(self, notify_at: datetime) -> "NotificationBatchRequest":
        return replace(self, notify_at=notify_at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "plant_id": self.plant_id,
            "plant_name": self.plant_name,
            "task_type": self.task_type.value,
            "title": self.title,
            "due_date": self.due_date.isoformat(),
            "priority": self.priority.value,
            "user_id": self.user_id,
            "notify_at": self.notify_at.isoformat() if self.notify_at else None,
        }


@dataclass
class NotificationBatch:
    """A group of requests delivered as one notification."""

    batch_id: str
    user_id: str
    batch_type: BatchType
    notifications: list[NotificationBatchRequest] = field(default_factory=list)
    retry_count: int = 0

    @property
    def scheduled_time(self) -> datetime:
        return min(n.effective_time for n in self.notifications)

    @property
    def priority(self) -> Priority:
        return Priority.highest(n.priority for n in self.notifications)

    @property
    def task_ids(self) -> list[str]:
        return [n.task_id for n in self.notifications]

    @property
    def plant_ids(self) -> list[str]:
        seen: list[str] = []
        for n in self.notifications:
            if n.plant_id not in seen:
                seen.append(n.plant_id)
        return seen

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "user_id": self.user_id,
            "batch_type": self.batch_type.value,
            "scheduled_time": self.scheduled_time.isoformat() if self.notifications else None,
            "priority": self.priority.value,
            "retry_count": self.retry_count,
            "notifications": [n.to_dict() for n in self.notifications],
        }


@dataclass(frozen=True)
class NotificationContent:
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class BatchProcessingResult:
    """Outcome of dispatching one batch."""

    batch_id: str
    batch_type: BatchType
    scheduled: int = 0
    failed: int = 0
    skipped: int = 0
    duration_ms: float = 0.0
    retries: int = 0
    errors: list[str] = field(default_factory=list)
    notification_ids: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.scheduled > 0 and self.failed == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "batch_type": self.batch_type.value,
            "scheduled": self.scheduled,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration_ms": round(self.duration_ms, 2),
            "retries": self.retries,
            "errors": list(self.errors),
            "notification_ids": list(self.notification_ids),
        }


@dataclass
class BatchProcessingStats:
    """Running totals across flushes."""

    total_batches: int = 0
    total_notifications: int = 0
    successful_batches: int = 0
    total_processing_ms: float = 0.0
    last_processed_at: datetime | None = None

    @property
    def success_rate(self) -> float:
        if not self.total_batches:
            return 0.0
        return self.successful_batches / self.total_batches * 100

    @property
    def average_batch_size(self) -> float:
        if not self.total_batches:
            return 0.0
        return self.total_notifications / self.total_batches

    @property
    def average_processing_ms(self) -> float:
        if not self.total_batches:
            return 0.0
        return self.total_processing_ms / self.total_batches

    def record(self, result: BatchProcessingResult, size: int, at: datetime) -> None:
        self.total_batches += 1
        self.total_notifications += size
        if result.succeeded:
            self.successful_batches += 1
        self.total_processing_ms += result.duration_ms
        self.last_processed_at = at

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_batches": self.total_batches,
            "total_notifications": self.total_notifications,
            "success_rate": round(self.success_rate, 2),
            "average_batch_size": round(self.average_batch_size, 2),
            "average_processing_ms": round(self.average_processing_ms, 2),
            "last_processed_at": self.last_processed_at.isoformat() if self.last_processed_at else None,
        }
