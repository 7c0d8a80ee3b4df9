"""
Common Enumerations
====================

Priority, escalation and batching enums used across the notification services.
"""

from enum import Enum
from typing import Iterable


class Priority(str, Enum):
    """
    Task and notification priority.
    Used by: task generation, schedule adjustment, batching, escalation
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    def __str__(self) -> str:
        return self.value

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    def bump(self, steps: int = 1) -> "Priority":
        """Return the priority `steps` levels higher, capped at CRITICAL."""
        ordered = list(Priority)
        return ordered[min(len(ordered) - 1, max(0, self.rank + steps))]

    @classmethod
    def highest(cls, priorities: Iterable["Priority"]) -> "Priority":
        """Maximum of the given priorities (LOW for an empty iterable)."""
        return max(priorities, key=lambda p: p.rank, default=cls.LOW)


_PRIORITY_RANK = {
    Priority.LOW: 0,
    Priority.MEDIUM: 1,
    Priority.HIGH: 2,
    Priority.CRITICAL: 3,
}


class EscalationLevel(str, Enum):
    """
    Overdue escalation levels.
    Used by: escalation_tracker
    """
    GENTLE = "gentle"
    STANDARD = "standard"
    URGENT = "urgent"
    CRITICAL = "critical"

    def __str__(self) -> str:
        return self.value

    @property
    def rank(self) -> int:
        return list(EscalationLevel).index(self)


class BatchType(str, Enum):
    """Grouping strategy that produced a notification batch."""
    DAILY = "daily"
    PLANT_GROUPED = "plant_grouped"
    PRIORITY_GROUPED = "priority_grouped"

    def __str__(self) -> str:
        return self.value


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    def __str__(self) -> str:
        return self.value


class CancelOutcome(str, Enum):
    """Result of cancelling a task's notification."""
    REMOVED_PENDING = "removed_pending"
    REMOVED_IN_FLIGHT = "removed_in_flight"
    ALREADY_SENT = "already_sent"
    NOT_FOUND = "not_found"

    def __str__(self) -> str:
        return self.value
