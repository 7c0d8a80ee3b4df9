"""
Escalation Domain Objects
=========================

Per-task overdue escalation state and the level/interval rules that drive it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from growcare.enums import EscalationLevel

# (upper bound in hours overdue, level); the last level has no upper bound.
ESCALATION_THRESHOLDS: tuple[tuple[int, EscalationLevel], ...] = (
    (6, EscalationLevel.GENTLE),
    (24, EscalationLevel.STANDARD),
    (72, EscalationLevel.URGENT),
)

RECHECK_INTERVALS: dict[EscalationLevel, timedelta] = {
    EscalationLevel.GENTLE: timedelta(hours=2),
    EscalationLevel.STANDARD: timedelta(hours=6),
    EscalationLevel.URGENT: timedelta(hours=12),
    EscalationLevel.CRITICAL: timedelta(hours=12),
}

URGENCY_ICONS: dict[EscalationLevel, str] = {
    EscalationLevel.GENTLE: "⏰",
    EscalationLevel.STANDARD: "⚠️",
    EscalationLevel.URGENT: "🚨",
    EscalationLevel.CRITICAL: "🔴",
}


def level_for_hours(hours_overdue: int) -> EscalationLevel:
    for upper, level in ESCALATION_THRESHOLDS:
        if hours_overdue < upper:
            return level
    return EscalationLevel.CRITICAL


@dataclass
class EscalationState:
    """In-memory escalation record for one overdue task."""

    task_id: str
    user_id: str
    hours_overdue: int
    level: EscalationLevel
    next_check_time: datetime
    has_escalated: bool = False
    notifications_sent: int = 0
    last_notification_id: str | None = None
    # Set while a sweep is sending this task's reminder.
    dispatching: bool = False

    def advance(self, hours_overdue: int) -> None:
        """Update hours overdue; the level never moves backwards."""
        self.hours_overdue = hours_overdue
        derived = level_for_hours(hours_overdue)
        if derived.rank > self.level.rank:
            self.level = derived

    def is_due(self, now: datetime) -> bool:
        return not self.dispatching and now >= self.next_check_time

    def reserve(self) -> None:
        self.dispatching = True

    def release(self) -> None:
        self.dispatching = False

    def mark_notified(self, now: datetime, notification_id: str) -> None:
        self.dispatching = False
        self.has_escalated = True
        self.notifications_sent += 1
        self.last_notification_id = notification_id
        self.next_check_time = now + RECHECK_INTERVALS[self.level]

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "user_id": self.user_id,
            "hours_overdue": self.hours_overdue,
            "level": self.level.value,
            "next_check_time": self.next_check_time.isoformat(),
            "has_escalated": self.has_escalated,
            "notifications_sent": self.notifications_sent,
        }


@dataclass
class EscalationSweepReport:
    """Summary returned by one escalation sweep."""

    checked: int = 0
    escalated: int = 0
    failed: int = 0
    deferred: int = 0
    dropped: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "checked": self.checked,
            "escalated": self.escalated,
            "failed": self.failed,
            "deferred": self.deferred,
            "dropped": self.dropped,
            "errors": list(self.errors),
        }
