"""
Escalation Tracker
==================

Periodic sweep over overdue pending tasks. Each task climbs
gentle -> standard -> urgent -> critical as it stays overdue; a reminder is
sent whenever its next check time has passed, after which the next check is
pushed out by the level's recheck interval.

A task is reserved under the lock before its reminder is sent, so
overlapping sweeps (the scheduler job and a manual sweep) send it once.

State lives in memory only. After a restart the level is re-derived from the
task's overdue hours on the next sweep.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Callable

from growcare.domain.escalation import (
    URGENCY_ICONS,
    EscalationState,
    EscalationSweepReport,
    level_for_hours,
)
from growcare.domain.exceptions import DispatchFailure
from growcare.domain.plant_task import PlantTask
from growcare.enums import EscalationLevel, TaskStatus
from growcare.services.application.notification_timing import NotificationTimingPolicy
from growcare.services.protocols import Dispatcher, TaskStore
from growcare.utils.time import utc_now, whole_hours_between

logger = logging.getLogger(__name__)


class EscalationTracker:
    def __init__(
        self,
        task_store: TaskStore,
        dispatcher: Dispatcher,
        timing: NotificationTimingPolicy,
        *,
        clock: Callable[[], datetime] = utc_now,
        plant_name_lookup: Callable[[str], str | None] | None = None,
    ) -> None:
        self._store = task_store
        self._dispatcher = dispatcher
        self._timing = timing
        self._clock = clock
        self._plant_name_lookup = plant_name_lookup
        self._states: dict[str, EscalationState] = {}
        self._lock = threading.Lock()

    def sweep(self, now: datetime | None = None) -> EscalationSweepReport:
        """Check every overdue pending task once.

        Store and dispatch failures are collected in the report; the sweep
        itself never raises.
        """
        now = now or self._clock()
        report = EscalationSweepReport()
        try:
            overdue = self._store.query(status=TaskStatus.PENDING, due_before=now)
        except Exception as exc:
            logger.error("Escalation sweep could not load overdue tasks: %s", exc)
            report.errors.append(f"task store: {exc}")
            return report

        active: set[str] = set()
        for task in overdue:
            if not task.is_pending:
                continue
            origin = task.overdue_origin
            if origin >= now:
                continue
            report.checked += 1
            active.add(task.task_id)
            self._check_task(task, whole_hours_between(origin, now), now, report)

        with self._lock:
            stale = [task_id for task_id in self._states if task_id not in active]
            for task_id in stale:
                del self._states[task_id]
        report.dropped = len(stale)

        if report.escalated or report.failed:
            logger.info(
                "Escalation sweep: %s checked, %s escalated, %s failed, %s dropped",
                report.checked,
                report.escalated,
                report.failed,
                report.dropped,
            )
        return report

    def _check_task(self, task: PlantTask, hours: int, now: datetime, report: EscalationSweepReport) -> None:
        with self._lock:
            state = self._states.get(task.task_id)
            if state is None:
                state = EscalationState(
                    task_id=task.task_id,
                    user_id=task.user_id,
                    hours_overdue=hours,
                    level=level_for_hours(hours),
                    next_check_time=now,
                )
                self._states[task.task_id] = state
            state.advance(hours)
            if not state.is_due(now):
                report.deferred += 1
                return
            state.reserve()
            level = state.level

        title, body = self.build_content(task, hours, level)
        data = {
            "type": "task_escalation",
            "task_id": task.task_id,
            "plant_id": task.plant_id,
            "user_id": task.user_id,
            "level": level.value,
            "hours_overdue": hours,
        }
        try:
            fire_in = self._timing.escalation_fire_in(task.user_id, level, now)
            notification_id = self._dispatcher.schedule(title, body, data, fire_in)
            if not notification_id:
                raise DispatchFailure("Dispatcher returned no notification id")
        except Exception as exc:
            with self._lock:
                state.release()
            logger.warning("Escalation for task %s (%s) failed: %s", task.task_id, level, exc)
            report.failed += 1
            report.errors.append(f"{task.task_id}: {exc}")
            return

        with self._lock:
            state.mark_notified(now, notification_id)
        report.escalated += 1

    def build_content(self, task: PlantTask, hours: int, level: EscalationLevel) -> tuple[str, str]:
        plant_name = None
        if self._plant_name_lookup is not None:
            try:
                plant_name = self._plant_name_lookup(task.plant_id)
            except Exception as exc:
                logger.debug("Plant name lookup failed for %s: %s", task.plant_id, exc)
        title = f"{URGENCY_ICONS[level]} Overdue: {task.title}"
        body = f"{plant_name or 'Your plant'} needs attention - {hours}h overdue"
        return title, body

    def forget(self, task_id: str) -> bool:
        with self._lock:
            return self._states.pop(task_id, None) is not None

    def get_state(self, task_id: str) -> EscalationState | None:
        with self._lock:
            return self._states.get(task_id)

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            by_level = {level.value: 0 for level in EscalationLevel}
            for state in self._states.values():
                by_level[state.level.value] += 1
            return {"tracked": len(self._states), "by_level": by_level}

    def clear(self) -> None:
        with self._lock:
            self._states.clear()
