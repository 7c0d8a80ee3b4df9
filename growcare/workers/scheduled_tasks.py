"""
Scheduled Tasks: background task definitions for the UnifiedScheduler.

Task functions organized by namespace:
- care.*: escalation sweep over overdue tasks, daily stage-transition sweep
- notifications.*: safety-net flush of the notification batch queue

Usage:
    from growcare.workers.scheduled_tasks import configure_scheduler

    configure_scheduler(container.scheduler, container)
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from growcare.config import AppConfig
    from growcare.services.container import ServiceContainer
    from growcare.workers.unified_scheduler import UnifiedScheduler

logger = logging.getLogger(__name__)

TASK_SOFT_ERRORS = (
    RuntimeError,
    ValueError,
    TypeError,
    AttributeError,
    OSError,
)


# ==================== Care Namespace Tasks ====================


def care_escalation_sweep_task(container: "ServiceContainer") -> dict[str, Any]:
    """
    Escalate reminders for overdue pending tasks.

    Task name: care.escalation_sweep
    """
    try:
        report = container.care_engine.run_escalation_sweep()
    except TASK_SOFT_ERRORS as e:
        logger.error("Escalation sweep failed: %s", e, exc_info=True)
        return {"checked": 0, "escalated": 0, "errors": [str(e)]}
    return report.to_dict()


def care_stage_transition_sweep_task(container: "ServiceContainer") -> dict[str, Any]:
    """
    Advance plants that have outgrown their growth stage and generate the
    new stage's tasks.

    Task name: care.stage_transition_sweep
    """
    results: dict[str, Any] = {"checked": 0, "advanced": [], "errors": []}
    if container.plant_directory is None:
        results["errors"].append("no plant directory configured")
        return results
    try:
        results = container.care_engine.run_stage_transition_sweep()
    except TASK_SOFT_ERRORS as e:
        logger.error("Stage transition sweep failed: %s", e, exc_info=True)
        results["errors"].append(str(e))
    if results["advanced"]:
        logger.info("Stage sweep advanced %s of %s plants", len(results["advanced"]), results["checked"])
    return results


# ==================== Notifications Namespace Tasks ====================


def notifications_flush_task(container: "ServiceContainer") -> dict[str, Any]:
    """
    Flush anything still queued in the notification batcher.

    The batcher flushes on its own timer; this job covers a timer that was
    lost (e.g. the thread died).

    Task name: notifications.flush
    """
    results: dict[str, Any] = {"batches": 0, "scheduled": 0, "failed": 0, "skipped": 0, "errors": []}
    try:
        for result in container.care_engine.flush_notifications():
            results["batches"] += 1
            results["scheduled"] += result.scheduled
            results["failed"] += result.failed
            results["skipped"] += result.skipped
            results["errors"].extend(result.errors)
    except TASK_SOFT_ERRORS as e:
        logger.error("Notification flush failed: %s", e, exc_info=True)
        results["errors"].append(str(e))
    return results


# ==================== Registration ====================


def register_all_tasks(
    scheduler: "UnifiedScheduler",
    container: "ServiceContainer",
) -> None:
    """
    Register all tasks with the scheduler.

    Args:
        scheduler: UnifiedScheduler instance
        container: ServiceContainer with all services
    """
    logger.info("Registering scheduled tasks...")

    def bind_noargs(task_fn):
        @wraps(task_fn)
        def bound_task():
            try:
                return task_fn(container)
            except Exception as e:
                logger.exception("Scheduled task %s raised: %s", task_fn.__name__, e)
                # Re-raise to let scheduler record failure in history as well
                raise

        return bound_task

    scheduler.register_task("care.escalation_sweep", bind_noargs(care_escalation_sweep_task))
    scheduler.register_task("care.stage_transition_sweep", bind_noargs(care_stage_transition_sweep_task))
    scheduler.register_task("notifications.flush", bind_noargs(notifications_flush_task))

    logger.info("Registered care and notification tasks")


def schedule_default_jobs(scheduler: "UnifiedScheduler", container: "ServiceContainer") -> None:
    """
    Schedule default jobs using the container's configuration.

    Call this after register_all_tasks().
    """
    config: "AppConfig" = container.config
    logger.info("Scheduling default jobs...")

    scheduler.schedule_interval(
        "care.escalation_sweep",
        interval_seconds=config.escalation_sweep_interval_seconds,
        job_id="care_escalation_sweep",
        start_immediately=True,
    )

    # Only meaningful when the host supplies plant records
    if container.plant_directory is not None:
        scheduler.schedule_daily(
            "care.stage_transition_sweep",
            time_of_day=config.stage_sweep_time,
            job_id="care_stage_transition_daily",
        )

    scheduler.schedule_interval(
        "notifications.flush",
        interval_seconds=config.notification_flush_interval_seconds,
        job_id="notifications_flush",
    )

    jobs = scheduler.get_jobs()
    logger.info("Scheduled %s default jobs", len(jobs))
    for job in jobs:
        logger.debug("  - %s: %s (%s)", job.job_id, job.schedule_type.value, job.namespace)


def configure_scheduler(
    scheduler: "UnifiedScheduler",
    container: "ServiceContainer",
    *,
    reset_jobs: bool = True,
    start: bool = True,
) -> None:
    """Register tasks, apply default schedules, and optionally start the scheduler."""
    if reset_jobs:
        scheduler.clear_jobs()

    register_all_tasks(scheduler, container)
    schedule_default_jobs(scheduler, container)

    if start:
        scheduler.start()
