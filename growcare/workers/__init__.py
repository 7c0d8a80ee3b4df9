"""
Workers module for background services and scheduled tasks.

This module contains:
- unified_scheduler: heap-based scheduler with a bounded worker pool
- scheduled_tasks: task definitions organized by namespace (care.*, notifications.*)
"""

__all__ = [
    "UnifiedScheduler",
    "configure_scheduler",
    "register_all_tasks",
    "schedule_default_jobs",
]

from growcare.workers.unified_scheduler import UnifiedScheduler
from growcare.workers.scheduled_tasks import configure_scheduler, register_all_tasks, schedule_default_jobs
